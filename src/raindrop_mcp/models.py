import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from .fields import parse_field_selector

# Reserved collection ids
ALL_COLLECTIONS_ID = 0
UNSORTED_COLLECTION_ID = -1
TRASH_COLLECTION_ID = -99


CollectionView = Literal["list", "simple", "grid", "masonry"]
SortOrder = Literal["-created", "created", "score", "-sort", "title", "-title", "domain", "-domain"]
HighlightColor = Literal[
    "blue", "brown", "cyan", "gray", "green", "indigo",
    "orange", "pink", "purple", "red", "teal", "yellow",
]
ExportFormat = Literal["csv", "html"]
FieldPreset = Literal["minimal", "basic", "standard", "media", "organization", "metadata"]


def _parse_json_list(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise ValueError(f"Expected a JSON list, got {value!r}")
    return value


# Tool parameter types. Transports may hand lists over as JSON strings.
FieldList = Annotated[Optional[List[str]], BeforeValidator(parse_field_selector)]
FieldSelection = Annotated[
    Optional[Union[FieldPreset, List[str]]], BeforeValidator(parse_field_selector)
]
TagList = Annotated[Optional[List[str]], BeforeValidator(_parse_json_list)]
Page = Annotated[int, Field(ge=0, description="Page number (starts from 0)")]
PerPage = Annotated[int, Field(ge=1, le=50, description="Items per page (max 50)")]


class CollectionCreate(BaseModel):
    title: str
    description: Optional[str] = None
    view: Optional[CollectionView] = None
    public: Optional[bool] = None
    parent: Optional[dict] = None  # Expecting {"$id": int} if set
    cover: Optional[List[str]] = None


class CollectionUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    view: Optional[CollectionView] = None
    public: Optional[bool] = None
    parent: Optional[dict] = None
    expanded: Optional[bool] = None


class RaindropCreate(BaseModel):
    link: str
    title: Optional[str] = None
    excerpt: Optional[str] = None
    note: Optional[str] = None
    tags: Optional[List[str]] = None
    collection: Optional[dict] = None  # Expected structure: {"$id": int}
    important: Optional[bool] = None
    pleaseParse: Optional[dict] = None


class RaindropUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent."""

    link: Optional[str] = None
    title: Optional[str] = None
    excerpt: Optional[str] = None
    note: Optional[str] = None
    tags: Optional[List[str]] = None
    important: Optional[bool] = None
    order: Optional[int] = None
    collection: Optional[dict] = None
    highlights: Optional[List[Dict[str, Any]]] = None
    reminder: Optional[dict] = None


class RaindropInput(BaseModel):
    """A bookmark as supplied by a caller of the create tools."""

    link: str = Field(description="URL of the bookmark")
    title: Optional[str] = Field(None, description="Title (will be auto-parsed if not provided)")
    excerpt: Optional[str] = Field(None, description="Description/excerpt")
    note: Optional[str] = Field(None, description="Personal note")
    tags: TagList = Field(None, description="Tags for the bookmark")
    collectionId: Optional[int] = Field(None, description="Collection ID (default: -1 for Unsorted)")
    important: Optional[bool] = Field(None, description="Mark as favorite")
    pleaseParse: bool = Field(True, description="Auto-parse metadata from URL")

    def to_create(self) -> RaindropCreate:
        payload: Dict[str, Any] = {"link": self.link}
        if self.title:
            payload["title"] = self.title
        if self.excerpt:
            payload["excerpt"] = self.excerpt
        if self.note:
            payload["note"] = self.note
        if self.tags:
            payload["tags"] = self.tags
        if self.collectionId is not None:
            payload["collection"] = {"$id": self.collectionId}
        if self.important is not None:
            payload["important"] = self.important
        if self.pleaseParse:
            payload["pleaseParse"] = {}
        return RaindropCreate(**payload)


class CacheResult(BaseModel):
    url: str
    status: str = "ready"


class WatchResult(BaseModel):
    collectionId: int
    since: str
    until: str
    newItems: List[Dict[str, Any]] = []
    count: int = 0


class BulkError(BaseModel):
    index: int
    link: str
    error: str


class BulkResult(BaseModel):
    total: int
    successful: int = 0
    failed: int = 0
    created: List[Dict[str, Any]] = []
    errors: List[BulkError] = []

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def attempted(self) -> int:
        return self.successful + self.failed
