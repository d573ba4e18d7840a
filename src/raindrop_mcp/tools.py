"""Tool handlers exposed over MCP.

Each handler takes the shared :class:`RaindropOperations` followed by the
tool's parameters, already validated by the transport, and returns a
:class:`ToolResponse`. Handlers register themselves in ``TOOLS``.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional

from pydantic import Field

from .api import ValidationError
from .fields import filter_response
from .models import (
    ALL_COLLECTIONS_ID,
    TRASH_COLLECTION_ID,
    CollectionCreate,
    CollectionUpdate,
    CollectionView,
    ExportFormat,
    FieldList,
    FieldSelection,
    HighlightColor,
    Page,
    PerPage,
    RaindropInput,
    RaindropUpdate,
    SortOrder,
    TagList,
)
from .operations import RaindropOperations
from .responses import MINIMAL_ACK, ToolResponse, minimal_shaping, tool_handler

Minimal = Annotated[bool, Field(description="Return minimal response (just 'ok') to save space")]
PRESET_HELP = (
    "Field selection: Use preset ('minimal', 'basic', 'standard', 'media', "
    "'organization', 'metadata') or array of field names"
)


@dataclass
class ToolDefinition:
    name: str
    title: str
    description: str
    handler: Callable[..., Awaitable[ToolResponse]]
    read_only: bool = False
    destructive: bool = False


TOOLS: Dict[str, ToolDefinition] = {}


def tool(
    name: str,
    title: str,
    description: str,
    read_only: bool = False,
    destructive: bool = False,
    shaped: bool = False,
):
    """Register a handler under its MCP tool name.

    ``shaped`` handlers honour the ``minimal`` flag by answering with a bare
    acknowledgement instead of their result.
    """

    def decorator(func):
        handler = tool_handler(minimal_shaping(func) if shaped else func)
        TOOLS[name] = ToolDefinition(name, title, description, handler, read_only, destructive)
        return handler

    return decorator


def _present(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# Collections

@tool(
    "list-collections",
    "List Collections",
    "Retrieve all bookmark collections (folders). Set root=true for top-level collections "
    "or root=false for nested subcollections. Returns all collections without pagination.",
    read_only=True,
)
async def list_collections(
    ops: RaindropOperations,
    root: Annotated[bool, Field(description="Get root collections (true) or nested collections (false)")] = True,
    fields: Annotated[FieldList, Field(description="Array of field names to include in the response")] = None,
):
    result = await ops.api.get_collections(root)
    return filter_response(result, fields)


@tool(
    "get-collection",
    "Get Collection",
    "Retrieve details of a specific collection by ID: title, description, bookmark count, "
    "view style, public status and parent collection.",
    read_only=True,
)
async def get_collection(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Collection ID")],
    fields: Annotated[FieldList, Field(description="Array of field names to include in the response")] = None,
):
    result = await ops.api.get_collection(id)
    return filter_response(result, fields)


@tool(
    "create-collection",
    "Create Collection",
    "Create a new collection. View styles: 'list' (default), 'simple', 'grid' or 'masonry'. "
    "Optionally nest under a parent collection, add a description, make it public or set covers.",
    shaped=True,
)
async def create_collection(
    ops: RaindropOperations,
    title: Annotated[str, Field(description="Name of the collection")],
    description: Annotated[Optional[str], Field(description="Collection description")] = None,
    parentId: Annotated[Optional[int], Field(description="Parent collection ID for nested collections")] = None,
    view: Annotated[CollectionView, Field(description="View style")] = "list",
    public: Annotated[bool, Field(description="Make collection public")] = False,
    cover: Annotated[Optional[List[str]], Field(description="Collection cover URLs")] = None,
    minimal: Minimal = False,
):
    collection = CollectionCreate(
        title=title,
        view=view,
        public=public,
        description=description or None,
        parent={"$id": parentId} if parentId else None,
        cover=cover or None,
    )
    return await ops.api.create_collection(collection)


@tool(
    "update-collection",
    "Update Collection",
    "Modify an existing collection: rename, change description or view style, toggle public "
    "sharing, move under another parent, or expand/collapse its subcollections.",
    shaped=True,
)
async def update_collection(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Collection ID")],
    title: Annotated[Optional[str], Field(description="New name of the collection")] = None,
    description: Annotated[Optional[str], Field(description="New description")] = None,
    parentId: Annotated[Optional[int], Field(description="New parent collection ID")] = None,
    view: Annotated[Optional[CollectionView], Field(description="View style")] = None,
    public: Annotated[Optional[bool], Field(description="Make collection public/private")] = None,
    expanded: Annotated[Optional[bool], Field(description="Expand/collapse sub-collections")] = None,
    minimal: Minimal = False,
):
    update = CollectionUpdate(
        title=title,
        description=description,
        parent={"$id": parentId} if parentId is not None else None,
        view=view,
        public=public,
        expanded=expanded,
    )
    return await ops.api.update_collection(id, update)


@tool(
    "delete-collection",
    "Delete Collection",
    "Delete a collection and its nested subcollections. Its bookmarks are moved to Trash "
    "(collection ID -99), where they can be restored.",
    destructive=True,
    shaped=True,
)
async def delete_collection(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Collection ID to delete")],
    minimal: Minimal = False,
):
    await ops.api.delete_collection(id)
    return "Collection deleted successfully"


# Raindrops

@tool(
    "list-raindrops",
    "List Raindrops",
    "List bookmarks (raindrops) in a collection with pagination. Special collection IDs: "
    "0 (all bookmarks), -1 (Unsorted), -99 (Trash). Supports sorting, searching, nested "
    "collections and field presets.",
    read_only=True,
)
async def list_raindrops(
    ops: RaindropOperations,
    collectionId: Annotated[int, Field(description="Collection ID (0 for all, -1 for Unsorted, -99 for Trash)")],
    page: Page = 0,
    perpage: PerPage = 25,
    sort: Annotated[Optional[SortOrder], Field(description="Sort order")] = None,
    search: Annotated[Optional[str], Field(description="Search query")] = None,
    nested: Annotated[Optional[bool], Field(description="Include bookmarks from nested collections")] = None,
    fields: Annotated[FieldSelection, Field(description=PRESET_HELP)] = None,
):
    params = _present(page=page, perpage=perpage, sort=sort, search=search, nested=nested)
    result = await ops.api.get_raindrops(collectionId, params)
    return filter_response(result, fields)


@tool(
    "get-raindrop",
    "Get Raindrop",
    "Retrieve a bookmark by ID with its URL, title, excerpt, tags, note, type, cover, "
    "dates and collection. Use field presets or arrays to shrink the response.",
    read_only=True,
)
async def get_raindrop(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Raindrop ID")],
    fields: Annotated[FieldSelection, Field(description=PRESET_HELP)] = None,
):
    result = await ops.api.get_raindrop(id)
    return filter_response(result, fields)


@tool(
    "create-raindrop",
    "Create Raindrop",
    "Save a new bookmark. Set pleaseParse=true (default) to extract title, description and "
    "cover from the URL. Bookmarks go to Unsorted (ID -1) unless a collection is given.",
    shaped=True,
)
async def create_raindrop(
    ops: RaindropOperations,
    link: Annotated[str, Field(description="URL of the bookmark")],
    title: Annotated[Optional[str], Field(description="Title (will be auto-parsed if not provided)")] = None,
    excerpt: Annotated[Optional[str], Field(description="Description/excerpt")] = None,
    note: Annotated[Optional[str], Field(description="Personal note")] = None,
    tags: Annotated[TagList, Field(description="Tags for the bookmark")] = None,
    collectionId: Annotated[Optional[int], Field(description="Collection ID (default: -1 for Unsorted)")] = None,
    important: Annotated[Optional[bool], Field(description="Mark as favorite")] = None,
    pleaseParse: Annotated[bool, Field(description="Auto-parse metadata from URL")] = True,
    minimal: Minimal = False,
):
    raindrop = RaindropInput(
        link=link,
        title=title,
        excerpt=excerpt,
        note=note,
        tags=tags,
        collectionId=collectionId,
        important=important,
        pleaseParse=pleaseParse,
    )
    return await ops.api.create_raindrop(raindrop.to_create())


@tool(
    "create-raindrops-bulk",
    "Create Raindrops (Bulk)",
    "Create up to 50 bookmarks sequentially with a delay between requests. With "
    "continueOnError=false (default) processing stops at the first failure. Returns "
    "success/failure counts, errors and the created bookmarks (or only counts when minimal).",
)
async def create_raindrops_bulk(
    ops: RaindropOperations,
    raindrops: Annotated[
        List[RaindropInput],
        Field(min_length=1, max_length=50, description="Array of raindrops to create"),
    ],
    delayMs: Annotated[int, Field(ge=100, le=5000, description="Delay between requests in milliseconds")] = 500,
    continueOnError: Annotated[bool, Field(description="Continue processing remaining raindrops if one fails")] = False,
    minimal: Annotated[bool, Field(description="Return minimal response (just summary) to save space")] = False,
):
    results = await ops.create_raindrops_bulk(raindrops, delayMs, continueOnError)
    if minimal:
        return {
            "success": results.success,
            "created": results.successful,
            "failed": results.failed,
            "total": results.total,
        }

    response: Dict[str, Any] = {
        "success": results.success,
        "summary": {
            "total": results.total,
            "successful": results.successful,
            "failed": results.failed,
        },
        "created": results.created,
    }
    if results.errors:
        response["errors"] = [error.model_dump() for error in results.errors]
    return response


@tool(
    "update-raindrop",
    "Update Raindrop",
    "Modify a bookmark: title, excerpt, note, tags, URL, collection, favorite status or sort "
    "order. Tags replace all existing tags. Pass fields=[] to return only the result status.",
)
async def update_raindrop(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Raindrop ID")],
    title: Annotated[Optional[str], Field(description="New title")] = None,
    excerpt: Annotated[Optional[str], Field(description="New description")] = None,
    note: Annotated[Optional[str], Field(description="New note")] = None,
    tags: Annotated[TagList, Field(description="New tags (replaces existing)")] = None,
    link: Annotated[Optional[str], Field(description="New URL")] = None,
    collectionId: Annotated[Optional[int], Field(description="Move to different collection")] = None,
    important: Annotated[Optional[bool], Field(description="Mark/unmark as favorite")] = None,
    order: Annotated[Optional[int], Field(description="Sort order position")] = None,
    fields: Annotated[FieldSelection, Field(description=PRESET_HELP)] = None,
    minimal: Minimal = False,
):
    changes = _present(
        title=title, excerpt=excerpt, note=note, tags=tags,
        link=link, important=important, order=order,
    )
    if collectionId is not None:
        changes["collection"] = {"$id": collectionId}

    result = await ops.api.update_raindrop(id, RaindropUpdate(**changes))
    if minimal:
        return MINIMAL_ACK
    return filter_response(result, fields)


@tool(
    "delete-raindrop",
    "Delete Raindrop",
    "Delete a bookmark. The first deletion moves it to Trash (collection ID -99); deleting "
    "a bookmark that is already in Trash removes it permanently.",
    destructive=True,
    shaped=True,
)
async def delete_raindrop(
    ops: RaindropOperations,
    id: Annotated[int, Field(description="Raindrop ID to delete")],
    minimal: Minimal = False,
):
    await ops.api.delete_raindrop(id)
    return "Raindrop deleted successfully"


@tool(
    "search-raindrops",
    "Search Raindrops",
    "Search bookmarks with Raindrop.io search syntax: #tag, site:example.com, "
    "type:article, important:true, created:YYYY-MM-DD and full text.",
    read_only=True,
)
async def search_raindrops(
    ops: RaindropOperations,
    search: Annotated[str, Field(description="Search query (supports operators like #tag, site:example.com, etc.)")],
    collectionId: Annotated[int, Field(description="Collection to search in (0 for all)")] = ALL_COLLECTIONS_ID,
    page: Page = 0,
    perpage: PerPage = 25,
    sort: Annotated[Optional[SortOrder], Field(description="Sort order")] = None,
    fields: Annotated[FieldSelection, Field(description=PRESET_HELP)] = None,
):
    params = _present(page=page, perpage=perpage, sort=sort)
    result = await ops.api.search_raindrops(collectionId, search, params)
    return filter_response(result, fields)


# Tags

@tool(
    "list-tags",
    "List Tags",
    "Retrieve tags with usage counts, optionally for one collection. Paginated "
    "client-side with page and perpage.",
    read_only=True,
)
async def list_tags(
    ops: RaindropOperations,
    collectionId: Annotated[Optional[int], Field(description="Collection ID (omit for all tags)")] = None,
    page: Page = 0,
    perpage: PerPage = 25,
    fields: Annotated[FieldList, Field(description="Array of field names to include in the response (e.g., ['_id', 'count'])")] = None,
):
    # The tags endpoint is not paginated, so page locally.
    result = await ops.api.get_tags(collectionId)
    items = result.get("items") or []
    start = page * perpage
    end = start + perpage
    page_items = items[start:end]
    paginated = {
        "result": result.get("result", True),
        "items": page_items,
        "count": len(page_items),
        "total": len(items),
        "page": page,
        "perpage": perpage,
        "hasMore": end < len(items),
    }
    return filter_response(paginated, fields)


@tool(
    "merge-tags",
    "Merge/Rename Tags",
    "Replace one or more tags with newTag across bookmarks: rename a tag or merge several "
    "(e.g. ['react', 'reactjs'] into 'React'). Optionally scoped to one collection.",
    shaped=True,
)
async def merge_tags(
    ops: RaindropOperations,
    tags: Annotated[TagList, Field(description="List of tag names to merge/rename")],
    newTag: Annotated[str, Field(description="New tag name to replace all specified tags")],
    collectionId: Annotated[Optional[int], Field(description="Limit operation to specific collection")] = None,
    minimal: Minimal = False,
):
    if not tags:
        raise ValidationError("Parameter 'tags' is required and must be a non-empty array of tag names")
    if not newTag or not newTag.strip():
        raise ValidationError("Parameter 'newTag' is required and cannot be empty")

    await ops.api.merge_tags(tags, newTag, collectionId)
    if len(tags) == 1:
        return "Tag renamed successfully"
    return f"{len(tags)} tags merged into '{newTag}' successfully"


@tool(
    "delete-tags",
    "Delete Tags",
    "Remove tags from all bookmarks, or only from bookmarks in one collection.",
    destructive=True,
    shaped=True,
)
async def delete_tags(
    ops: RaindropOperations,
    tags: Annotated[TagList, Field(description="Tags to delete")],
    collectionId: Annotated[Optional[int], Field(description="Limit to specific collection")] = None,
    minimal: Minimal = False,
):
    if not tags:
        raise ValidationError("Parameter 'tags' must be a non-empty array of tag names")
    await ops.api.delete_tags(tags, collectionId)
    return "Tags deleted successfully"


# Highlights

@tool(
    "list-highlights",
    "List Highlights",
    "Retrieve text highlights and annotations, for one collection or all bookmarks.",
    read_only=True,
)
async def list_highlights(
    ops: RaindropOperations,
    collectionId: Annotated[Optional[int], Field(description="Collection ID (omit for all highlights)")] = None,
    page: Page = 0,
    perpage: PerPage = 25,
    fields: Annotated[FieldList, Field(description="Array of field names to include in the response (e.g., ['_id', 'text', 'color', 'note'])")] = None,
):
    result = await ops.api.get_highlights(collectionId, {"page": page, "perpage": perpage})
    return filter_response(result, fields)


@tool(
    "create-highlight",
    "Create Highlight",
    "Add a highlight to a bookmark with an optional note and color (default yellow).",
    shaped=True,
)
async def create_highlight(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to add highlight to")],
    text: Annotated[str, Field(min_length=1, description="The highlighted text")],
    color: Annotated[Optional[HighlightColor], Field(description="Highlight color (default: yellow)")] = None,
    note: Annotated[Optional[str], Field(description="Optional note/annotation for the highlight")] = None,
    minimal: Minimal = False,
):
    return await ops.create_highlight(raindropId, text, color, note)


@tool(
    "update-highlight",
    "Update Highlight",
    "Change a highlight's text, color or note. Highlight IDs come from list-highlights or "
    "get-raindrop.",
    shaped=True,
)
async def update_highlight(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID containing the highlight")],
    highlightId: Annotated[str, Field(description="Highlight ID to update")],
    text: Annotated[Optional[str], Field(description="New highlighted text")] = None,
    color: Annotated[Optional[HighlightColor], Field(description="New highlight color")] = None,
    note: Annotated[Optional[str], Field(description="New note (use empty string to clear)")] = None,
    minimal: Minimal = False,
):
    return await ops.update_highlight(raindropId, highlightId, text=text, color=color, note=note)


@tool(
    "delete-highlight",
    "Delete Highlight",
    "Remove a highlight from a bookmark. The bookmark itself is not affected.",
    destructive=True,
    shaped=True,
)
async def delete_highlight(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID containing the highlight")],
    highlightId: Annotated[str, Field(description="Highlight ID to delete")],
    minimal: Minimal = False,
):
    return await ops.delete_highlight(raindropId, highlightId)


# URLs

@tool(
    "parse-url",
    "Parse URL",
    "Extract title, excerpt, cover and content type from a URL without saving it.",
    read_only=True,
)
async def parse_url(
    ops: RaindropOperations,
    url: Annotated[str, Field(description="URL to parse")],
):
    return await ops.api.parse_url(url)


@tool(
    "check-url-exists",
    "Check URL Exists",
    "Check whether URLs are already bookmarked. Returns the IDs of existing bookmarks "
    "and any duplicates.",
    read_only=True,
)
async def check_url_exists(
    ops: RaindropOperations,
    urls: Annotated[List[str], Field(description="URLs to check")],
):
    return await ops.api.check_url_exists(urls)


# Files and reminders

@tool(
    "upload-file",
    "Upload File",
    "Upload a PDF, image or video (PDF, PNG, JPG, GIF, WebP, MP4, MOV, WebM; max 300MB) "
    "as a new bookmark. Pro feature.",
    shaped=True,
)
async def upload_file(
    ops: RaindropOperations,
    filePath: Annotated[str, Field(description="Absolute path to the file to upload (PDF, image, or video)")],
    collectionId: Annotated[Optional[int], Field(description="Collection ID to add the file to (default: -1 for Unsorted)")] = None,
    title: Annotated[Optional[str], Field(description="Custom title for the bookmark (defaults to filename)")] = None,
    tags: Annotated[TagList, Field(description="Tags for the uploaded file")] = None,
    minimal: Minimal = False,
):
    return await ops.upload_file(filePath, collectionId, title=title, tags=tags)


@tool(
    "set-reminder",
    "Set Reminder",
    "Set a reminder on a bookmark at an ISO-8601 date/time. Pro feature.",
    shaped=True,
)
async def set_reminder(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to set reminder on")],
    reminderDate: Annotated[str, Field(description="Reminder date in ISO-8601 format (e.g., '2024-12-31T09:00:00Z')")],
    minimal: Minimal = False,
):
    return await ops.set_reminder(raindropId, reminderDate)


@tool(
    "remove-reminder",
    "Remove Reminder",
    "Clear the reminder of a bookmark. The bookmark itself is not affected.",
    shaped=True,
)
async def remove_reminder(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to remove reminder from")],
    minimal: Minimal = False,
):
    return await ops.remove_reminder(raindropId)


# Trash

@tool(
    "list-trash",
    "List Trash",
    "List bookmarks in the Trash. They can be restored or deleted permanently.",
    read_only=True,
)
async def list_trash(
    ops: RaindropOperations,
    page: Page = 0,
    perpage: PerPage = 25,
    fields: Annotated[FieldSelection, Field(description=PRESET_HELP)] = None,
):
    result = await ops.api.get_raindrops(TRASH_COLLECTION_ID, {"page": page, "perpage": perpage})
    return filter_response(result, fields)


@tool(
    "empty-trash",
    "Empty Trash",
    "Permanently delete ALL items in the Trash. This is IRREVERSIBLE; confirm must be true.",
    destructive=True,
)
async def empty_trash(
    ops: RaindropOperations,
    confirm: Annotated[bool, Field(description="Must be true to confirm permanent deletion. This action is IRREVERSIBLE.")] = False,
):
    await ops.empty_trash(confirm)
    return "Trash emptied successfully. All items have been permanently deleted."


@tool(
    "move-to-trash",
    "Move to Trash",
    "Move a bookmark to the Trash. It can be brought back with restore-from-trash.",
    shaped=True,
)
async def move_to_trash(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to move to trash")],
    minimal: Minimal = False,
):
    return await ops.move_to_trash(raindropId)


@tool(
    "restore-from-trash",
    "Restore from Trash",
    "Restore a bookmark from the Trash, to Unsorted (-1) unless targetCollectionId is given.",
    shaped=True,
)
async def restore_from_trash(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to restore from trash")],
    targetCollectionId: Annotated[Optional[int], Field(description="Collection to restore to (default: -1 for Unsorted)")] = None,
    minimal: Minimal = False,
):
    return await ops.restore_from_trash(raindropId, targetCollectionId)


# Import, export and backups

@tool(
    "export-collection",
    "Export Collection",
    "Export the bookmarks of a collection (0 for all) as CSV or HTML text.",
    read_only=True,
)
async def export_collection(
    ops: RaindropOperations,
    collectionId: Annotated[int, Field(description="Collection ID to export (use 0 for all bookmarks)")],
    format: Annotated[ExportFormat, Field(description="Export format: 'csv' or 'html' (default: html)")] = "html",
):
    return await ops.api.export_collection(collectionId, format)


@tool(
    "create-backup",
    "Create Backup",
    "Request a full account backup. Raindrop.io emails you when it is ready; see list-backups.",
)
async def create_backup(ops: RaindropOperations):
    await ops.api.create_backup()
    return "Backup requested. You will receive an email notification when it's ready."


@tool(
    "list-backups",
    "List Backups",
    "List the backups available for the account.",
    read_only=True,
)
async def list_backups(ops: RaindropOperations):
    return await ops.api.list_backups()


@tool(
    "import-bookmarks-file",
    "Import Bookmarks File",
    "Import an HTML bookmark file exported from a browser, optionally into one collection.",
)
async def import_bookmarks_file(
    ops: RaindropOperations,
    filePath: Annotated[str, Field(description="Absolute path to the HTML bookmark file to import")],
    collectionId: Annotated[Optional[int], Field(description="Collection ID to import bookmarks into")] = None,
):
    return await ops.api.import_bookmarks_file(filePath, collectionId)


# Permanent copies and polling

@tool(
    "get-cache",
    "Get Cache URL",
    "Get the storage URL of a bookmark's permanent copy. Pro feature; the copy must be ready.",
    read_only=True,
)
async def get_cache(
    ops: RaindropOperations,
    raindropId: Annotated[int, Field(description="Raindrop ID to get cached page URL for")],
):
    return await ops.get_cache_url(raindropId)


@tool(
    "watch-collection",
    "Watch Collection",
    "Poll a collection for bookmarks added since the last check. The first call sets the "
    "baseline; later calls return only new items (newest 50 at most). Use resetWatch=true "
    "to start fresh or pass a 'since' timestamp.",
    read_only=True,
)
async def watch_collection(
    ops: RaindropOperations,
    collectionId: Annotated[int, Field(description="Collection ID to watch for new items")],
    since: Annotated[Optional[str], Field(description="ISO-8601 timestamp to check for items created after (defaults to last watch time)")] = None,
    resetWatch: Annotated[Optional[bool], Field(description="Reset the watch timestamp to now")] = None,
):
    return await ops.watch_collection(collectionId, since=since, reset_watch=bool(resetWatch))
