import logging
import os
from typing import Any, Dict, List, Optional, Union

import httpx

from .models import (
    CollectionCreate,
    CollectionUpdate,
    RaindropCreate,
    RaindropUpdate,
    TRASH_COLLECTION_ID,
)
from .normalize import clean_titles

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool]

MAX_UPLOAD_SIZE = 300 * 1024 * 1024  # 300MB, the Pro plan limit
UPLOAD_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
}


class RaindropError(Exception):
    """Base exception for everything a tool call can fail with."""

    def __init__(self, message: str, status_code: int = 500, hint: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.hint = hint


class ApiError(RaindropError):
    """Raindrop.io rejected the request or answered with `result: false`."""


class NetworkError(RaindropError):
    def __init__(self, message: str):
        super().__init__(message, 503)


class ResponseParseError(RaindropError):
    """The response body was not JSON."""


class MissingFileError(RaindropError, FileNotFoundError):
    def __init__(self, path: str):
        super().__init__(f"File not found: {path}", 400)


class FileTooLargeError(RaindropError):
    def __init__(self, size: int, limit: int = MAX_UPLOAD_SIZE):
        super().__init__(f"File too large: {size} bytes (max {limit} bytes)", 413)


class UnsupportedFileTypeError(RaindropError):
    def __init__(self, extension: str):
        super().__init__(
            f"Unsupported file type: {extension or '(none)'}. "
            f"Supported: {', '.join(UPLOAD_CONTENT_TYPES)}",
            415,
        )


class HighlightNotFoundError(RaindropError):
    def __init__(self, highlight_id: str, raindrop_id: int):
        super().__init__(
            f"Highlight with ID '{highlight_id}' not found in raindrop {raindrop_id}", 404
        )


class CacheNotReadyError(RaindropError):
    def __init__(self, raindrop_id: int, status: Optional[str]):
        super().__init__(
            f"Cache not available for raindrop {raindrop_id}. "
            f"Status: {status or 'not found'}. "
            "Permanent copy must be enabled and ready for this bookmark.",
            409,
        )


class UnexpectedCacheResponseError(RaindropError):
    def __init__(self, status_code: int):
        super().__init__(f"Unexpected response when getting cache URL: {status_code}", 502)


class InvalidDateError(RaindropError):
    def __init__(self, value: str):
        super().__init__(
            f"Invalid date format: {value}. Use ISO-8601 format (e.g., '2024-12-31T09:00:00Z')",
            400,
        )


class ValidationError(RaindropError):
    """Caller-supplied arguments fail a precondition."""

    def __init__(self, message: str):
        super().__init__(message, 400)


def _stringify(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _query(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    if not params:
        return None
    return {key: _stringify(value) for key, value in params.items() if value is not None}


class RaindropAPI:
    BASE_URL = "https://api.raindrop.io/rest/v1"

    def __init__(self, token: str, timeout: float = 30.0):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self.client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", self.headers)
        logger.debug("%s %s", method, path)
        try:
            return await self.client.request(
                method, f"{self.BASE_URL}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise NetworkError(f"Network Error: {str(e)}") from e

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(
                f"Failed to parse JSON response: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            ) from e

        failed = isinstance(data, dict) and data.get("result") is False
        if not response.is_success or failed:
            message = None
            if isinstance(data, dict):
                message = data.get("errorMessage") or data.get("error")
            raise ApiError(
                message or f"API request failed: {response.status_code}",
                status_code=response.status_code if not response.is_success else 400,
            )

        return clean_titles(data)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Issue an authenticated call and return the normalized JSON envelope.
        """
        response = await self._send(method, path, params=_query(params), **kwargs)
        return self._handle_response(response)

    async def _upload(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        # Multipart: leave Content-Type to httpx so it can set the boundary.
        headers = {"Authorization": self.headers["Authorization"]}
        response = await self._send(method, path, headers=headers, **kwargs)
        return self._handle_response(response)

    async def get_user(self) -> Dict[str, Any]:
        data = await self._request("GET", "/user")
        return data.get("user", {})

    # Collections

    async def get_collections(self, root: bool = True) -> Dict[str, Any]:
        return await self._request("GET", "/collections" if root else "/collections/childrens")

    async def get_collection(self, collection_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/collection/{collection_id}")

    async def create_collection(self, collection: CollectionCreate) -> Dict[str, Any]:
        return await self._request(
            "POST", "/collection", json=collection.model_dump(mode="json", exclude_none=True)
        )

    async def update_collection(
        self, collection_id: int, update: CollectionUpdate
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/collection/{collection_id}",
            json=update.model_dump(mode="json", exclude_none=True),
        )

    async def delete_collection(self, collection_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/collection/{collection_id}")

    async def empty_trash(self) -> Dict[str, Any]:
        return await self._request("DELETE", f"/collection/{TRASH_COLLECTION_ID}")

    # Raindrops

    async def get_raindrops(
        self, collection_id: int, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._request("GET", f"/raindrops/{collection_id}", params=params)

    async def search_raindrops(
        self, collection_id: int, search: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self.get_raindrops(collection_id, {"search": search, **(params or {})})

    async def get_raindrop(self, raindrop_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/raindrop/{raindrop_id}")

    async def create_raindrop(self, raindrop: RaindropCreate) -> Dict[str, Any]:
        return await self._request(
            "POST", "/raindrop", json=raindrop.model_dump(mode="json", exclude_none=True)
        )

    async def update_raindrop(self, raindrop_id: int, update: RaindropUpdate) -> Dict[str, Any]:
        # exclude_unset keeps explicit nulls, e.g. clearing a reminder
        return await self._request(
            "PUT",
            f"/raindrop/{raindrop_id}",
            json=update.model_dump(mode="json", exclude_unset=True),
        )

    async def delete_raindrop(self, raindrop_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/raindrop/{raindrop_id}")

    # Tags

    async def get_tags(self, collection_id: Optional[int] = None) -> Dict[str, Any]:
        path = "/tags" if collection_id is None else f"/tags/{collection_id}"
        return await self._request("GET", path)

    async def merge_tags(
        self, tags: List[str], new_tag: str, collection_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Rename or merge tags into `new_tag` (globally or within a collection)."""
        path = "/tags" if collection_id is None else f"/tags/{collection_id}"
        return await self._request("PUT", path, json={"tags": tags, "replace": new_tag})

    async def delete_tags(
        self, tags: List[str], collection_id: Optional[int] = None
    ) -> Dict[str, Any]:
        path = "/tags" if collection_id is None else f"/tags/{collection_id}"
        return await self._request("DELETE", path, json={"tags": tags})

    # Highlights

    async def get_highlights(
        self, collection_id: Optional[int] = None, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        path = "/highlights" if collection_id is None else f"/highlights/{collection_id}"
        return await self._request("GET", path, params=params)

    # Import / export

    async def parse_url(self, url: str) -> Dict[str, Any]:
        return await self._request("GET", "/import/url/parse", params={"url": url})

    async def check_url_exists(self, urls: List[str]) -> Dict[str, Any]:
        return await self._request("POST", "/import/url/exists", json={"urls": urls})

    async def import_bookmarks_file(
        self, file_path: str, collection_id: Optional[int] = None
    ) -> Dict[str, Any]:
        if not os.path.isfile(file_path):
            raise MissingFileError(file_path)

        data = {"collectionId": str(collection_id)} if collection_id is not None else None
        with open(file_path, "rb") as f:
            files = {"import": (os.path.basename(file_path), f, "text/html")}
            return await self._upload("POST", "/import/file", files=files, data=data)

    async def export_collection(self, collection_id: int, format: str = "html") -> str:
        response = await self._send("GET", f"/raindrops/{collection_id}/export.{format}")
        if not response.is_success:
            raise ApiError(
                f"Export failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.text

    async def create_backup(self) -> Dict[str, Any]:
        return await self._request("GET", "/backup")

    async def list_backups(self) -> Dict[str, Any]:
        return await self._request("GET", "/backups")

    # Files and permanent copies

    async def upload_file(
        self, file_path: str, collection_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Upload a PDF, image or video as a new bookmark (Pro feature)."""
        if not os.path.isfile(file_path):
            raise MissingFileError(file_path)

        size = os.path.getsize(file_path)
        if size > MAX_UPLOAD_SIZE:
            raise FileTooLargeError(size)

        extension = os.path.splitext(file_path)[1].lower()
        content_type = UPLOAD_CONTENT_TYPES.get(extension)
        if content_type is None:
            raise UnsupportedFileTypeError(extension)

        data = {"collectionId": str(collection_id)} if collection_id is not None else None
        with open(file_path, "rb") as f:
            files = {"file": (os.path.basename(file_path), f, content_type)}
            return await self._upload("PUT", "/raindrop/file", files=files, data=data)

    async def get_cache_redirect(self, raindrop_id: int) -> httpx.Response:
        """Request the permanent copy without following its redirect."""
        return await self._send(
            "GET",
            f"/raindrop/{raindrop_id}/cache",
            headers={"Authorization": self.headers["Authorization"]},
            follow_redirects=False,
        )
