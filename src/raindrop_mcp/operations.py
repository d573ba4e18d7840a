"""Operations that Raindrop.io has no single endpoint for.

Highlights live in an array embedded in their bookmark, so every highlight
mutation reads the bookmark, edits the array and writes the whole array
back. The API offers no version or ETag check: two concurrent mutations of
the same bookmark can both read the same array, and the later write wins.
Callers that need stronger guarantees must serialise their own calls.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .api import (
    CacheNotReadyError,
    HighlightNotFoundError,
    InvalidDateError,
    RaindropAPI,
    UnexpectedCacheResponseError,
    ValidationError,
)
from .models import (
    BulkError,
    BulkResult,
    CacheResult,
    RaindropInput,
    RaindropUpdate,
    TRASH_COLLECTION_ID,
    UNSORTED_COLLECTION_ID,
    WatchResult,
)
from .watch import MemoryWatchStore, WatchStore, format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Largest page the API serves. A collection receiving more new bookmarks
# than this between two polls is undercounted.
WATCH_PAGE_SIZE = 50
DEFAULT_HIGHLIGHT_COLOR = "yellow"


class RaindropOperations:
    def __init__(self, api: RaindropAPI, watch_store: Optional[WatchStore] = None):
        self.api = api
        self.watch_store = watch_store if watch_store is not None else MemoryWatchStore()

    async def close(self):
        await self.api.close()

    # Highlights

    async def _get_highlights(self, raindrop_id: int) -> List[Dict[str, Any]]:
        data = await self.api.get_raindrop(raindrop_id)
        return list(data.get("item", {}).get("highlights") or [])

    @staticmethod
    def _find_highlight(
        highlights: List[Dict[str, Any]], highlight_id: str, raindrop_id: int
    ) -> int:
        for index, highlight in enumerate(highlights):
            if highlight.get("_id") == highlight_id:
                return index
        raise HighlightNotFoundError(highlight_id, raindrop_id)

    async def _write_highlights(
        self, raindrop_id: int, highlights: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return await self.api.update_raindrop(raindrop_id, RaindropUpdate(highlights=highlights))

    async def create_highlight(
        self,
        raindrop_id: int,
        text: str,
        color: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        highlights = await self._get_highlights(raindrop_id)
        highlights.append({
            "text": text,
            "color": color or DEFAULT_HIGHLIGHT_COLOR,
            "note": note or "",
        })
        return await self._write_highlights(raindrop_id, highlights)

    async def update_highlight(
        self,
        raindrop_id: int,
        highlight_id: str,
        text: Optional[str] = None,
        color: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        highlights = await self._get_highlights(raindrop_id)
        index = self._find_highlight(highlights, highlight_id, raindrop_id)

        updated = dict(highlights[index])
        if text is not None:
            updated["text"] = text
        if color is not None:
            updated["color"] = color
        if note is not None:
            updated["note"] = note
        highlights[index] = updated
        return await self._write_highlights(raindrop_id, highlights)

    async def delete_highlight(self, raindrop_id: int, highlight_id: str) -> Dict[str, Any]:
        highlights = await self._get_highlights(raindrop_id)
        index = self._find_highlight(highlights, highlight_id, raindrop_id)

        # Raindrop.io drops highlights whose text is empty
        highlights[index] = {**highlights[index], "text": ""}
        return await self._write_highlights(raindrop_id, highlights)

    # Trash

    async def move_to_trash(self, raindrop_id: int) -> Dict[str, Any]:
        return await self.api.update_raindrop(
            raindrop_id, RaindropUpdate(collection={"$id": TRASH_COLLECTION_ID})
        )

    async def restore_from_trash(
        self, raindrop_id: int, target_collection_id: Optional[int] = None
    ) -> Dict[str, Any]:
        if target_collection_id is None:
            target_collection_id = UNSORTED_COLLECTION_ID
        return await self.api.update_raindrop(
            raindrop_id, RaindropUpdate(collection={"$id": target_collection_id})
        )

    async def empty_trash(self, confirm: bool) -> Dict[str, Any]:
        if confirm is not True:
            raise ValidationError(
                "You must set confirm=true to empty the trash. This action is irreversible."
            )
        logger.info("Emptying trash")
        return await self.api.empty_trash()

    # Reminders

    async def set_reminder(self, raindrop_id: int, reminder_date: str) -> Dict[str, Any]:
        try:
            moment = parse_timestamp(reminder_date)
        except ValueError as e:
            raise InvalidDateError(reminder_date) from e
        return await self.api.update_raindrop(
            raindrop_id, RaindropUpdate(reminder={"date": format_timestamp(moment)})
        )

    async def remove_reminder(self, raindrop_id: int) -> Dict[str, Any]:
        return await self.api.update_raindrop(raindrop_id, RaindropUpdate(reminder=None))

    # Files

    async def upload_file(
        self,
        file_path: str,
        collection_id: Optional[int] = None,
        title: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Upload a file, then apply a custom title and tags if given."""
        result = await self.api.upload_file(file_path, collection_id)
        raindrop_id = result.get("item", {}).get("_id")
        if not (title or tags) or not raindrop_id:
            return result

        update: Dict[str, Any] = {}
        if title:
            update["title"] = title
        if tags:
            update["tags"] = tags
        return await self.api.update_raindrop(raindrop_id, RaindropUpdate(**update))

    # Permanent copies

    async def get_cache_url(self, raindrop_id: int) -> CacheResult:
        data = await self.api.get_raindrop(raindrop_id)
        cache = data.get("item", {}).get("cache") or {}
        status = cache.get("status")
        if status != "ready":
            raise CacheNotReadyError(raindrop_id, status)

        response = await self.api.get_cache_redirect(raindrop_id)
        location = response.headers.get("Location")
        if response.status_code != 307 or not location:
            raise UnexpectedCacheResponseError(response.status_code)
        return CacheResult(url=location, status="ready")

    # Polling

    async def watch_collection(
        self,
        collection_id: int,
        since: Optional[str] = None,
        reset_watch: bool = False,
    ) -> WatchResult:
        """Return bookmarks created in a collection since the last poll.

        The first poll of a collection only records a baseline and reports
        nothing. Only the newest page of bookmarks is inspected.
        """
        now = format_timestamp(utc_now())

        if reset_watch:
            self.watch_store.set(collection_id, now)
            return WatchResult(collectionId=collection_id, since=now, until=now)

        if since:
            check_since = since
        else:
            stored = self.watch_store.get(collection_id)
            if stored is None:
                logger.info("Establishing watch baseline for collection %s", collection_id)
            check_since = stored or now

        try:
            floor = parse_timestamp(check_since)
        except ValueError as e:
            raise InvalidDateError(check_since) from e

        result = await self.api.get_raindrops(
            collection_id, {"sort": "-created", "perpage": WATCH_PAGE_SIZE}
        )
        new_items = [item for item in result.get("items", []) if _created_after(item, floor)]

        self.watch_store.set(collection_id, now)
        return WatchResult(
            collectionId=collection_id,
            since=check_since,
            until=now,
            newItems=new_items,
            count=len(new_items),
        )

    # Bulk

    async def create_raindrops_bulk(
        self,
        raindrops: List[RaindropInput],
        delay_ms: int = 500,
        continue_on_error: bool = False,
    ) -> BulkResult:
        """Create bookmarks one after another, pausing between requests."""
        results = BulkResult(total=len(raindrops))

        for index, raindrop in enumerate(raindrops):
            if index > 0 and delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)
            try:
                data = await self.api.create_raindrop(raindrop.to_create())
            except Exception as e:
                results.failed += 1
                results.errors.append(BulkError(index=index, link=raindrop.link, error=str(e)))
                logger.warning("Bulk create failed at item %d (%s): %s", index, raindrop.link, e)
                if not continue_on_error:
                    break
                continue
            results.successful += 1
            results.created.append(data.get("item", {}))

        logger.info(
            "Bulk create finished: %d/%d created, %d failed",
            results.successful, results.total, results.failed,
        )
        return results


def _created_after(item: Dict[str, Any], floor: datetime) -> bool:
    created = item.get("created")
    if not isinstance(created, str) or not created:
        return False
    try:
        return parse_timestamp(created) > floor
    except ValueError:
        return False
