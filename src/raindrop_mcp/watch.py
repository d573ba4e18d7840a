from datetime import datetime, timezone
from typing import Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render a datetime the way Raindrop.io does: UTC, milliseconds, `Z`."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises ValueError on anything else.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class WatchStore:
    """Last-polled timestamp per collection id.

    Subclass to persist cursors or share them between processes.
    """

    def get(self, collection_id: int) -> Optional[str]:
        raise NotImplementedError

    def set(self, collection_id: int, timestamp: str) -> None:
        raise NotImplementedError


class MemoryWatchStore(WatchStore):
    """Process-lifetime cursor map.

    Not synchronised: tool calls run on a single event loop. Guard it with
    a lock if operations are ever driven from several threads.
    """

    def __init__(self):
        self._cursors: Dict[int, str] = {}

    def get(self, collection_id: int) -> Optional[str]:
        return self._cursors.get(collection_id)

    def set(self, collection_id: int, timestamp: str) -> None:
        self._cursors[collection_id] = timestamp

    def __contains__(self, collection_id: int) -> bool:
        return collection_id in self._cursors
