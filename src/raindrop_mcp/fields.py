"""Field selection for tool responses.

A selector is either the name of a preset or an explicit list of field
names. Selectors are projected over single records, lists of records, or
whole API envelopes (``{"item": {...}}`` / ``{"items": [...], ...}``).
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

FIELD_PRESETS: Dict[str, List[str]] = {
    "minimal": ["_id", "link", "title"],
    "basic": ["_id", "link", "title", "excerpt", "tags", "created", "domain"],
    "standard": [
        "_id", "link", "title", "excerpt", "note", "tags", "type", "cover",
        "created", "lastUpdate", "domain", "important",
    ],
    "media": ["_id", "link", "title", "cover", "media", "type", "file"],
    "organization": ["_id", "title", "tags", "collection", "collectionId", "sort", "removed"],
    "metadata": ["_id", "created", "lastUpdate", "creatorRef", "user", "broken", "cache"],
}

FieldSelector = Union[str, List[str]]

PAYLOAD_KEYS = ("item", "items")


class EnvelopeKind(str, Enum):
    SINGLE = "single"
    COLLECTION = "collection"
    OPAQUE = "opaque"


def parse_field_selector(value: Any) -> Any:
    """Decode a selector handed over by the transport.

    Lists, ``None`` and preset names pass through. Any other string must be
    a JSON-encoded list of field names.
    """
    if value is None or isinstance(value, list):
        return value
    if isinstance(value, str):
        if value in FIELD_PRESETS:
            return value
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError(
                f"Invalid field selector {value!r}: expected a preset "
                f"({', '.join(FIELD_PRESETS)}) or a JSON list of field names"
            )
        if not isinstance(decoded, list):
            raise ValueError(f"Invalid field selector {value!r}: expected a list")
        return decoded
    return value


def resolve_fields(selector: FieldSelector) -> List[str]:
    if isinstance(selector, str):
        if selector in FIELD_PRESETS:
            return list(FIELD_PRESETS[selector])
        selector = parse_field_selector(selector)
    return list(selector)


def envelope_kind(payload: Dict[str, Any]) -> EnvelopeKind:
    if isinstance(payload.get("items"), list):
        return EnvelopeKind.COLLECTION
    if isinstance(payload.get("item"), dict):
        return EnvelopeKind.SINGLE
    return EnvelopeKind.OPAQUE


def _project(record: Dict[str, Any], field_list: List[str]) -> Dict[str, Any]:
    return {field: record[field] for field in field_list if field in record}


def filter_fields(data: Any, selector: Optional[FieldSelector] = None) -> Any:
    """Project a record or a list of records onto the selected fields."""
    if selector is None:
        return data

    field_list = resolve_fields(selector)
    if isinstance(data, list):
        return [_project(item, field_list) for item in data]
    return _project(data, field_list)


def filter_response(
    payload: Dict[str, Any], selector: Optional[FieldSelector] = None
) -> Dict[str, Any]:
    """Project the payload of an API envelope, keeping its metadata.

    An empty field list drops ``item``/``items`` and returns metadata only.
    """
    if selector is None:
        return payload

    field_list = resolve_fields(selector)
    if not field_list:
        return {key: value for key, value in payload.items() if key not in PAYLOAD_KEYS}

    kind = envelope_kind(payload)
    if kind is EnvelopeKind.COLLECTION:
        return {**payload, "items": filter_fields(payload["items"], field_list)}
    if kind is EnvelopeKind.SINGLE:
        return {**payload, "item": filter_fields(payload["item"], field_list)}
    if kind is EnvelopeKind.OPAQUE:
        return payload
    raise AssertionError(f"Unhandled envelope kind: {kind}")
