"""
Legacy event → target event mapping.

Every eligible legacy ``type`` has exactly one handler below. A type without a
handler is dropped: ``transform_event`` returns ``None`` for it rather than
falling back to a default mapping.

Handlers return ``(kind, set, label, data)``; the fields shared by all types
(ids, timing, author) are filled in by ``transform_event``.
"""

from __future__ import annotations

import json
import uuid
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

from room_migrator.constants import DEFAULT_AGENT_LABEL, MICROSECONDS_PER_SECOND
from room_migrator.exceptions import TransformError
from room_migrator.types import AccountId, AgentId, Event, LegacyEvent

HandlerResult = Tuple[str, str, Optional[str], Any]
EventHandler = Callable[[LegacyEvent], HandlerResult]

REMOVED_MARKER = {"_removed": True}


def url_hash(url: str) -> str:
    """Deterministic identifier for a URL (UUIDv5 in the URL namespace)."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, url))


def _fail(row: LegacyEvent, reason: str) -> TransformError:
    return TransformError("event", row.get("id"), reason)


def _json_text(value: Any) -> str:
    """Render a JSON scalar the way Postgres' ``->>`` operator does."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _data(row: LegacyEvent) -> dict[str, Any]:
    data = row.get("data")
    if not isinstance(data, dict):
        raise _fail(row, f"data must be a JSON object, got {type(data).__name__}")
    return data


def _url(row: LegacyEvent) -> str:
    url = _data(row).get("url")
    if not isinstance(url, str) or not url:
        raise _fail(row, f"{row.get('type')} event has no data.url")
    return url


# ---------------------------------------------------------------------------
# Handlers, one per eligible legacy type
# ---------------------------------------------------------------------------


def _document(row: LegacyEvent) -> HandlerResult:
    return "document", row["type"], url_hash(_url(row)), row.get("data")


def _document_delete(row: LegacyEvent) -> HandlerResult:
    label = url_hash(_url(row))
    return "document", row["type"], label, {**_data(row), **REMOVED_MARKER}


def _stream(row: LegacyEvent) -> HandlerResult:
    return "stream", row["type"], str(row["id"]), row.get("data")


def _message(row: LegacyEvent) -> HandlerResult:
    return "message", row["type"], str(row["id"]), row.get("data")


def _draw(row: LegacyEvent) -> HandlerResult:
    data = _data(row)
    page = data.get("page")
    if page is None:
        raise _fail(row, "draw event has no data.page")
    geometry = data.get("geometry")
    if not isinstance(geometry, dict):
        raise _fail(row, "draw event has no data.geometry object")
    geometry_id = geometry.get("_id")
    if geometry_id is None:
        raise _fail(row, "draw event has no data.geometry._id")

    set_name = f"draw_{url_hash(_url(row))}_{_json_text(page)}"
    return "draw", set_name, _json_text(geometry_id), geometry


def _layout(row: LegacyEvent) -> HandlerResult:
    return "layout", row["type"], None, row.get("data")


def _leader(row: LegacyEvent) -> HandlerResult:
    return "leader", row["type"], None, row.get("data")


EVENT_HANDLERS: Mapping[str, EventHandler] = MappingProxyType(
    {
        "document": _document,
        "document-delete": _document_delete,
        "stream": _stream,
        "message": _message,
        "draw": _draw,
        "layout": _layout,
        "leader": _leader,
    }
)


def is_eligible(event_type: str | None) -> bool:
    return event_type in EVENT_HANDLERS


def transform_event(
    row: LegacyEvent, agent_label: str = DEFAULT_AGENT_LABEL
) -> Event | None:
    """Map one legacy event row to a target ``Event``.

    Args:
        row: The legacy event row.
        agent_label: Origin label for the ``created_by`` agent.

    Returns:
        The target event, or None when the legacy type is not migrated.

    Raises:
        TransformError: If a field required by the type's mapping is missing
            or malformed.
    """
    if not is_eligible(row.get("type")):
        return None
    handler = EVENT_HANDLERS[row["type"]]

    for required in ("id", "room_id", "created_at", "account_id", "audience"):
        if row.get(required) is None:
            raise _fail(row, f"missing {required}")

    offset = row.get("offset")
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise _fail(row, f"offset must be an integer, got {offset!r}")

    kind, set_name, label, data = handler(row)

    return Event(
        id=row["id"],
        room_id=row["room_id"],
        kind=kind,
        set=set_name,
        label=label,
        data=data,
        occurred_at=offset * MICROSECONDS_PER_SECOND,
        created_by=AgentId(
            account_id=AccountId(label=row["account_id"], audience=row["audience"]),
            label=agent_label,
        ),
        created_at=row["created_at"],
    )
