"""Shared type definitions for the legacy room migration tool.

Provides TypedDicts for rows read from the legacy store, dataclasses for the
entities written to the target store, and the enums that select per-entity
write behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypedDict, TypeVar
from uuid import UUID

# ---------------------------------------------------------------------------
# Legacy store rows (as returned by the dict row factory)
# ---------------------------------------------------------------------------


class LegacyRoom(TypedDict, total=False):
    """A row from the legacy ``rooms`` table."""

    id: UUID
    created_at: datetime
    opened_at: datetime
    closed_at: datetime | None
    audience: str
    parent_id: UUID | None
    stream: dict[str, Any]


class LegacyEvent(TypedDict, total=False):
    """A row from the legacy ``events`` table."""

    id: UUID
    type: str
    room_id: UUID
    created_at: datetime
    data: dict[str, Any]
    audience: str
    account_id: str
    offset: int


# ---------------------------------------------------------------------------
# Target store entities
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class Interval(Generic[T]):
    """A half-open ``[lower, upper)`` interval."""

    lower: T
    upper: T

    def __post_init__(self) -> None:
        if self.lower > self.upper:  # type: ignore[operator]
            raise ValueError(
                f"Interval lower bound {self.lower} is after upper bound {self.upper}"
            )


@dataclass(frozen=True)
class AccountId:
    """An account within an audience."""

    label: str
    audience: str


@dataclass(frozen=True)
class AgentId:
    """The actor that produced an event: an account plus an origin label."""

    account_id: AccountId
    label: str

    def __str__(self) -> str:
        return f"{self.label}.{self.account_id.label}.{self.account_id.audience}"


@dataclass(frozen=True)
class Room:
    id: UUID
    audience: str
    source_room_id: UUID | None
    time: Interval[datetime]
    created_at: datetime


@dataclass(frozen=True)
class Adjustment:
    room_id: UUID
    started_at: datetime
    segments: list[Interval[int]]
    offset: int | None
    created_at: datetime | None


@dataclass(frozen=True)
class Event:
    """A target event row.

    ``original_occurred_at`` is ``None`` while pending; the real value is
    computed by a separate backfill job.
    """

    id: UUID
    room_id: UUID
    kind: str
    set: str
    label: str | None
    data: Any
    occurred_at: int
    created_by: AgentId
    created_at: datetime
    original_occurred_at: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.original_occurred_at is None


# ---------------------------------------------------------------------------
# Write behaviour
# ---------------------------------------------------------------------------


class ConflictPolicy(str, Enum):
    """What an insert does when the conflict target already exists."""

    UPDATE = "update"  # overwrite the listed columns
    SKIP = "skip"  # leave the existing row untouched
    NONE = "none"  # no conflict clause; a duplicate is an error


class WatermarkMode(str, Enum):
    """How the event watermark bounds extraction."""

    STRICT = "strict"  # created_at > watermark
    INCLUSIVE = "inclusive"  # created_at >= watermark, duplicates skipped by id


# ---------------------------------------------------------------------------
# Run statistics
# ---------------------------------------------------------------------------


class MigrationSummary(TypedDict):
    """Counters collected during a migration run."""

    rooms_read: int
    rooms_written: int
    adjustments_read: int
    adjustments_inserted: int
    adjustments_skipped: int
    events_read: int
    events_inserted: int
    events_dropped: int
