"""Constants shared across the migration tool."""

from __future__ import annotations

from datetime import datetime, timezone

# Legacy event types eligible for migration, in mapping-table order
ELIGIBLE_EVENT_TYPES = (
    "document",
    "document-delete",
    "stream",
    "message",
    "draw",
    "layout",
    "leader",
)

# Rooms without a close time stay open for this many calendar years
OPEN_ROOM_YEARS = 10

MICROSECONDS_PER_SECOND = 1_000_000

# Origin label identifying the ingestion channel of migrated events
DEFAULT_AGENT_LABEL = "web"

# Stored in the NOT NULL original_occurred_at column until a backfill runs
PENDING_ORIGINAL_OCCURRED_AT = -1

# Watermark used when the target event table is empty
MIN_WATERMARK = datetime.min.replace(tzinfo=timezone.utc)

DEFAULT_BATCH_SIZE = 1000
DEFAULT_LEGACY_PORT = 5432

# Environment variables
ENV_SOURCE_HOST = "SOURCE_HOST"
ENV_SOURCE_PORT = "SOURCE_PORT"
ENV_SOURCE_DB = "SOURCE_DB"
ENV_SOURCE_USER = "SOURCE_USER"
ENV_SOURCE_PASSWORD = "SOURCE_PASSWORD"
ENV_TARGET_DSN = "DATABASE_URL"

LOGGER_NAME = "room_migrator"

LEGACY_EVENTS_INDEX_NAME = "events_created_at_idx"
