"""Core migration logic: configuration, the legacy link, per-entity migrators and orchestration."""

__all__ = [
    "adjustments",
    "config",
    "event_sync",
    "legacy_link",
    "migration_logging",
    "migrator",
    "rooms",
    "state",
    "status",
]
