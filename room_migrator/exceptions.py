"""Custom exception hierarchy for the legacy room migration tool."""

from __future__ import annotations


class MigratorError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigratorError):
    """Raised when configuration is invalid or missing."""


class LegacyConnectionError(MigratorError):
    """Raised when the read link to the legacy store cannot be opened."""


class LegacyReadError(MigratorError):
    """Raised when a query against the legacy store fails."""


class TransformError(MigratorError):
    """Raised when a legacy record is malformed or misses a required field."""

    def __init__(self, entity: str, record_id: object, reason: str) -> None:
        self.entity = entity
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Cannot migrate {entity} {record_id}: {reason}")


class TargetConnectionError(MigratorError):
    """Raised when the target store cannot be reached or queried."""


class WriteError(MigratorError):
    """Raised when the target store rejects a write."""
