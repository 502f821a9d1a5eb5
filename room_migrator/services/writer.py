"""
Per-entity insert statements for the target store.

Each target table gets one ``EntityWriter`` with its own conflict policy:
rooms refresh only their time interval, adjustments are never touched once
written, and events carry no conflict clause at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import psycopg

from room_migrator.exceptions import WriteError
from room_migrator.types import ConflictPolicy


@dataclass(frozen=True)
class EntityWriter:
    """Builds and runs the insert statement for one target table.

    Args:
        table: Target table name.
        columns: Column names, in insert order.
        conflict_target: Columns (or ``on constraint`` name) the conflict
            clause refers to. Unused for ``ConflictPolicy.NONE``.
        policy: What to do when the conflict target already exists.
        update_columns: Columns overwritten from ``excluded`` on conflict.
        expressions: Optional SQL value expression per column, replacing the
            default ``%(column)s`` placeholder.
    """

    table: str
    columns: Sequence[str]
    policy: ConflictPolicy
    conflict_target: Sequence[str] = ()
    update_columns: Sequence[str] = ()
    expressions: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.policy is ConflictPolicy.UPDATE and not self.update_columns:
            raise ValueError(f"{self.table}: UPDATE policy needs update_columns")
        if self.policy is not ConflictPolicy.NONE and not self.conflict_target:
            raise ValueError(f"{self.table}: {self.policy.value} policy needs a conflict target")
        unknown = set(self.update_columns) - set(self.columns)
        if unknown:
            raise ValueError(f"{self.table}: cannot update unknown columns {sorted(unknown)}")

    @property
    def sql(self) -> str:
        cols = ", ".join(_quote(c) for c in self.columns)
        values = ", ".join(
            self.expressions.get(c, f"%({c})s") for c in self.columns
        )
        statement = f"insert into {self.table} ({cols}) values ({values})"
        return statement + self._conflict_clause()

    def _conflict_clause(self) -> str:
        if self.policy is ConflictPolicy.NONE:
            return ""
        target = ", ".join(_quote(c) for c in self.conflict_target)
        if self.policy is ConflictPolicy.SKIP:
            return f" on conflict ({target}) do nothing"
        assignments = ", ".join(
            f"{_quote(c)} = excluded.{_quote(c)}" for c in self.update_columns
        )
        return f" on conflict ({target}) do update set {assignments}"

    def write(self, cursor: Any, rows: Iterable[dict[str, Any]]) -> int:
        """Insert ``rows`` and return how many the database reports as written.

        Skipped conflicts are not counted.
        """
        params = list(rows)
        if not params:
            return 0
        try:
            cursor.executemany(self.sql, params)
        except psycopg.Error as e:
            raise WriteError(f"Failed to write {len(params)} row(s) to {self.table}: {e}") from e
        rowcount = cursor.rowcount
        return rowcount if rowcount is not None and rowcount >= 0 else len(params)


# Reserved words used as column names in the target schema
_RESERVED = frozenset(("offset", "set", "time"))


def _quote(column: str) -> str:
    return f'"{column}"' if column in _RESERVED else column
