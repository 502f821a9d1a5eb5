"""Shared test fixtures for the room_migrator test suite."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable

import psycopg
import pytest

ROOM_A = uuid.UUID("11111111-1111-1111-1111-111111111111")
ROOM_B = uuid.UUID("22222222-2222-2222-2222-222222222222")
PARENT = uuid.UUID("33333333-3333-3333-3333-333333333333")


def ts(*args: int) -> datetime:
    """UTC datetime shorthand."""
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake psycopg connection and cursor
# ---------------------------------------------------------------------------


class FakeCursor:
    """Records executed SQL and serves canned rows.

    ``rows`` are returned by ``fetchmany`` in order; ``one`` is returned by
    ``fetchone``. ``rowcount_for`` decides the rowcount after ``executemany``
    (default: every row counts as written). ``fail_on`` raises a psycopg
    error from any statement containing that text.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        one: Any = None,
        rowcount_for: Callable[[str, list[dict[str, Any]]], int] | None = None,
        fail_on: str | None = None,
        name: str | None = None,
    ) -> None:
        self.rows = list(rows or [])
        self.one = one
        self.rowcount_for = rowcount_for
        self.fail_on = fail_on
        self.name = name
        self.rowcount = -1
        self.executed: list[tuple[str, Any]] = []
        self.executemany_calls: list[tuple[str, list[dict[str, Any]]]] = []
        self.closed = False

    def _check(self, query: str) -> None:
        if self.fail_on and self.fail_on in query:
            raise psycopg.OperationalError(f"boom on {self.fail_on}")

    def execute(self, query: str, params: Any = None) -> FakeCursor:
        self._check(query)
        self.executed.append((query, params))
        return self

    def executemany(self, query: str, params_seq: Any) -> None:
        self._check(query)
        params = list(params_seq)
        self.executemany_calls.append((query, params))
        if self.rowcount_for is not None:
            self.rowcount = self.rowcount_for(query, params)
        else:
            self.rowcount = len(params)

    def fetchmany(self, size: int) -> list[dict[str, Any]]:
        batch, self.rows = self.rows[:size], self.rows[size:]
        return batch

    def fetchone(self) -> Any:
        return self.one

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class FakeConnection:
    """Minimal stand-in for ``psycopg.Connection``.

    ``results`` maps a cursor name (``None`` for unnamed cursors) to the
    rows that cursor serves. ``transaction()`` behaves like psycopg's: it
    commits on a clean exit, swallows ``psycopg.Rollback`` and rolls back on
    any other exception.
    """

    def __init__(
        self,
        results: dict[str | None, list[dict[str, Any]]] | None = None,
        one: Any = None,
        rowcount_for: Callable[[str, list[dict[str, Any]]], int] | None = None,
        fail_on: str | None = None,
    ) -> None:
        self.results = results or {}
        self.one = one
        self.rowcount_for = rowcount_for
        self.fail_on = fail_on
        self.cursors: list[FakeCursor] = []
        self.isolation_level = None
        self.read_only = None
        self.closed = False
        self.committed = False
        self.rolled_back = False

    def cursor(self, name: str | None = None) -> FakeCursor:
        cur = FakeCursor(
            rows=self.results.get(name, []),
            one=self.one,
            rowcount_for=self.rowcount_for,
            fail_on=self.fail_on,
            name=name,
        )
        self.cursors.append(cur)
        return cur

    def execute(self, query: str, params: Any = None) -> FakeCursor:
        return self.cursor().execute(query, params)

    @property
    def executed(self) -> list[tuple[str, Any]]:
        return [call for cur in self.cursors for call in cur.executed]

    @property
    def executemany_calls(self) -> list[tuple[str, list[dict[str, Any]]]]:
        return [call for cur in self.cursors for call in cur.executemany_calls]

    @contextmanager
    def transaction(self):
        try:
            yield self
        except psycopg.Rollback:
            self.rolled_back = True
        except BaseException:
            self.rolled_back = True
            raise
        else:
            self.committed = True

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class FakeConnector:
    """Replacement for ``psycopg.connect`` handing out prepared connections.

    Calls with a positional DSN get the target connection; keyword-only
    calls (host, dbname, ...) get the legacy connection.
    """

    def __init__(
        self,
        legacy: FakeConnection | None = None,
        target: FakeConnection | None = None,
    ) -> None:
        self.legacy = legacy or FakeConnection()
        self.target = target or FakeConnection()
        self.calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def __call__(self, *args: Any, **kwargs: Any) -> FakeConnection:
        self.calls.append((args, kwargs))
        return self.target if args else self.legacy


# ---------------------------------------------------------------------------
# Legacy row builders
# ---------------------------------------------------------------------------


def make_legacy_room(**overrides: Any) -> dict[str, Any]:
    """Build a row resembling the legacy ``rooms`` table."""
    row: dict[str, Any] = {
        "id": ROOM_A,
        "created_at": ts(2020, 1, 1),
        "opened_at": ts(2020, 1, 2, 10),
        "closed_at": ts(2020, 1, 2, 12),
        "audience": "example.org",
        "parent_id": None,
        "stream": {},
    }
    row.update(overrides)
    return row


def make_legacy_event(**overrides: Any) -> dict[str, Any]:
    """Build a row resembling the legacy ``events`` table."""
    row: dict[str, Any] = {
        "id": uuid.uuid4(),
        "type": "message",
        "room_id": ROOM_A,
        "created_at": ts(2020, 1, 2, 11),
        "data": {"text": "hello"},
        "audience": "example.org",
        "account_id": "alice",
        "offset": 30,
    }
    row.update(overrides)
    return row


@pytest.fixture()
def legacy_room():
    return make_legacy_room()


@pytest.fixture()
def legacy_event():
    return make_legacy_event()


@pytest.fixture()
def legacy_env():
    """Environment with credentials for both stores."""
    return {
        "SOURCE_HOST": "legacy.internal",
        "SOURCE_PORT": "5433",
        "SOURCE_DB": "conference",
        "SOURCE_USER": "reader",
        "SOURCE_PASSWORD": "secret",
        "DATABASE_URL": "postgresql://writer@target/event",
    }
