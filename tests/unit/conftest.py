"""Unit test configuration and shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from room_migrator.core.config import LegacyDatabaseConfig, MigrationConfig
from room_migrator.core.legacy_link import LegacyLinkManager
from room_migrator.core.state import MigrationState
from tests.conftest import FakeConnection, FakeConnector


@pytest.fixture()
def config():
    """A complete config with both stores set and progress bars off."""
    return MigrationConfig(
        batch_size=2,
        show_progress=False,
        legacy=LegacyDatabaseConfig(
            host="legacy.internal", database="conference", user="reader"
        ),
        target_dsn="postgresql://writer@target/event",
    )


@pytest.fixture()
def state():
    return MigrationState()


# ---------------------------------------------------------------------------
# Legacy link factory
# ---------------------------------------------------------------------------


def _build_legacy_link(
    config: MigrationConfig, results: dict[str | None, list[dict[str, Any]]]
) -> tuple[LegacyLinkManager, FakeConnection]:
    conn = FakeConnection(results=results)
    link = LegacyLinkManager(config.legacy, connect=FakeConnector(legacy=conn))
    link.acquire()
    return link, conn


@pytest.fixture()
def make_legacy_link(config):
    """Factory fixture: returns an open legacy link serving ``results``.

    Usage in tests::

        def test_something(make_legacy_link):
            link, conn = make_legacy_link({"legacy_rooms": [row]})
    """

    def _make(results: dict[str | None, list[dict[str, Any]]]):
        return _build_legacy_link(config, results)

    return _make
