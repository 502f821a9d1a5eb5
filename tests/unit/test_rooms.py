"""Unit tests for room migration."""

import pytest
from psycopg.types.range import TimestamptzRange

from room_migrator.core.rooms import (
    LEGACY_ROOMS_QUERY,
    RoomMigrator,
    add_years,
    room_from_legacy,
    room_params,
)
from room_migrator.exceptions import LegacyReadError, TransformError
from room_migrator.types import Interval
from tests.conftest import PARENT, ROOM_A, ROOM_B, FakeCursor, make_legacy_room, ts


class TestAddYears:
    def test_plain_date(self):
        assert add_years(ts(2020, 3, 15, 9, 30), 10) == ts(2030, 3, 15, 9, 30)

    def test_leap_day_lands_on_feb_28(self):
        assert add_years(ts(2020, 2, 29, 12), 10) == ts(2030, 2, 28, 12)

    def test_leap_day_to_leap_year(self):
        assert add_years(ts(2020, 2, 29), 4) == ts(2024, 2, 29)


class TestRoomFromLegacy:
    def test_closed_room(self):
        row = make_legacy_room(parent_id=PARENT)
        room = room_from_legacy(row)

        assert room.id == ROOM_A
        assert room.audience == "example.org"
        assert room.source_room_id == PARENT
        assert room.time == Interval(ts(2020, 1, 2, 10), ts(2020, 1, 2, 12))
        assert room.created_at == ts(2020, 1, 1)

    def test_open_room_gets_ten_year_interval(self):
        room = room_from_legacy(make_legacy_room(closed_at=None))
        assert room.time == Interval(ts(2020, 1, 2, 10), ts(2030, 1, 2, 10))

    def test_open_room_years_is_configurable(self):
        room = room_from_legacy(make_legacy_room(closed_at=None), open_room_years=1)
        assert room.time.upper == ts(2021, 1, 2, 10)

    def test_zero_length_room_is_allowed(self):
        row = make_legacy_room(closed_at=ts(2020, 1, 2, 10))
        assert room_from_legacy(row).time.lower == room_from_legacy(row).time.upper

    def test_missing_opened_at(self):
        with pytest.raises(TransformError, match="missing opened_at"):
            room_from_legacy(make_legacy_room(opened_at=None))

    def test_closed_before_opened(self):
        with pytest.raises(TransformError, match="before opened_at"):
            room_from_legacy(make_legacy_room(closed_at=ts(2020, 1, 1)))


def test_room_params_uses_half_open_range():
    params = room_params(room_from_legacy(make_legacy_room()))

    assert params["time"] == TimestamptzRange(
        ts(2020, 1, 2, 10), ts(2020, 1, 2, 12), "[)"
    )
    assert params["source_room_id"] is None
    assert set(params) == {"id", "audience", "source_room_id", "time", "created_at"}


def test_legacy_query_skips_deleted_rooms():
    assert "deleted_at is null" in LEGACY_ROOMS_QUERY


class TestRoomMigrator:
    def test_upserts_every_room_in_batches(self, make_legacy_link, config, state):
        rows = [
            make_legacy_room(),
            make_legacy_room(id=ROOM_B, closed_at=None),
            make_legacy_room(id=PARENT),
        ]
        link, legacy_conn = make_legacy_link({"legacy_rooms": rows})
        cursor = FakeCursor()

        written = RoomMigrator(link, config, state).run(cursor)

        assert written == 3
        # batch_size is 2 in the unit config
        assert [len(p) for _, p in cursor.executemany_calls] == [2, 1]
        assert state.summary["rooms_read"] == 3
        assert state.summary["rooms_written"] == 3
        assert legacy_conn.cursors[0].name == "legacy_rooms"

    def test_no_rooms(self, make_legacy_link, config, state):
        link, _ = make_legacy_link({})
        cursor = FakeCursor()

        assert RoomMigrator(link, config, state).run(cursor) == 0
        assert cursor.executemany_calls == []

    def test_bad_row_aborts(self, make_legacy_link, config, state):
        link, _ = make_legacy_link({"legacy_rooms": [make_legacy_room(opened_at=None)]})

        with pytest.raises(TransformError):
            RoomMigrator(link, config, state).run(FakeCursor())
        assert state.summary["rooms_written"] == 0

    def test_legacy_failure(self, make_legacy_link, config, state):
        link, legacy_conn = make_legacy_link({})
        legacy_conn.fail_on = "from rooms"

        with pytest.raises(LegacyReadError):
            RoomMigrator(link, config, state).run(FakeCursor())
