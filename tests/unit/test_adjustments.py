"""Unit tests for adjustment migration."""

import pytest
from psycopg.types.range import Int8Range

from room_migrator.core.adjustments import (
    LEGACY_STREAMS_QUERY,
    AdjustmentMigrator,
    adjustment_from_legacy,
    adjustment_params,
    segments_from_fragments,
)
from room_migrator.exceptions import TransformError
from room_migrator.types import Interval
from tests.conftest import ROOM_A, ROOM_B, FakeCursor, make_legacy_room, ts


class TestSegmentsFromFragments:
    def test_pairs_become_half_open_intervals_in_order(self):
        assert segments_from_fragments(ROOM_A, [[1, 2], [3, 4]]) == [
            Interval(1, 2),
            Interval(3, 4),
        ]

    def test_missing_fragments(self):
        assert segments_from_fragments(ROOM_A, None) == []

    def test_empty_fragments(self):
        assert segments_from_fragments(ROOM_A, []) == []

    def test_integral_floats_are_accepted(self):
        assert segments_from_fragments(ROOM_A, [[0.0, 5.0]]) == [Interval(0, 5)]

    @pytest.mark.parametrize(
        "fragments, expected",
        [
            ([[1.5, 2]], [Interval(2, 2)]),
            ([[1.5, 2.4]], [Interval(2, 2)]),
            ([[2.5, 3.5]], [Interval(3, 4)]),
            ([[-1.5, 0.4]], [Interval(-2, 0)]),
        ],
    )
    def test_fractional_values_round_half_away_from_zero(self, fragments, expected):
        assert segments_from_fragments(ROOM_A, fragments) == expected

    @pytest.mark.parametrize(
        "fragments",
        [
            "1-2",
            [[1]],
            [[1, 2, 3]],
            [[1, "2"]],
            [[True, 2]],
            [[float("nan"), 2]],
            [[1, None]],
            [{"start": 1, "end": 2}],
        ],
    )
    def test_malformed_fragments(self, fragments):
        with pytest.raises(TransformError):
            segments_from_fragments(ROOM_A, fragments)

    def test_reversed_fragment(self):
        with pytest.raises(TransformError, match="ends before it starts"):
            segments_from_fragments(ROOM_A, [[5, 1]])

    def test_reversed_after_rounding(self):
        with pytest.raises(TransformError, match="ends before it starts"):
            segments_from_fragments(ROOM_A, [[2.6, 2.4]])


class TestAdjustmentFromLegacy:
    def test_stream_descriptor(self):
        row = make_legacy_room(stream={"preroll": 7, "fragments": [[1, 2], [3, 4]]})
        adjustment = adjustment_from_legacy(row)

        assert adjustment.room_id == ROOM_A
        assert adjustment.started_at == ts(2020, 1, 2, 10)
        assert adjustment.segments == [Interval(1, 2), Interval(3, 4)]
        assert adjustment.offset == 7
        assert adjustment.created_at == ts(2020, 1, 2, 12)

    def test_no_preroll(self):
        adjustment = adjustment_from_legacy(make_legacy_room(stream={"fragments": []}))
        assert adjustment.offset is None

    def test_open_room_has_no_created_at(self):
        row = make_legacy_room(closed_at=None, stream={"preroll": 0})
        adjustment = adjustment_from_legacy(row)
        assert adjustment.created_at is None
        assert adjustment.offset == 0

    def test_bad_preroll(self):
        with pytest.raises(TransformError, match="preroll"):
            adjustment_from_legacy(make_legacy_room(stream={"preroll": "7"}))

    def test_fractional_preroll_is_rounded(self):
        adjustment = adjustment_from_legacy(make_legacy_room(stream={"preroll": 6.5}))
        assert adjustment.offset == 7

    def test_stream_must_be_object(self):
        with pytest.raises(TransformError, match="not a JSON object"):
            adjustment_from_legacy(make_legacy_room(stream=[1, 2]))


def test_adjustment_params_use_int8_ranges():
    row = make_legacy_room(stream={"preroll": 7, "fragments": [[1, 2], [3, 4]]})
    params = adjustment_params(adjustment_from_legacy(row))

    assert params["segments"] == [Int8Range(1, 2, "[)"), Int8Range(3, 4, "[)")]
    assert params["offset"] == 7


def test_legacy_query_only_reads_rooms_with_a_stream():
    assert "stream != '{}'::jsonb" in LEGACY_STREAMS_QUERY
    assert "deleted_at is null" in LEGACY_STREAMS_QUERY


class TestAdjustmentMigrator:
    def test_inserts_and_counts_skipped(self, make_legacy_link, config, state):
        rows = [
            make_legacy_room(stream={"preroll": 1, "fragments": [[0, 10]]}),
            make_legacy_room(id=ROOM_B, stream={"fragments": [[0, 5]]}),
        ]
        link, legacy_conn = make_legacy_link({"legacy_streams": rows})
        # ROOM_B already has an adjustment in the target
        cursor = FakeCursor(rowcount_for=lambda sql, params: 1)

        inserted = AdjustmentMigrator(link, config, state).run(cursor)

        assert inserted == 1
        assert state.summary["adjustments_read"] == 2
        assert state.summary["adjustments_inserted"] == 1
        assert state.summary["adjustments_skipped"] == 1
        assert legacy_conn.cursors[0].name == "legacy_streams"

    def test_rerun_inserts_nothing(self, make_legacy_link, config, state):
        rows = [make_legacy_room(stream={"preroll": 1})]
        link, _ = make_legacy_link({"legacy_streams": rows})
        cursor = FakeCursor(rowcount_for=lambda sql, params: 0)

        assert AdjustmentMigrator(link, config, state).run(cursor) == 0
        assert state.summary["adjustments_skipped"] == 1
