from datetime import datetime, timedelta, timezone

import pytest

from poolmon.plugins.annotations.service import (
    Annotation,
    annotation_exists,
    query_annotations,
    store_annotation,
    store_range_annotation,
)

T0 = datetime(2026, 7, 4, 8, 0, tzinfo=timezone.utc)


def point(minutes, category="pump_state_change", title="Filter Pump ON", **kwargs):
    return Annotation(timestamp=T0 + timedelta(minutes=minutes), category=category, title=title, **kwargs)


class TestStore:
    def test_assigns_id_and_round_trips_metadata(self, db):
        stored = store_annotation(point(0, description="Filter Pump turned on", metadata={"new_state": True}))
        assert stored.id is not None
        assert stored.timestamp == T0
        assert stored.metadata == {"new_state": True}
        assert stored.end_time is None

    def test_external_id_deduplicates(self, db):
        first = store_annotation(point(0, external_id="evt-1"))
        second = store_annotation(point(30, title="changed", external_id="evt-1"))
        assert second.id == first.id
        assert second.title == "Filter Pump ON"
        assert annotation_exists("evt-1")
        assert not annotation_exists("evt-2")
        assert len(query_annotations(T0 - timedelta(hours=1))) == 1

    def test_range_rejects_inverted_interval(self, db):
        with pytest.raises(ValueError):
            store_range_annotation(T0, T0 - timedelta(minutes=1), "weather_alert", "Backwards")

    def test_range_stored(self, db):
        stored = store_range_annotation(T0, T0 + timedelta(hours=3), "weather_alert", "Heat Advisory", metadata={"severity": "Moderate"})
        assert stored.end_time == T0 + timedelta(hours=3)


class TestQuery:
    def test_window_and_order(self, db):
        for minutes in (90, 10, 50, -30):
            store_annotation(point(minutes, title=f"at {minutes}"))
        found = query_annotations(T0, T0 + timedelta(hours=1))
        assert [a.title for a in found] == ["at 10", "at 50"]

    def test_open_ended_window(self, db):
        store_annotation(point(500))
        assert len(query_annotations(T0)) == 1

    def test_category_filter(self, db):
        store_annotation(point(5))
        store_annotation(point(6, category="manual", title="Added chlorine"))
        found = query_annotations(T0, category="manual")
        assert [a.title for a in found] == ["Added chlorine"]

    def test_range_overlapping_window_start(self, db):
        store_range_annotation(T0 - timedelta(hours=2), T0 + timedelta(minutes=15), "weather_alert", "Storm")
        store_range_annotation(T0 - timedelta(hours=5), T0 - timedelta(hours=4), "weather_alert", "Old")
        found = query_annotations(T0, T0 + timedelta(hours=1))
        assert [a.title for a in found] == ["Storm"]
