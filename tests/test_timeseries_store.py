from datetime import datetime, timedelta, timezone

import pytest

from poolmon.core.errors import InvalidPointError
from poolmon.plugins.timeseries.backend import SeriesRow, SqlTimeSeriesBackend, TimeSeriesBackend
from poolmon.plugins.timeseries.point import TimeSeriesPoint
from poolmon.plugins.timeseries.store import TimeSeriesStore, round_half_up

NOW = datetime(2026, 7, 4, 12, 0, tzinfo=timezone.utc)


def at(minutes_ago: float, **fields) -> TimeSeriesPoint:
    return TimeSeriesPoint(timestamp=NOW - timedelta(minutes=minutes_ago), **fields)


class RecordingBackend(TimeSeriesBackend):
    def __init__(self, fail_writes=False, fail_queries=False, rows=None):
        self.fail_writes = fail_writes
        self.fail_queries = fail_queries
        self.rows = rows or []
        self.writes = []
        self.queries = 0

    def write_point(self, measurement, fields, timestamp, tags=None):
        if self.fail_writes:
            raise ConnectionError("backend down")
        self.writes.append((measurement, fields, timestamp))

    def query_range(self, measurement, start, end=None, fields=None, tags=None):
        self.queries += 1
        if self.fail_queries:
            raise ConnectionError("backend down")
        return [row for row in self.rows if row.timestamp >= start]


def make_store(**kwargs):
    kwargs.setdefault("clock", lambda: NOW)
    return TimeSeriesStore(**kwargs)


class TestWrite:
    def test_missing_timestamp_rejected_before_any_write(self):
        backend = RecordingBackend()
        store = make_store(backend=backend)
        with pytest.raises(InvalidPointError):
            store.write(TimeSeriesPoint(timestamp=None, water_temp=80))
        store.flush(5)
        assert store.size() == 0
        assert backend.writes == []
        assert store.get_latest() is None

    def test_duplicate_timestamp_keeps_latest_write(self):
        store = make_store()
        store.write(at(5, water_temp=80))
        store.write(at(5, water_temp=81))
        points = store.query_range(1, 100)
        assert len(points) == 1
        assert points[0].water_temp == 81

    def test_out_of_order_writes_read_back_sorted(self):
        store = make_store()
        for minutes in (3, 10, 1, 7):
            store.write(at(minutes, water_temp=minutes))
        assert [p.water_temp for p in store.query_range(1, 100)] == [10, 7, 3, 1]

    def test_overflow_keeps_largest_timestamps(self):
        store = make_store(capacity=5)
        order = [9, 2, 7, 0, 5, 8, 1, 3, 6, 4]
        for minutes in order:
            store.write(at(minutes, water_temp=minutes))
        assert store.size() == 5
        assert [p.water_temp for p in store.query_range(1, 100)] == [4, 3, 2, 1, 0]

    def test_older_point_than_buffer_is_evicted_immediately(self):
        store = make_store(capacity=2)
        store.write(at(1))
        store.write(at(2))
        store.write(at(30, water_temp=1))
        assert [p.timestamp for p in store.query_range(1, 10)] == [at(2).timestamp, at(1).timestamp]

    def test_get_latest_is_newest_timestamp(self):
        store = make_store()
        store.write(at(1, water_temp=1))
        store.write(at(10, water_temp=10))
        assert store.get_latest().water_temp == 1

    def test_get_latest_ignores_late_point_evicted_on_insert(self):
        store = make_store(capacity=2)
        store.write(at(1, water_temp=84.0))
        store.write(at(2, water_temp=83.0))
        store.write(at(30, water_temp=70.0))
        assert store.get_latest().water_temp == 84.0
        assert [p.water_temp for p in store.query_range(1, 10)] == [83.0, 84.0]

    def test_naive_timestamps_are_treated_as_utc(self):
        store = make_store()
        store.write(TimeSeriesPoint(timestamp=(NOW - timedelta(minutes=1)).replace(tzinfo=None)))
        assert store.get_latest().timestamp.tzinfo is not None


class TestDurableWrite:
    def test_point_forwarded_to_backend(self):
        backend = RecordingBackend()
        store = make_store(backend=backend, measurement="pool_metrics")
        result = store.write(at(1, water_temp=80.5, pump_on=True)).result(timeout=5)
        assert result.ok
        assert backend.writes == [("pool_metrics", {"water_temp": 80.5, "pump_on": True}, at(1).timestamp)]

    def test_backend_failure_does_not_roll_back_buffer(self):
        store = make_store(backend=RecordingBackend(fail_writes=True))
        result = store.write(at(1, water_temp=80)).result(timeout=5)
        assert not result.ok
        assert "backend down" in result.error
        assert store.size() == 1
        assert store.get_latest().water_temp == 80

    def test_without_backend_write_is_skipped(self):
        result = make_store().write(at(1)).result(timeout=1)
        assert result.ok and result.skipped

    def test_flush_waits_for_pending_writes(self):
        backend = RecordingBackend()
        store = make_store(backend=backend)
        for minutes in range(20):
            store.write(at(minutes))
        assert store.flush(5)
        assert len(backend.writes) == 20
        store.close()


class TestQueryRange:
    def test_window_and_limit(self):
        store = make_store()
        for minutes in (5, 30, 90, 200):
            store.write(at(minutes, water_temp=minutes))
        assert [p.water_temp for p in store.query_range(1, 100)] == [30, 5]
        assert [p.water_temp for p in store.query_range(4, 100)] == [200, 90, 30, 5]
        assert [p.water_temp for p in store.query_range(4, 2)] == [200, 90]
        assert store.query_range(4, 0) == []

    def test_long_window_prefers_backend(self):
        rows = [SeriesRow(NOW - timedelta(hours=20), {"water_temp": 70.0})]
        backend = RecordingBackend(rows=rows)
        store = make_store(backend=backend)
        store.write(at(1, water_temp=80))
        points = store.query_range(24, 100)
        assert [p.water_temp for p in points] == [70.0]
        assert backend.queries == 1

    def test_recent_window_served_from_memory(self):
        backend = RecordingBackend(rows=[SeriesRow(NOW - timedelta(minutes=5), {"water_temp": 70.0})])
        store = make_store(backend=backend)
        store.write(at(1, water_temp=80))
        assert [p.water_temp for p in store.query_range(1, 100)] == [80]
        assert backend.queries == 0

    def test_backend_failure_falls_back_to_memory(self):
        store = make_store(backend=RecordingBackend(fail_queries=True))
        store.write(at(1, water_temp=80))
        assert [p.water_temp for p in store.query_range(24, 100)] == [80]

    def test_empty_backend_result_falls_back_to_memory(self):
        store = make_store(backend=RecordingBackend(rows=[]))
        store.write(at(1, water_temp=80))
        assert [p.water_temp for p in store.query_range(24, 100)] == [80]


class TestStats:
    def test_min_max_avg(self):
        store = make_store()
        for minutes, value in ((1, 70), (2, 75), (3, 80)):
            store.write(at(minutes, water_temp=value))
        stats = store.stats("water_temp", 1)
        assert (stats.min, stats.max, stats.avg) == (70, 80, 75)

    def test_all_null_field(self):
        store = make_store()
        store.write(at(1, water_temp=70))
        stats = store.stats("salt_instant", 1)
        assert (stats.min, stats.max, stats.avg) == (None, None, None)

    def test_nulls_ignored_and_rounded(self):
        store = make_store()
        store.write(at(1, cell_voltage=23.44))
        store.write(at(2))
        store.write(at(3, cell_voltage=23.5))
        store.write(at(4, cell_voltage=23.47))
        stats = store.stats("cell_voltage", 1)
        assert (stats.min, stats.max, stats.avg) == (23.4, 23.5, 23.5)

    def test_halves_round_up(self):
        store = make_store()
        store.write(at(1, water_temp=72.0))
        store.write(at(2, water_temp=72.5))
        assert store.stats("water_temp", 1).avg == 72.3

    def test_round_half_up(self):
        assert round_half_up(72.25) == 72.3
        assert round_half_up(0.05) == 0.1
        assert round_half_up(-0.25) == -0.2

    def test_unknown_or_boolean_field_rejected(self):
        store = make_store()
        with pytest.raises(ValueError):
            store.stats("nope", 1)
        with pytest.raises(ValueError):
            store.stats("pump_on", 1)


class TestSqlBackend:
    def test_round_trip_through_store(self, db):
        backend = SqlTimeSeriesBackend()
        writer = make_store(backend=backend)
        writer.write(at(120, water_temp=79.0, pump_on=False)).result(timeout=5)
        writer.write(at(60, water_temp=80.0, pump_on=True)).result(timeout=5)

        reader = make_store(backend=backend)
        points = reader.query_range(24, 100)
        assert [(p.water_temp, p.pump_on) for p in points] == [(79.0, False), (80.0, True)]
        assert points[0].timestamp == at(120).timestamp

    def test_last_write_per_timestamp_wins(self, db):
        backend = SqlTimeSeriesBackend()
        ts = NOW - timedelta(minutes=10)
        backend.write_point("pool_metrics", {"water_temp": 80.0}, ts)
        backend.write_point("pool_metrics", {"salt_instant": 2900}, ts)
        backend.write_point("other", {"water_temp": 1.0}, ts)

        rows = backend.query_range("pool_metrics", NOW - timedelta(hours=1), NOW)
        assert rows == [SeriesRow(ts, {"salt_instant": 2900})]

    def test_overwritten_point_reads_back_like_buffer(self, db):
        backend = SqlTimeSeriesBackend()
        writer = make_store(backend=backend)
        writer.write(at(10, water_temp=80.0, salt_instant=2900)).result(timeout=5)
        writer.write(at(10, water_temp=81.0)).result(timeout=5)

        reader = make_store(backend=backend)
        stored = reader.query_range(24, 100)
        buffered = writer.query_range(1, 100)
        assert [(p.water_temp, p.salt_instant) for p in stored] == [(81.0, None)]
        assert [(p.water_temp, p.salt_instant) for p in buffered] == [(81.0, None)]

    def test_field_and_tag_filters(self, db):
        backend = SqlTimeSeriesBackend()
        ts = NOW - timedelta(minutes=10)
        backend.write_point("m", {"water_temp": 80.0, "air_temp": 75.0}, ts, tags={"pool": "main"})
        backend.write_point("m", {"water_temp": 60.0}, ts + timedelta(minutes=1), tags={"pool": "spa"})

        rows = backend.query_range("m", NOW - timedelta(hours=1), fields=["water_temp"], tags={"pool": "main"})
        assert rows == [SeriesRow(ts, {"water_temp": 80.0})]
