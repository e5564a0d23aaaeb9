"""Tests for the SQLite history table and the bounded history query."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.history_table import HistoryTable, StoreError
from services.history import HistoryQuery

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_query_on_empty_table_returns_empty_list() -> None:
    query = HistoryQuery(HistoryTable())

    assert query.records(now=NOW) == []


def test_query_returns_only_records_inside_window_in_order() -> None:
    table = HistoryTable()
    table.append(10.0, 10.0, created_at=NOW - timedelta(hours=30))
    table.append(11.0, 11.0, created_at=NOW - timedelta(hours=24))
    table.append(12.0, 12.0, created_at=NOW - timedelta(hours=3))
    table.append(13.0, 13.0, created_at=NOW - timedelta(minutes=15))

    records = HistoryQuery(table).records(now=NOW)

    assert [record.temperature for record in records] == [11.0, 12.0, 13.0]
    assert all(record.created_at >= NOW - timedelta(hours=24) for record in records)
    assert [r.created_at for r in records] == sorted(r.created_at for r in records)


def test_query_honours_custom_window() -> None:
    table = HistoryTable()
    table.append(1.0, 1.0, created_at=NOW - timedelta(hours=5))
    table.append(2.0, 2.0, created_at=NOW - timedelta(minutes=30))
    query = HistoryQuery(table, window=timedelta(hours=24))

    records = query.records(now=NOW, window=timedelta(hours=1))

    assert [record.temperature for record in records] == [2.0]


def test_append_keeps_created_at_non_decreasing() -> None:
    table = HistoryTable()
    first = table.append(1.0, 1.0, created_at=NOW)
    second = table.append(2.0, 2.0, created_at=NOW - timedelta(minutes=5))

    assert second.created_at == first.created_at
    records = table.query_range(NOW - timedelta(hours=1))
    assert [record.temperature for record in records] == [1.0, 2.0]


def test_append_treats_naive_timestamps_as_utc() -> None:
    table = HistoryTable()
    record = table.append(5.0, 6.0, created_at=datetime(2024, 6, 1, 11, 0))

    assert record.created_at == datetime(2024, 6, 1, 11, 0, tzinfo=timezone.utc)


def test_table_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "nested" / "ttysensor.db"
    table = HistoryTable(path=str(path))
    table.append(22.5, 41.0, created_at=NOW)
    table.close()

    assert path.exists()

    reloaded = HistoryTable(path=str(path))
    records = reloaded.query_range(NOW - timedelta(minutes=1))
    assert len(records) == 1
    assert records[0].temperature == 22.5
    assert records[0].created_at == NOW

    later = reloaded.append(23.0, 40.0, created_at=NOW - timedelta(hours=1))
    assert later.created_at == NOW


def test_closed_table_raises_store_error() -> None:
    table = HistoryTable()
    table.close()

    with pytest.raises(StoreError):
        table.append(1.0, 1.0)
    with pytest.raises(StoreError):
        table.query_range(NOW)


def test_zero_window_is_not_widened_to_default() -> None:
    table = HistoryTable()
    table.append(1.0, 1.0, created_at=NOW - timedelta(hours=1))
    table.append(2.0, 2.0, created_at=NOW)

    records = HistoryQuery(table).records(now=NOW, window=timedelta(0))

    assert [record.temperature for record in records] == [2.0]
