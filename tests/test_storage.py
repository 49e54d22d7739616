"""
Tests for the SQLite opportunity store.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from arbwatch.exceptions import StoreError
from arbwatch.storage import (
    TABLE_NAME,
    ArbitrageOpportunity,
    OpportunityStore,
    utc_timestamp,
)


def make_opportunity(profit="0.03", buy="SushiSwap", sell="QuickSwap"):
    return ArbitrageOpportunity(
        buy_dex=buy,
        sell_dex=sell,
        profit_usdc=Decimal(profit),
        timestamp=utc_timestamp(datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)),
    )


def test_initialize_creates_table(tmp_path):
    db_path = tmp_path / "table.db"
    store = OpportunityStore(db_path)
    store.initialize()
    store.close()

    conn = sqlite3.connect(db_path)
    columns = [row[1] for row in conn.execute(f"PRAGMA table_info({TABLE_NAME})")]
    conn.close()

    assert columns == ["id", "buy_dex", "sell_dex", "profit_usdc", "timestamp"]


def test_initialize_is_idempotent(tmp_path):
    db_path = tmp_path / "table.db"
    with OpportunityStore(db_path) as store:
        store.insert(make_opportunity())

    with OpportunityStore(db_path) as store:
        assert len(store.fetch_all()) == 1


def test_insert_assigns_increasing_ids(store):
    first = store.insert(make_opportunity("0.03"))
    second = store.insert(make_opportunity("0.05"))

    assert second > first


def test_round_trip(store):
    original = make_opportunity("0.030001")
    row_id = store.insert(original)

    loaded = store.get(row_id)

    assert loaded.id == row_id
    assert loaded.buy_dex == original.buy_dex
    assert loaded.sell_dex == original.sell_dex
    assert float(loaded.profit_usdc) == pytest.approx(float(original.profit_usdc), abs=1e-9)
    assert loaded.detected_at == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert loaded.timestamp == original.timestamp


def test_insert_is_committed_immediately(tmp_path):
    db_path = tmp_path / "table.db"
    store = OpportunityStore(db_path)
    store.initialize()
    store.insert(make_opportunity())

    # Another connection sees the row before the store is closed
    conn = sqlite3.connect(db_path)
    count = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]
    conn.close()
    store.close()

    assert count == 1


def test_fetch_all_in_insertion_order(store):
    for profit in ("0.02", "0.5", "0.011"):
        store.insert(make_opportunity(profit))

    profits = [str(o.profit_usdc) for o in store.fetch_all()]
    assert profits == ["0.02", "0.5", "0.011"]


def test_get_missing_returns_none(store):
    assert store.get(12345) is None


def test_unopenable_path_raises_store_error(tmp_path):
    store = OpportunityStore(tmp_path / "no" / "such" / "dir" / "table.db")

    with pytest.raises(StoreError):
        store.initialize()
    assert store.connection is None


def test_insert_before_initialize_raises(tmp_path):
    store = OpportunityStore(tmp_path / "table.db")

    with pytest.raises(StoreError):
        store.insert(make_opportunity())


def test_insert_failure_raises_store_error(store):
    store.connection.execute(f"DROP TABLE {TABLE_NAME}")

    with pytest.raises(StoreError):
        store.insert(make_opportunity())


def test_opportunity_is_immutable():
    opp = make_opportunity()
    with pytest.raises(AttributeError):
        opp.profit_usdc = Decimal("1")


def test_utc_timestamp_converts_offsets():
    cet = timezone(timedelta(hours=2))
    assert utc_timestamp(datetime(2024, 5, 1, 14, 30, tzinfo=cet)) == "2024-05-01T12:30:00+00:00"


def test_utc_timestamp_rejects_naive():
    with pytest.raises(ValueError):
        utc_timestamp(datetime(2024, 5, 1))
