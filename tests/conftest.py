"""
Shared fixtures: config, fake quote sources, temporary SQLite store.
"""

import pytest

from arbwatch.config import config_from_mapping
from arbwatch.dex.routers import Venue
from arbwatch.storage import OpportunityStore
from tests.fakes import FakeQuoteSource

RPC_URL = "https://polygon-rpc.example"


@pytest.fixture
def config_values():
    return {
        "RPC_URL": RPC_URL,
        "MIN_PROFIT_THRESHOLD": "0.01",
        "SIMULATED_GAS_COST": "0.02",
        "CHECK_INTERVAL_SECS": "5",
    }


@pytest.fixture
def config(config_values):
    return config_from_mapping(config_values)


@pytest.fixture
def store(tmp_path):
    store = OpportunityStore(tmp_path / "table.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def make_sources():
    """(QuickSwap, SushiSwap) fake sources; pass a={...}/b={...} for failures"""
    def _make(quote_a=None, quote_b=None, a=None, b=None):
        return [
            FakeQuoteSource(Venue.QUICKSWAP, quote_a, **(a or {})),
            FakeQuoteSource(Venue.SUSHISWAP, quote_b, **(b or {})),
        ]

    return _make
