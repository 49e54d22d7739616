# arbwatch/__init__.py
"""
Two-DEX Arbitrage Poller
Observe-only: compares QuickSwap / SushiSwap router quotes and logs
gas-adjusted opportunities to SQLite

Modules:
- config: Configuration loaded from config/.env
- pairs: Token registry
- dex.routers: Venue registry, ABI loading, router quote source
- evaluator: Opportunity evaluation
- storage: SQLite opportunity store
- poller: Poll loop
- main: Entry point
"""

__version__ = "1.0.0"

from arbwatch.dex.routers import Venue
from arbwatch.evaluator import SANITY_FLOOR, Evaluation, Outcome, evaluate
from arbwatch.exceptions import AbiError, ArbwatchError, ConfigError, StoreError
from arbwatch.storage import ArbitrageOpportunity, OpportunityStore

__all__ = [
    "Venue",
    "SANITY_FLOOR",
    "Evaluation",
    "Outcome",
    "evaluate",
    "AbiError",
    "ArbwatchError",
    "ConfigError",
    "StoreError",
    "ArbitrageOpportunity",
    "OpportunityStore",
]
