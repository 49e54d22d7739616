# arbwatch/dex/routers.py
"""
V2 router registry and quote source
Reads getAmountsOut from QuickSwap / SushiSwap routers (read-only, no tx)
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Union

from web3 import Web3

from arbwatch.exceptions import AbiError

logger = logging.getLogger(__name__)

# -----------------------------
# Router addresses (Polygon)
# -----------------------------
QUICK_ROUTER = Web3.to_checksum_address(
    "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff"
)

SUSHI_ROUTER = Web3.to_checksum_address(
    "0x1b02da8cb0d097eb8d57a175b88c7d8b47997506"
)

QUOTE_FUNCTION = "getAmountsOut"


class Venue(Enum):
    QUICKSWAP = "QuickSwap"
    SUSHISWAP = "SushiSwap"


@dataclass(frozen=True)
class RouterConfig:
    """Per-venue call configuration (all venues share one ABI)"""
    venue: Venue
    address: str


@dataclass
class QuoteResult:
    """Result of a single getAmountsOut read"""
    venue: Venue
    ok: bool
    amount_out: int = 0
    amounts: List[int] = field(default_factory=list)
    error: str = ""
    latency_ms: float = 0.0

    @classmethod
    def failure(cls, venue: Venue, error: str, latency_ms: float = 0.0) -> "QuoteResult":
        return cls(venue=venue, ok=False, error=error, latency_ms=latency_ms)


# =============================================================================
# ABI LOADING
# =============================================================================

def load_router_abi(path: Union[str, Path]) -> list:
    """
    Load a router ABI from a JSON file.

    Accepts either a bare ABI list or a build artifact with an "abi" key.
    Raises AbiError if the file is missing, unparsable or has no
    getAmountsOut function.
    """
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise AbiError(f"Cannot read ABI file {path}: {e}") from e

    try:
        abi = json.loads(content)
    except json.JSONDecodeError as e:
        raise AbiError(f"Invalid JSON in ABI file {path}: {e}") from e

    if isinstance(abi, dict):
        abi = abi.get("abi")
    if not isinstance(abi, list):
        raise AbiError(f"ABI file {path} does not contain an ABI list")

    has_quote_fn = any(
        isinstance(entry, dict)
        and entry.get("type") == "function"
        and entry.get("name") == QUOTE_FUNCTION
        for entry in abi
    )
    if not has_quote_fn:
        raise AbiError(f"ABI file {path} has no {QUOTE_FUNCTION} function")

    return abi


# =============================================================================
# QUOTE SOURCE
# =============================================================================

class RouterQuoteSource:
    """
    One venue's router contract.
    get_amounts_out never raises: failures come back as QuoteResult(ok=False).
    """

    def __init__(self, w3: Web3, config: RouterConfig, abi: list):
        self.venue = config.venue
        self.address = config.address
        self.router = w3.eth.contract(address=config.address, abi=abi)

    def get_amounts_out(self, amount_in: int, path: List[str]) -> QuoteResult:
        start = time.time()
        try:
            result = self.router.functions.getAmountsOut(amount_in, path).call()
            latency_ms = (time.time() - start) * 1000
            if not result:
                return QuoteResult.failure(self.venue, "empty getAmountsOut result", latency_ms)
            amounts = [int(a) for a in result]
        except Exception as e:
            latency_ms = (time.time() - start) * 1000
            return QuoteResult.failure(self.venue, f"{type(e).__name__}: {e}", latency_ms)

        logger.debug(f"{self.venue.value} getAmountsOut -> {amounts} ({latency_ms:.0f}ms)")
        return QuoteResult(
            venue=self.venue,
            ok=True,
            amount_out=amounts[-1],
            amounts=amounts,
            latency_ms=latency_ms,
        )

    def __repr__(self) -> str:
        return f"RouterQuoteSource({self.venue.value} @ {self.address})"
