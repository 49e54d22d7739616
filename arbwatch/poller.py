# arbwatch/poller.py
"""
Poll loop: fetch both router quotes each tick, evaluate, persist opportunities.

Ticks are serialized; inside a tick the two quote reads run in parallel and
evaluation waits for both.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from arbwatch.config import Config
from arbwatch.dex.routers import QuoteResult, RouterQuoteSource
from arbwatch.evaluator import Evaluation, Outcome, evaluate
from arbwatch.exceptions import StoreError
from arbwatch.pairs import get_decimals
from arbwatch.storage import OpportunityStore

logger = logging.getLogger(__name__)


# =============================================================================
# TICKER
# =============================================================================

class IntervalTicker:
    """
    Fixed-period tick source owned by one poller.

    The first wait() returns at once; later waits return on the next multiple
    of the interval. Ticks missed while a tick overran are skipped, not
    replayed. After close(), wait() returns False.
    """

    def __init__(self, interval_secs: int, clock: Callable[[], float] = time.monotonic):
        if isinstance(interval_secs, bool) or not isinstance(interval_secs, int) or interval_secs <= 0:
            raise ValueError(f"interval_secs must be a positive integer, got {interval_secs!r}")
        self.interval = interval_secs
        self._clock = clock
        self._closed = threading.Event()
        self._next_tick: Optional[float] = None
        self.skipped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def wait(self) -> bool:
        if self._closed.is_set():
            return False

        now = self._clock()
        if self._next_tick is None:
            self._next_tick = now + self.interval
            return True

        deadline = self._next_tick
        if now < deadline:
            if self._closed.wait(deadline - now):
                return False
            self._next_tick = deadline + self.interval
            return True

        missed = int((now - deadline) // self.interval)
        if missed:
            self.skipped += missed
            logger.warning(f"Tick overran, skipping {missed} missed tick(s)")
        self._next_tick = deadline + self.interval * (missed + 1)
        return not self._closed.is_set()

    def close(self) -> None:
        self._closed.set()


# =============================================================================
# STATISTICS
# =============================================================================

class StatisticsTracker:
    """Track poller statistics"""

    def __init__(self):
        self.start_time = datetime.now()
        self.tick_count = 0
        self.quote_failures = 0
        self.invalid_ticks = 0
        self.equal_quote_ticks = 0
        self.below_threshold_ticks = 0
        self.opportunities_found = 0
        self.opportunities_saved = 0
        self.store_failures = 0
        self.tick_errors = 0
        self.skipped_ticks = 0
        self.best_profit_usdc = Decimal(0)

    def record_evaluation(self, evaluation: Evaluation):
        self.tick_count += 1
        if evaluation.outcome is Outcome.INVALID:
            self.invalid_ticks += 1
        elif evaluation.outcome is Outcome.NO_SPREAD:
            self.equal_quote_ticks += 1
        elif evaluation.outcome is Outcome.BELOW_THRESHOLD:
            self.below_threshold_ticks += 1
        else:
            self.opportunities_found += 1
            if evaluation.profit_usdc > self.best_profit_usdc:
                self.best_profit_usdc = evaluation.profit_usdc

    def get_summary(self) -> str:
        runtime = datetime.now() - self.start_time
        return (
            f"\n{'='*60}\n"
            f"📊 POLLER STATISTICS\n"
            f"{'='*60}\n"
            f"Runtime: {runtime}\n"
            f"Ticks: {self.tick_count}\n"
            f"Quote failures: {self.quote_failures}\n"
            f"Invalid ticks: {self.invalid_ticks}\n"
            f"Equal quotes: {self.equal_quote_ticks}\n"
            f"Below threshold: {self.below_threshold_ticks}\n"
            f"Opportunities found: {self.opportunities_found}\n"
            f"Opportunities saved: {self.opportunities_saved}\n"
            f"Store failures: {self.store_failures}\n"
            f"Tick errors: {self.tick_errors}\n"
            f"Skipped ticks: {self.skipped_ticks}\n"
            f"Best profit: {self.best_profit_usdc} USDC\n"
            f"{'='*60}\n"
        )


# =============================================================================
# POLLER
# =============================================================================

class PollerState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"


class ArbitragePoller:
    """
    Two-venue polling loop.

    quote_sources: (venue A, venue B) quote sources. Anything with a
    .venue attribute and get_amounts_out(amount_in, path) -> QuoteResult.
    """

    def __init__(
        self,
        config: Config,
        quote_sources: Sequence[RouterQuoteSource],
        store: OpportunityStore,
        ticker: Optional[IntervalTicker] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        if len(quote_sources) != 2:
            raise ValueError(f"Expected exactly 2 quote sources, got {len(quote_sources)}")
        self.config = config
        self.source_a, self.source_b = quote_sources
        if self.source_a.venue == self.source_b.venue:
            raise ValueError("Quote sources must be for different venues")

        self.store = store
        self.scale = 10 ** get_decimals(config.usdc)  # raw units per quote token
        self.ticker = ticker if ticker is not None else IntervalTicker(config.check_interval_secs)
        self._owns_executor = executor is None
        self._executor = executor if executor is not None else ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="quote"
        )
        self.state = PollerState.IDLE
        self.stats = StatisticsTracker()

    # -------------------------------------------------------------------------
    # Single tick
    # -------------------------------------------------------------------------

    def _fetch(self, source) -> QuoteResult:
        try:
            return source.get_amounts_out(self.config.fixed_trade_size, self.config.path)
        except Exception as e:
            return QuoteResult.failure(source.venue, f"{type(e).__name__}: {e}")

    def fetch_quotes(self) -> Tuple[QuoteResult, QuoteResult]:
        """Fetch both venues in parallel and wait for both"""
        future_a = self._executor.submit(self._fetch, self.source_a)
        future_b = self._executor.submit(self._fetch, self.source_b)
        return future_a.result(), future_b.result()

    def _quote_or_zero(self, result: QuoteResult) -> int:
        if result.ok:
            return result.amount_out
        self.stats.quote_failures += 1
        logger.warning(f"⚠️ Quote failed on {result.venue.value}: {result.error} (using 0)")
        return 0

    def run_tick(self) -> Evaluation:
        """
        Run one fetch-evaluate-persist cycle.
        Raises StoreError if a detected opportunity could not be saved.
        """
        try:
            self.state = PollerState.FETCHING
            logger.info("Checking prices...")
            result_a, result_b = self.fetch_quotes()
            quote_a = self._quote_or_zero(result_a)
            quote_b = self._quote_or_zero(result_b)

            venue_a, venue_b = self.source_a.venue, self.source_b.venue
            logger.info(
                f"Raw output {venue_a.value}: {result_a.amounts or [quote_a]}, "
                f"{venue_b.value}: {result_b.amounts or [quote_b]} "
                f"({result_a.latency_ms:.0f}ms / {result_b.latency_ms:.0f}ms)"
            )

            self.state = PollerState.EVALUATING
            evaluation = evaluate(
                quote_a,
                quote_b,
                venue_a=venue_a,
                venue_b=venue_b,
                gas_cost_usdc=self.config.simulated_gas_cost,
                min_profit_threshold=self.config.min_profit_threshold,
                scale=self.scale,
            )
            self.stats.record_evaluation(evaluation)
            self._log_evaluation(evaluation, quote_a, quote_b)

            if evaluation.is_opportunity:
                self._save(evaluation)

            return evaluation
        finally:
            self.state = PollerState.IDLE

    def _log_evaluation(self, evaluation: Evaluation, quote_a: int, quote_b: int):
        if evaluation.outcome is Outcome.INVALID:
            logger.info(f"Invalid price: {evaluation.reason}")
            return

        price_a = Decimal(quote_a) / self.scale
        price_b = Decimal(quote_b) / self.scale
        logger.info(
            f"{self.source_a.venue.value} price: {price_a} USDC, "
            f"{self.source_b.venue.value} price: {price_b} USDC"
        )

        if evaluation.outcome is Outcome.NO_SPREAD:
            logger.info("Both quotes equal, no arbitrage")
            return

        logger.info(
            f"Possible buy on {evaluation.buy_dex} and sell on {evaluation.sell_dex}; "
            f"simulated profit after gas: {evaluation.profit_usdc} USDC"
        )
        if evaluation.outcome is Outcome.BELOW_THRESHOLD:
            logger.info(f"Profit too small: {evaluation.reason}")

    def _save(self, evaluation: Evaluation):
        opportunity = evaluation.opportunity
        logger.info(f"💰 ARBITRAGE FOUND: {evaluation.reason}")
        try:
            row_id = self.store.insert(opportunity)
        except StoreError:
            self.stats.store_failures += 1
            raise
        self.stats.opportunities_saved += 1
        logger.info(f"✅ Saved opportunity #{row_id} at {opportunity.timestamp}")

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def run(self):
        """Tick until stop() is called. Store failures are logged, not fatal."""
        logger.info("=" * 60)
        logger.info("🚀 ARBITRAGE POLLER STARTING")
        logger.info(f"Venues: {self.source_a.venue.value} vs {self.source_b.venue.value}")
        logger.info(f"Interval: {self.ticker.interval}s")
        logger.info("=" * 60)

        try:
            while self.ticker.wait():
                try:
                    self.run_tick()
                except StoreError:
                    logger.exception("❌ Detected opportunity was NOT saved")
                except Exception as e:
                    self.stats.tick_errors += 1
                    logger.exception(f"Loop error: {e}")
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.close()
            self.stats.skipped_ticks = self.ticker.skipped
            logger.info(self.stats.get_summary())
            logger.info("Poller stopped.")

    def run_once(self) -> Evaluation:
        """Single tick, then release the ticker and thread pool"""
        try:
            return self.run_tick()
        finally:
            self.close()

    def stop(self):
        """Request shutdown; safe to call from a signal handler"""
        self.ticker.close()

    def close(self):
        self.ticker.close()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
