# arbwatch/main.py
"""
Arbitrage poller entry point

Run with: python -m arbwatch.main   (or the `arbwatch` console script)

Startup order: config -> ABI -> database -> RPC client -> poll loop.
Config, ABI and database problems are fatal; everything after that is
logged and survived.
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from arbwatch.config import Config, load_config
from arbwatch.dex.routers import RouterQuoteSource, load_router_abi
from arbwatch.exceptions import AbiError, ConfigError, StoreError
from arbwatch.pairs import get_symbol
from arbwatch.poller import ArbitragePoller
from arbwatch.rpc_health import RPCHealth
from arbwatch.storage import OpportunityStore

LOG_DIR = Path("logs")  # relative to the working directory
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
RPC_TIMEOUT_SECS = 10

logger = logging.getLogger(__name__)


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(level: str = "INFO", log_dir: Optional[Path] = LOG_DIR):
    """Console + daily file logging on the root logger"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            log_dir / f"arbwatch_{datetime.now().strftime('%Y%m%d')}.log"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# =============================================================================
# BOOTSTRAP
# =============================================================================

def build_web3(rpc_url: str) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT_SECS}))
    # Polygon is a PoA chain
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def build_poller(
    config: Config,
    store: OpportunityStore,
    abi: list,
    w3: Optional[Web3] = None,
) -> ArbitragePoller:
    """Wire up quote sources for both venues"""
    if w3 is None:
        w3 = build_web3(config.rpc_url)

    ok, status = RPCHealth(w3).check()
    if ok:
        logger.info(f"✅ RPC healthy: {status}")
    else:
        logger.warning(f"⚠️ RPC unhealthy: {status} (continuing, quotes will fail until it recovers)")

    sources = [RouterQuoteSource(w3, router, abi) for router in config.routers]
    logger.info(
        f"Quote sources: {', '.join(repr(s) for s in sources)} "
        f"path {get_symbol(config.weth)} -> {get_symbol(config.usdc)}"
    )
    return ArbitragePoller(config, sources, store)


def install_signal_handlers(poller: ArbitragePoller):
    def _handle_shutdown(signum, frame):
        logger.info("🛑 Shutdown signal received...")
        poller.stop()

    signal.signal(signal.SIGINT, _handle_shutdown)
    signal.signal(signal.SIGTERM, _handle_shutdown)


# =============================================================================
# ENTRY POINT
# =============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Two-DEX arbitrage poller (observe only)")
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to .env config (default: config/.env)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database file (overrides DB_PATH)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-dir",
        default=str(LOG_DIR),
        help="Directory for the daily log file (default: ./logs)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to stdout only",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code"""
    args = parse_args(argv)
    try:
        setup_logging(args.log_level or "INFO", None if args.no_log_file else args.log_dir)
    except OSError as e:
        setup_logging(args.log_level or "INFO", None)
        logger.warning(f"⚠️ Cannot write log file in {args.log_dir}: {e} (logging to stdout only)")

    try:
        config = load_config(args.env_file)
    except ConfigError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 1

    if args.db_path:
        config = replace(config, db_path=Path(args.db_path))
    if not args.log_level:
        logging.getLogger().setLevel(config.log_level)

    logger.info(f"Config loaded: {config.describe()}")

    try:
        abi = load_router_abi(config.abi_path)
    except AbiError as e:
        logger.error(f"❌ ABI error: {e}")
        return 1
    logger.info(f"ABI loaded: {config.abi_path}")

    store = OpportunityStore(config.db_path)
    try:
        store.initialize()
    except StoreError as e:
        logger.error(f"❌ Database error: {e}")
        return 1

    try:
        poller = build_poller(config, store, abi)

        if args.once:
            try:
                poller.run_once()
            except StoreError:
                logger.exception("❌ Detected opportunity was NOT saved")
                return 1
            logger.info(poller.stats.get_summary())
            return 0

        install_signal_handlers(poller)
        poller.run()
        return 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
