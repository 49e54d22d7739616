"""
Tests for startup wiring: fatal errors and a single end-to-end tick.
"""

import logging
from unittest.mock import Mock, PropertyMock

import pytest

from arbwatch import main as entry
from arbwatch.dex.routers import QUICK_ROUTER, SUSHI_ROUTER
from arbwatch.rpc_health import RPCHealth
from arbwatch.storage import OpportunityStore

CONFIG_KEYS = (
    "RPC_URL", "QUICKSWAP_ROUTER", "SUSHISWAP_ROUTER", "WETH_ADDRESS", "USDC_ADDRESS",
    "FIXED_TRADE_SIZE", "MIN_PROFIT_THRESHOLD", "SIMULATED_GAS_COST",
    "CHECK_INTERVAL_SECS", "ABI_PATH", "DB_PATH", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "RPC_URL=https://polygon-rpc.example\n"
        "MIN_PROFIT_THRESHOLD=0.01\n"
        "SIMULATED_GAS_COST=0.02\n"
        "CHECK_INTERVAL_SECS=5\n"
    )
    return path


def fake_web3(quotes):
    """Mock Web3 whose router contracts return fixed getAmountsOut results"""
    w3 = Mock()
    w3.eth.block_number = 55_000_000
    w3.eth.chain_id = 137

    def contract(address, abi):
        router = Mock()
        router.functions.getAmountsOut.return_value.call.return_value = [10**18, quotes[address]]
        return router

    w3.eth.contract.side_effect = contract
    return w3


def run_main(env_file, tmp_path, *extra):
    return entry.main(
        ["--env-file", str(env_file), "--db-path", str(tmp_path / "opps.db"), "--no-log-file", *extra]
    )


def test_once_end_to_end(monkeypatch, env_file, tmp_path):
    w3 = fake_web3({QUICK_ROUTER: 2_000_000, SUSHI_ROUTER: 1_950_000})
    monkeypatch.setattr(entry, "build_web3", lambda rpc_url: w3)

    assert run_main(env_file, tmp_path, "--once") == 0

    with OpportunityStore(tmp_path / "opps.db") as store:
        rows = store.fetch_all()
    assert len(rows) == 1
    assert (rows[0].buy_dex, rows[0].sell_dex) == ("SushiSwap", "QuickSwap")


def test_once_with_quote_failure_exits_cleanly(monkeypatch, env_file, tmp_path):
    w3 = fake_web3({QUICK_ROUTER: 2_000_000, SUSHI_ROUTER: 1_950_000})
    original = w3.eth.contract.side_effect

    def contract(address, abi):
        router = original(address, abi)
        if address == SUSHI_ROUTER:
            router.functions.getAmountsOut.return_value.call.side_effect = ValueError("execution reverted")
        return router

    w3.eth.contract.side_effect = contract
    monkeypatch.setattr(entry, "build_web3", lambda rpc_url: w3)

    assert run_main(env_file, tmp_path, "--once") == 0

    with OpportunityStore(tmp_path / "opps.db") as store:
        assert store.fetch_all() == []


def test_bad_config_is_fatal(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("CHECK_INTERVAL_SECS=0\n")

    assert run_main(env_file, tmp_path, "--once") == 1


def test_bad_abi_is_fatal(env_file, tmp_path):
    abi_file = tmp_path / "broken.json"
    abi_file.write_text("{")
    with env_file.open("a") as f:
        f.write(f"ABI_PATH={abi_file}\n")

    assert run_main(env_file, tmp_path, "--once") == 1
    assert not (tmp_path / "opps.db").exists()


def test_unopenable_database_is_fatal(env_file, tmp_path):
    code = entry.main([
        "--env-file", str(env_file),
        "--db-path", str(tmp_path / "missing-dir" / "opps.db"),
        "--no-log-file",
        "--once",
    ])

    assert code == 1


def test_rpc_health_reports_failure():
    w3 = Mock()
    type(w3.eth).block_number = PropertyMock(side_effect=ConnectionError("refused"))

    ok, status = RPCHealth(w3).check()

    assert not ok
    assert "refused" in status


def test_rpc_health_ok():
    w3 = Mock()
    w3.eth.block_number = 1
    w3.eth.chain_id = 137

    ok, status = RPCHealth(w3).check()

    assert ok
    assert "chain_id=137" in status


def test_log_file_goes_to_log_dir(monkeypatch, env_file, tmp_path):
    monkeypatch.setattr(entry, "build_web3", lambda rpc_url: fake_web3({QUICK_ROUTER: 2_000_000, SUSHI_ROUTER: 2_000_000}))
    log_dir = tmp_path / "logs"

    code = entry.main([
        "--env-file", str(env_file),
        "--db-path", str(tmp_path / "opps.db"),
        "--log-dir", str(log_dir),
        "--once",
    ])

    assert code == 0
    assert len(list(log_dir.glob("arbwatch_*.log"))) == 1


def test_unwritable_log_dir_falls_back_to_stdout(monkeypatch, env_file, tmp_path):
    monkeypatch.setattr(entry, "build_web3", lambda rpc_url: fake_web3({QUICK_ROUTER: 2_000_000, SUSHI_ROUTER: 2_000_000}))
    not_a_dir = tmp_path / "logs"
    not_a_dir.write_text("")

    code = entry.main([
        "--env-file", str(env_file),
        "--db-path", str(tmp_path / "opps.db"),
        "--log-dir", str(not_a_dir),
        "--once",
    ])

    assert code == 0
    assert len(logging.getLogger().handlers) == 1


def test_entry_point_logger_is_module_scoped():
    assert entry.logger.name == "arbwatch.main"
