import os
import tempfile
from pathlib import Path

# Settings are read at import time; point them at throwaway state before any
# flip_oracle module is imported.
_TMP = Path(tempfile.mkdtemp(prefix="flip-oracle-tests-"))
os.environ["DB_PATH"] = str(_TMP / "points.db")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SWEEP_SCHEDULE_ENABLED"] = "false"
for name in ("RPC_URL", "PRIVATE_KEY", "COINFLIP_ADDRESS", "SERVER_SEED", "CRON_SECRET"):
    os.environ.pop(name, None)

import pytest
from eth_account import Account

from flip_oracle.config import OracleConfig, SweepConfig
from flip_oracle.core.ledger.memory import MemoryLedger
from flip_oracle.core.resolver import OracleResolver

SERVER_SECRET = "0x" + "5e" * 32


@pytest.fixture
def oracle_account():
    return Account.create()


@pytest.fixture
def player():
    return Account.create()


@pytest.fixture
def oracle_config(oracle_account):
    return OracleConfig(
        rpc_url="memory://",
        signing_key=oracle_account.key.hex(),
        contract_address="0x" + "00" * 20,
        server_secret=SERVER_SECRET,
        chain_id=763373,
        ledger_backend="memory",
    )


@pytest.fixture
def sweep_config():
    return SweepConfig(delay_seconds=0)


@pytest.fixture
def ledger(oracle_account):
    return MemoryLedger(oracle_account.address)


@pytest.fixture
def resolver(oracle_config, sweep_config, ledger):
    return OracleResolver(oracle_config, sweep_config, ledger=ledger)
