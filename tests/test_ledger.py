"""
Ledger backends: in-memory contract rules, backend factory, RPC error wrapping.
"""

import pytest
from eth_account import Account

from flip_oracle.config import SweepConfig
from flip_oracle.core.commitment import commit, parse_server_secret, sign_resolution
from flip_oracle.core.exceptions import ChainError, ConfigurationError
from flip_oracle.core.ledger.base import BetStatus, ContractVersion, Side
from flip_oracle.core.ledger.factory import create_ledger
from flip_oracle.core.ledger.memory import LedgerRevert, MemoryLedger
from flip_oracle.core.ledger.onchain import OnchainLedger, chain_call

from .conftest import SERVER_SECRET

pytestmark = pytest.mark.asyncio


async def test_bet_ids_and_blocks_increase(ledger, player):
    first = await ledger.place_bet(player, Side.HEADS, 10, 1)
    second = await ledger.place_bet(player, Side.TAILS, 10, 2)

    assert [first.events[0].bet_id, second.events[0].bet_id] == [1, 2]
    assert second.block_number == first.block_number + 1
    assert (await ledger.get_bet(2)).placed_at_block == second.block_number


async def test_unknown_bet_has_no_status(ledger):
    bet = await ledger.get_bet(42)
    assert bet.status == BetStatus.NONE
    assert not bet.is_pending


async def test_token_version_rejects_zero_stake(ledger, player):
    with pytest.raises(LedgerRevert):
        await ledger.place_bet(player, Side.HEADS, 0, 1)
    assert ledger.placed_events == []


async def test_native_version_allows_gas_only_flip(oracle_account, player):
    ledger = MemoryLedger(oracle_account.address, version=ContractVersion.NATIVE)
    receipt = await ledger.place_bet(player, Side.HEADS, 0, 1)
    assert receipt.succeeded


async def test_resolution_requires_oracle_signature(ledger, player):
    receipt = await ledger.place_bet(player, Side.HEADS, 100, 9)
    bet_id = receipt.events[0].bet_id
    c = commit(parse_server_secret(SERVER_SECRET), 9, bet_id)

    forged = sign_resolution(c.message_hash, Account.create().key)
    with pytest.raises(LedgerRevert, match="invalid signature"):
        await ledger.resolve_bet(bet_id, c.random, forged, player, 300_000)
    with pytest.raises(LedgerRevert, match="invalid signature"):
        await ledger.resolve_bet(bet_id, c.random, b"\x00" * 65, player, 300_000)
    assert (await ledger.get_bet(bet_id)).status == BetStatus.PENDING


async def test_wins_update_player_stats(oracle_account, ledger, player):
    secret = parse_server_secret(SERVER_SECRET)
    for seed in range(6):
        receipt = await ledger.place_bet(player, Side.HEADS, 100, seed)
        bet_id = receipt.events[0].bet_id
        c = commit(secret, seed, bet_id)
        await ledger.resolve_bet(bet_id, c.random, sign_resolution(c.message_hash, oracle_account.key), player, 0)

    stats = ledger.player_stats(player.address)
    wins = sum(1 for e in ledger.resolved_events if e.won)
    assert stats.plays == 6
    assert stats.wagered == 600
    assert stats.wins == wins
    assert stats.paid_out == 195 * wins


# ==================== Factory ====================


async def test_factory_builds_memory_ledger(oracle_config, oracle_account):
    ledger = create_ledger(oracle_config, SweepConfig(), oracle_account.address)
    assert isinstance(ledger, MemoryLedger)
    assert await ledger.oracle_signer() == oracle_account.address


async def test_factory_builds_onchain_ledger(oracle_config, oracle_account):
    config = oracle_config.model_copy(
        update={"ledger_backend": "onchain", "rpc_url": "http://127.0.0.1:8545", "contract_version": "native"}
    )
    ledger = create_ledger(config, SweepConfig(), oracle_account.address)
    assert isinstance(ledger, OnchainLedger)
    assert ledger.version == ContractVersion.NATIVE
    assert ledger.token is None


async def test_factory_rejects_bad_settings(oracle_config, oracle_account):
    for update in (
        {"contract_version": "v3"},
        {"ledger_backend": "sqlite"},
        {"ledger_backend": "onchain", "contract_address": "not-an-address"},
    ):
        with pytest.raises(ConfigurationError):
            create_ledger(oracle_config.model_copy(update=update), SweepConfig(), oracle_account.address)


async def test_rpc_failures_become_chain_errors():
    @chain_call("eth_call")
    async def unreachable():
        raise ConnectionRefusedError("connection refused")

    with pytest.raises(ChainError) as exc_info:
        await unreachable()
    assert exc_info.value.message == "eth_call failed: connection refused"
    assert exc_info.value.retryable
