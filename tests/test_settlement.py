"""
Client-side settlement: fast path through the resolver API, polling fallback.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from flip_oracle.core.exceptions import BetNotFoundError, ChainError, SettlementTimeout
from flip_oracle.core.ledger.base import BetStatus, Side, TxReceipt
from flip_oracle.core.resolver import get_resolver
from flip_oracle.core.settlement import SettlementWatcher
from flip_oracle.main import app

pytestmark = pytest.mark.asyncio

RESOLVE_URL = "http://test/api/oracle/resolve-bet"


def failing_transport(status_code=500, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(json.loads(request.content))
        return httpx.Response(status_code, json={"error": "Chain error", "message": "RPC down"})

    return httpx.MockTransport(handler)


async def test_extract_bet_id_requires_event():
    with pytest.raises(BetNotFoundError):
        SettlementWatcher.extract_bet_id(TxReceipt("0xabc", 10, 1, []))


async def test_place_bet_returns_id(ledger, player):
    watcher = SettlementWatcher(ledger)
    bet_id, receipt = await watcher.place_bet(player, "tails", 100, client_seed=7)

    assert bet_id == 1
    assert receipt.succeeded
    assert ledger.placed_events[0].guess == Side.TAILS
    assert ledger.placed_events[0].client_seed == 7


async def test_fast_path_through_api(resolver, ledger, player):
    app.dependency_overrides[get_resolver] = lambda: resolver
    try:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            watcher = SettlementWatcher(ledger, resolve_url=RESOLVE_URL, timeout=1, http_client=client)
            bet_id, receipt = await watcher.place_bet(player, Side.HEADS, 100, client_seed=42)
            event = await watcher.settle(bet_id, receipt.block_number)
    finally:
        app.dependency_overrides.clear()

    assert event.bet_id == bet_id
    assert event.payout_total in (0, 195)
    assert (await ledger.get_bet(bet_id)).status == BetStatus.SETTLED


async def test_falls_back_to_polling(resolver, ledger, player):
    seen = []
    async with httpx.AsyncClient(transport=failing_transport(seen=seen)) as client:
        watcher = SettlementWatcher(
            ledger, resolve_url=RESOLVE_URL, timeout=2, poll_interval=0.01, http_client=client
        )
        bet_id, receipt = await watcher.place_bet(player, Side.HEADS, 100)

        async def cron_sweep():
            await asyncio.sleep(0.05)
            await resolver.sweep()

        sweeper = asyncio.create_task(cron_sweep())
        event = await watcher.settle(bet_id, receipt.block_number)
        await sweeper

    assert seen == [{"betId": str(bet_id)}]
    assert event.bet_id == bet_id


async def test_non_json_answer_falls_back_to_polling(resolver, ledger, player):
    def html_page(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>ok</html>", headers={"content-type": "text/html"})

    bet_id, receipt = await SettlementWatcher(ledger).place_bet(player, Side.HEADS, 100)
    await resolver.resolve_bet(bet_id)

    async with httpx.AsyncClient(transport=httpx.MockTransport(html_page)) as client:
        watcher = SettlementWatcher(
            ledger, resolve_url=RESOLVE_URL, timeout=1, poll_interval=0.01, http_client=client
        )
        with pytest.raises(ChainError):
            await watcher.request_resolution(bet_id)

        event = await watcher.settle(bet_id, receipt.block_number)

    assert event.bet_id == bet_id


async def test_request_resolution_errors(ledger):
    watcher = SettlementWatcher(ledger)
    with pytest.raises(ChainError) as exc_info:
        await watcher.request_resolution(1)
    assert not exc_info.value.retryable

    async with httpx.AsyncClient(transport=failing_transport(404)) as client:
        watcher = SettlementWatcher(ledger, resolve_url=RESOLVE_URL, http_client=client)
        with pytest.raises(ChainError) as exc_info:
            await watcher.request_resolution(1)
    assert exc_info.value.message == "RPC down"
    assert exc_info.value.details["statusCode"] == 404


async def test_times_out_while_pending(ledger, player):
    watcher = SettlementWatcher(ledger, timeout=0.05, poll_interval=0.01)
    bet_id, _ = await watcher.place_bet(player, Side.HEADS, 100)

    with pytest.raises(SettlementTimeout) as exc_info:
        await watcher.wait_for_settlement(bet_id)
    assert exc_info.value.details == {"betId": str(bet_id)}
    assert (await ledger.get_bet(bet_id)).status == BetStatus.PENDING


async def test_event_query_retries_with_wider_window(resolver, ledger, player):
    watcher = SettlementWatcher(ledger, timeout=1, poll_interval=0.01, fallback_window=50)
    bet_id, receipt = await watcher.place_bet(player, Side.HEADS, 100)
    await resolver.resolve_bet(bet_id)

    original = ledger.find_bet_resolved
    calls = []

    async def narrow_range_fails(bet_id, from_block, to_block=None):
        calls.append(from_block)
        if len(calls) == 1:
            raise ChainError("query returned more than 10000 results")
        return await original(bet_id, from_block, to_block)

    with patch.object(ledger, "find_bet_resolved", side_effect=narrow_range_fails):
        event = await watcher.wait_for_settlement(bet_id, from_block=receipt.block_number)

    assert event.bet_id == bet_id
    assert calls == [receipt.block_number, 0]
