"""
Client side of a flip: place the bet, then get it settled.

The fast path asks the resolver service to settle the bet right away. If that
fails for any reason the watcher falls back to polling the ledger until the
bet is Settled, then reads the BetResolved event for the outcome.
"""

import asyncio
import secrets
import time
from typing import Optional, Tuple

import httpx
from eth_account.signers.local import LocalAccount

from flip_oracle.core.exceptions import BetNotFoundError, ChainError, SettlementTimeout
from flip_oracle.core.ledger.base import BetPlacedEvent, BetResolvedEvent, BetStatus, Ledger, Side, TxReceipt
from flip_oracle.core.logger import get_logger

logger = get_logger("settlement")


def random_client_seed() -> int:
    return secrets.randbits(64)


class SettlementWatcher:
    def __init__(
        self,
        ledger: Ledger,
        resolve_url: Optional[str] = None,
        timeout: float = 60.0,
        poll_interval: float = 2.0,
        fallback_window: int = 10_000,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.ledger = ledger
        self.resolve_url = resolve_url
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.fallback_window = fallback_window
        self.http_client = http_client

    @staticmethod
    def extract_bet_id(receipt: TxReceipt) -> int:
        for event in receipt.events:
            if isinstance(event, BetPlacedEvent):
                return event.bet_id
        raise BetNotFoundError(
            "BetPlaced event missing from receipt", details={"transactionHash": receipt.tx_hash}
        )

    async def place_bet(
        self, account: LocalAccount, guess, amount: int, client_seed: Optional[int] = None
    ) -> Tuple[int, TxReceipt]:
        seed = random_client_seed() if client_seed is None else client_seed
        receipt = await self.ledger.place_bet(account, Side.parse(guess), amount, seed)
        bet_id = self.extract_bet_id(receipt)
        logger.info(f"Placed bet {bet_id} in block {receipt.block_number}")
        return bet_id, receipt

    async def request_resolution(self, bet_id: int) -> dict:
        """POST the bet id to the resolver service; non-2xx answers raise ChainError."""
        if not self.resolve_url:
            raise ChainError("No resolver URL configured", retryable=False)

        client = self.http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.post(self.resolve_url, json={"betId": str(bet_id)})
        except httpx.HTTPError as e:
            raise ChainError(f"Resolver request failed: {e}") from e
        finally:
            if self.http_client is None:
                await client.aclose()

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text}
            if not isinstance(body, dict):
                body = {}
            raise ChainError(
                body.get("message") or body.get("error") or f"Resolver returned {response.status_code}",
                details={"statusCode": response.status_code},
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ChainError(
                f"Resolver returned a non-JSON body: {e}", details={"statusCode": response.status_code}
            ) from e
        if not isinstance(result, dict):
            raise ChainError("Resolver returned an unexpected body", details={"statusCode": response.status_code})
        return result

    async def _read_resolution(self, bet_id: int, from_block: int) -> Optional[BetResolvedEvent]:
        try:
            return await self.ledger.find_bet_resolved(bet_id, from_block)
        except ChainError as e:
            # some RPCs reject narrow ranges around reorgs; widen and retry once
            wider = max(from_block - self.fallback_window, 0)
            logger.warning(f"BetResolved query failed ({e}), retrying from block {wider}")
            return await self.ledger.find_bet_resolved(bet_id, wider)

    async def wait_for_settlement(self, bet_id: int, from_block: int = 0) -> BetResolvedEvent:
        """
        Poll bets(betId) until Settled, then return its BetResolved event.

        Raises:
            SettlementTimeout: the bet is still pending after `timeout` seconds
        """
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                bet = await self.ledger.get_bet(bet_id)
                if bet.status == BetStatus.SETTLED:
                    event = await self._read_resolution(bet_id, from_block)
                    if event is not None:
                        return event
            except ChainError as e:
                logger.warning(f"Polling bet {bet_id} failed: {e}")

            if time.monotonic() >= deadline:
                raise SettlementTimeout(
                    f"Bet {bet_id} not settled after {self.timeout:g}s", details={"betId": str(bet_id)}
                )
            await asyncio.sleep(self.poll_interval)

    async def settle(self, bet_id: int, from_block: int = 0) -> BetResolvedEvent:
        """Fast path through the resolver service, polling as the fallback."""
        if self.resolve_url:
            try:
                result = await self.request_resolution(bet_id)
                block = result.get("blockNumber") or from_block
                event = await self._read_resolution(bet_id, block)
                if event is not None:
                    return event
            except ChainError as e:
                logger.warning(f"Immediate resolution of bet {bet_id} failed, polling instead: {e}")

        return await self.wait_for_settlement(bet_id, from_block)
