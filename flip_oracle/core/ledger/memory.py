"""
In-process ledger with the same Pending -> Settled rules as the contract.

Used for local development (LEDGER_BACKEND=memory), the flip simulation script
and the test suite. Every transaction mines its own block, and a failed
transaction raises ChainError without touching state, just like a revert.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3

from flip_oracle.core.coinflip import coinflip_game
from flip_oracle.core.commitment import message_hash, outcome_for, recover_signer
from flip_oracle.core.exceptions import ChainError
from flip_oracle.core.ledger.base import (
    BetInfo,
    BetPlacedEvent,
    BetResolvedEvent,
    BetStatus,
    ContractVersion,
    Ledger,
    Side,
    TxReceipt,
)
from flip_oracle.core.logger import get_logger

logger = get_logger("ledger.memory")


class LedgerRevert(ChainError):
    """A transaction the ledger refused; state is unchanged."""


@dataclass
class _BetRecord:
    player: str
    guess: Side
    amount: int
    client_seed: int
    status: BetStatus
    placed_at_block: int


@dataclass
class PlayerStats:
    plays: int = 0
    wins: int = 0
    wagered: int = 0
    paid_out: int = 0


class MemoryLedger(Ledger):
    def __init__(
        self,
        oracle_signer: str,
        version: ContractVersion = ContractVersion.TOKEN,
        start_block: int = 1,
    ):
        self._oracle_signer = Web3.to_checksum_address(oracle_signer)
        self.version = ContractVersion(version)
        self.block_number = start_block
        self.next_bet_id = 1
        self.bets: Dict[int, _BetRecord] = {}
        self.placed_events: List[BetPlacedEvent] = []
        self.resolved_events: List[BetResolvedEvent] = []
        self.stats: Dict[str, PlayerStats] = {}
        self._tx_counter = 0
        self._lock = asyncio.Lock()

    # ---------------- helpers ----------------

    def _mine(self) -> tuple:
        self.block_number += 1
        self._tx_counter += 1
        return Web3.to_hex(Web3.keccak(text=f"memory-tx-{self._tx_counter}")), self.block_number

    @staticmethod
    def _in_range(block: int, from_block: int, to_block: Optional[int]) -> bool:
        return block >= from_block and (to_block is None or block <= to_block)

    def player_stats(self, player: str) -> PlayerStats:
        return self.stats.setdefault(Web3.to_checksum_address(player), PlayerStats())

    # ---------------- views ----------------

    async def get_block_number(self) -> int:
        return self.block_number

    async def get_bet(self, bet_id: int) -> BetInfo:
        record = self.bets.get(bet_id)
        if record is None:
            return BetInfo(bet_id, "0x" + "00" * 20, 0, BetStatus.NONE, 0)
        return BetInfo(bet_id, record.player, record.amount, record.status, record.placed_at_block)

    async def oracle_signer(self) -> str:
        return self._oracle_signer

    async def scan_bet_placed(self, from_block: int, to_block: int) -> List[BetPlacedEvent]:
        return [e for e in self.placed_events if self._in_range(e.block_number, from_block, to_block)]

    async def find_bet_placed(self, bet_id, from_block, to_block=None) -> Optional[BetPlacedEvent]:
        for event in self.placed_events:
            if event.bet_id == bet_id and self._in_range(event.block_number, from_block, to_block):
                return event
        return None

    async def find_bet_resolved(self, bet_id, from_block, to_block=None) -> Optional[BetResolvedEvent]:
        for event in self.resolved_events:
            if event.bet_id == bet_id and self._in_range(event.block_number, from_block, to_block):
                return event
        return None

    # ---------------- transactions ----------------

    async def place_bet(self, account: LocalAccount, guess: Side, amount: int, client_seed: int) -> TxReceipt:
        async with self._lock:
            if amount < 0:
                raise LedgerRevert("execution reverted: amount must not be negative")
            if self.version == ContractVersion.TOKEN and amount == 0:
                raise LedgerRevert("execution reverted: amount must be positive")

            player = Web3.to_checksum_address(account.address)
            bet_id = self.next_bet_id
            tx_hash, block = self._mine()
            self.next_bet_id += 1

            self.bets[bet_id] = _BetRecord(player, Side(guess), amount, client_seed, BetStatus.PENDING, block)
            event = BetPlacedEvent(bet_id, player, Side(guess), amount, client_seed, block, tx_hash)
            self.placed_events.append(event)
            logger.debug(f"Bet {bet_id} placed by {player} at block {block}")
            return TxReceipt(tx_hash, block, 1, [event])

    async def resolve_bet(
        self, bet_id: int, random: bytes, signature: bytes, account: LocalAccount, gas_limit: int
    ) -> TxReceipt:
        async with self._lock:
            record = self.bets.get(bet_id)
            if record is None or record.status != BetStatus.PENDING:
                raise LedgerRevert("execution reverted: bet not pending")

            try:
                signer = recover_signer(message_hash(bet_id, random), signature)
            except Exception:
                raise LedgerRevert("execution reverted: invalid signature") from None
            if signer != self._oracle_signer:
                raise LedgerRevert("execution reverted: invalid signature")

            try:
                result = coinflip_game.settle(record.amount, record.guess, outcome_for(random))
            except Exception as e:
                raise LedgerRevert(f"execution reverted: {e}") from e

            # Nothing above mutates state; everything below must not fail
            tx_hash, block = self._mine()
            record.status = BetStatus.SETTLED

            stats = self.player_stats(record.player)
            stats.plays += 1
            stats.wagered += record.amount
            if result["won"]:
                stats.wins += 1
                stats.paid_out += result["payout_total"]

            event = BetResolvedEvent(
                bet_id=bet_id,
                player=record.player,
                guess=record.guess,
                outcome=result["outcome"],
                won=result["won"],
                amount_in=result["amount_in"],
                payout_total=result["payout_total"],
                profit=result["profit"],
                block_number=block,
                tx_hash=tx_hash,
            )
            self.resolved_events.append(event)
            return TxReceipt(tx_hash, block, 1, [event])
