"""
Types and interface of the bet ledger contract.

The ledger is the only source of truth for bet state. Every backend exposes
the same async surface so the resolver and the settlement client never care
whether they are talking to a chain or to the in-memory ledger.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

from eth_account.signers.local import LocalAccount


class Side(IntEnum):
    HEADS = 0
    TAILS = 1

    @classmethod
    def parse(cls, value) -> "Side":
        """Accept 0/1, "heads"/"tails" or a Side."""
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            raise ValueError(f"Invalid side: {value}. Must be 'heads' or 'tails'.")
        return cls(int(value))

    @property
    def label(self) -> str:
        return self.name.lower()


class BetStatus(IntEnum):
    NONE = 0
    PENDING = 1
    SETTLED = 2

    @property
    def label(self) -> str:
        return self.name.lower()


class ContractVersion(str, Enum):
    """Which flip() signature the deployed contract has. Fixed by config, never probed."""

    TOKEN = "token"    # flip(uint8 guess, uint256 amount, uint256 clientSeed)
    NATIVE = "native"  # flip(uint8 guess, uint256 clientSeed), gas-only wager


@dataclass
class BetInfo:
    bet_id: int
    player: str
    amount: int
    status: BetStatus
    placed_at_block: int

    @property
    def is_pending(self) -> bool:
        return self.status == BetStatus.PENDING


@dataclass
class BetPlacedEvent:
    bet_id: int
    player: str
    guess: Side
    amount: int
    client_seed: int
    block_number: int
    tx_hash: Optional[str] = None


@dataclass
class BetResolvedEvent:
    bet_id: int
    player: str
    guess: Side
    outcome: Side
    won: bool
    amount_in: int
    payout_total: int
    profit: int
    block_number: int
    tx_hash: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "betId": self.bet_id,
            "player": self.player,
            "guess": self.guess.label,
            "outcome": self.outcome.label,
            "won": self.won,
            "amountIn": self.amount_in,
            "payoutTotal": self.payout_total,
            "profit": self.profit,
            "blockNumber": self.block_number,
            "transactionHash": self.tx_hash,
        }


@dataclass
class TxReceipt:
    tx_hash: str
    block_number: int
    status: int
    events: List = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class Ledger(ABC):
    """Async view of the CoinFlip contract."""

    version: ContractVersion = ContractVersion.TOKEN

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def get_bet(self, bet_id: int) -> BetInfo:
        """bets(betId); unknown ids come back with status NONE."""

    @abstractmethod
    async def oracle_signer(self) -> str:
        """Address the contract accepts resolution signatures from."""

    @abstractmethod
    async def scan_bet_placed(self, from_block: int, to_block: int) -> List[BetPlacedEvent]:
        ...

    @abstractmethod
    async def find_bet_placed(
        self, bet_id: int, from_block: int, to_block: Optional[int] = None
    ) -> Optional[BetPlacedEvent]:
        ...

    @abstractmethod
    async def find_bet_resolved(
        self, bet_id: int, from_block: int, to_block: Optional[int] = None
    ) -> Optional[BetResolvedEvent]:
        ...

    @abstractmethod
    async def resolve_bet(
        self,
        bet_id: int,
        random: bytes,
        signature: bytes,
        account: LocalAccount,
        gas_limit: int,
    ) -> TxReceipt:
        """Submit resolveBet and wait for the receipt."""

    @abstractmethod
    async def place_bet(
        self, account: LocalAccount, guess: Side, amount: int, client_seed: int
    ) -> TxReceipt:
        """Submit flip() for the configured contract version and wait for the receipt."""
