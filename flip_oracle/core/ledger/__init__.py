"""Bet ledger backends. Import a backend from its own module; only the shared types live here."""

from .base import (
    BetInfo,
    BetPlacedEvent,
    BetResolvedEvent,
    BetStatus,
    ContractVersion,
    Ledger,
    Side,
    TxReceipt,
)

__all__ = [
    "BetInfo",
    "BetPlacedEvent",
    "BetResolvedEvent",
    "BetStatus",
    "ContractVersion",
    "Ledger",
    "Side",
    "TxReceipt",
]
