"""
Oracle resolver: drives bets from Pending to Settled.

Two entry points share one settlement routine:

* resolve_bet(bet_id) - single-bet mode, errors propagate to the caller.
* sweep()             - batch mode, scans recent BetPlaced events and resolves
                        up to `batch_size` pending bets; one failing bet never
                        stops the rest of the batch.

The resolver keeps no state between calls. Whether a bet still needs
resolving is read from the ledger every time, and a bet that turns out to be
settled already is reported as "not pending" instead of failing.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from flip_oracle.config import OracleConfig, SweepConfig, settings
from flip_oracle.core.commitment import commit, parse_server_secret, sign_resolution
from flip_oracle.core.exceptions import BetNotFoundError, ChainError, ConfigurationError, OracleError
from flip_oracle.core.ledger.base import BetInfo, BetStatus, Ledger, Side
from flip_oracle.core.ledger.factory import create_ledger
from flip_oracle.core.logger import get_logger, redaction_filter

logger = get_logger("resolver")

NOT_PENDING = "not pending"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ResolutionResult:
    bet_id: int
    resolved: bool
    status: Optional[BetStatus] = None
    reason: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    outcome: Optional[Side] = None
    error: Optional[str] = None
    retryable: Optional[bool] = None

    @property
    def not_pending(self) -> bool:
        return self.reason == NOT_PENDING

    @classmethod
    def skipped(cls, bet: BetInfo) -> "ResolutionResult":
        return cls(bet_id=bet.bet_id, resolved=False, status=bet.status, reason=NOT_PENDING)

    @classmethod
    def failed(cls, bet_id: int, exc: Exception) -> "ResolutionResult":
        retryable = exc.retryable if isinstance(exc, OracleError) else True
        return cls(bet_id=bet_id, resolved=False, error=str(exc), retryable=retryable)

    def to_dict(self) -> Dict:
        data = {"betId": str(self.bet_id), "resolved": self.resolved}
        if self.status is not None:
            data["status"] = self.status.label
        if self.reason:
            data["reason"] = self.reason
        if self.tx_hash:
            data["transactionHash"] = self.tx_hash
            data["blockNumber"] = self.block_number
        if self.outcome is not None:
            data["outcome"] = self.outcome.label
        if self.error:
            data["error"] = self.error
            data["retryable"] = self.retryable
        return data


@dataclass
class SweepReport:
    checked: int
    pending: int
    results: List[ResolutionResult] = field(default_factory=list)
    stale: int = 0
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def resolved(self) -> int:
        return sum(1 for r in self.results if r.resolved)

    def to_dict(self) -> Dict:
        return {
            "success": True,
            "checked": self.checked,
            "pending": self.pending,
            "resolved": self.resolved,
            "stale": self.stale,
            "results": [r.to_dict() for r in self.results],
            "timestamp": self.timestamp,
        }


class OracleResolver:
    """
    Signs and submits bet resolutions for one ledger contract.

    Args:
        config: RPC endpoint, signing key, contract address, server secret, chain id
        sweep: Batch, window and gas settings
        ledger: Ledger backend; built from config.ledger_backend when omitted

    Raises:
        ConfigurationError: if a required setting is missing or malformed. This
            happens before any chain interaction.
    """

    def __init__(self, config: OracleConfig, sweep: Optional[SweepConfig] = None, ledger: Optional[Ledger] = None):
        config.require()
        redaction_filter.add(config.signing_key, config.server_secret, config.cron_secret)

        self.config = config
        self.sweep_config = sweep or SweepConfig()
        self._server_secret = parse_server_secret(config.server_secret)
        self.account = self._load_account(config.signing_key)
        self.ledger = ledger or create_ledger(config, self.sweep_config, self.account.address)

    @staticmethod
    def _load_account(signing_key: str) -> LocalAccount:
        try:
            return Account.from_key(signing_key)
        except Exception:
            # never echo the key material back
            raise ConfigurationError("PRIVATE_KEY is not a valid private key") from None

    @property
    def signer_address(self) -> str:
        return self.account.address

    async def verify_signer(self) -> str:
        """The ledger must trust our signing address, otherwise every resolution would revert."""
        onchain = await self.ledger.oracle_signer()
        if onchain.lower() != self.account.address.lower():
            logger.error(
                "Oracle signer mismatch",
                extra={"onchain": onchain, "wallet": self.account.address},
            )
            raise ConfigurationError(
                "Oracle signer mismatch",
                details={"onchain": onchain, "wallet": self.account.address},
            )
        return onchain

    # ==================== Single-bet mode ====================

    async def resolve_bet(self, bet_id: int, check_signer: bool = True) -> ResolutionResult:
        """
        Resolve one bet.

        Returns a "not pending" result if the bet is already settled.

        Raises:
            ConfigurationError: signer mismatch
            BetNotFoundError: the bet or its BetPlaced event does not exist (yet)
            ChainError: RPC failure or reverted transaction
        """
        if check_signer:
            await self.verify_signer()

        bet = await self.ledger.get_bet(bet_id)
        if bet.status == BetStatus.NONE:
            raise BetNotFoundError("Bet does not exist", details={"betId": str(bet_id)})
        if not bet.is_pending:
            logger.info(f"Bet {bet_id} is not pending ({bet.status.label}), nothing to do")
            return ResolutionResult.skipped(bet)

        return await self._settle(bet)

    async def _settle(self, bet: BetInfo) -> ResolutionResult:
        latest = await self.ledger.get_block_number()
        from_block = max(bet.placed_at_block - self.sweep_config.event_lookback, 0)
        event = await self.ledger.find_bet_placed(bet.bet_id, from_block, latest)
        if event is None:
            raise BetNotFoundError(
                "BetPlaced event not found",
                details={"betId": str(bet.bet_id), "fromBlock": from_block, "toBlock": latest},
            )

        commitment = commit(self._server_secret, event.client_seed, bet.bet_id)
        signature = sign_resolution(commitment.message_hash, self.account.key)

        try:
            receipt = await self.ledger.resolve_bet(
                bet.bet_id,
                commitment.random,
                signature,
                self.account,
                self.sweep_config.gas_limit,
            )
        except ChainError as e:
            current = await self._reread(bet.bet_id)
            if current is not None and current.status == BetStatus.SETTLED:
                logger.info(f"Bet {bet.bet_id} was settled by another resolver")
                return ResolutionResult.skipped(current)
            logger.warning(f"Resolution of bet {bet.bet_id} failed: {e}")
            raise

        logger.info(
            f"Resolved bet {bet.bet_id}: {commitment.outcome.label}",
            extra={"tx_hash": receipt.tx_hash, "block": receipt.block_number},
        )
        return ResolutionResult(
            bet_id=bet.bet_id,
            resolved=True,
            status=BetStatus.SETTLED,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            outcome=commitment.outcome,
        )

    async def _reread(self, bet_id: int) -> Optional[BetInfo]:
        try:
            return await self.ledger.get_bet(bet_id)
        except ChainError:
            return None

    # ==================== Sweep mode ====================

    async def find_pending(self, from_block: int, to_block: int) -> tuple:
        """
        BetPlaced events in the window and the subset still pending, oldest first.

        A bet whose status cannot be read is logged and left for the next sweep.
        """
        events = await self.ledger.scan_bet_placed(from_block, to_block)

        pending: List[BetInfo] = []
        seen = set()
        for event in sorted(events, key=lambda e: e.bet_id):
            if event.bet_id in seen:
                continue
            seen.add(event.bet_id)
            try:
                bet = await self.ledger.get_bet(event.bet_id)
            except ChainError as e:
                logger.warning(f"Error checking bet {event.bet_id}: {e}")
                continue
            if bet.is_pending:
                pending.append(bet)
        return events, pending

    def _count_stale(self, pending: List[BetInfo], latest: int) -> int:
        limit = self.sweep_config.stale_after_blocks
        if limit <= 0:
            return 0
        stale = [bet for bet in pending if latest - bet.placed_at_block > limit]
        for bet in stale:
            logger.warning(
                f"Bet {bet.bet_id} pending for {latest - bet.placed_at_block} blocks",
                extra={"bet_id": bet.bet_id, "placed_at_block": bet.placed_at_block},
            )
        return len(stale)

    async def sweep(self) -> SweepReport:
        """
        Resolve up to batch_size pending bets from the recent block window.

        Per-bet failures are reported in the results list. Only a signer
        mismatch or a failed scan aborts the sweep.
        """
        await self.verify_signer()

        latest = await self.ledger.get_block_number()
        from_block = max(0, latest - self.sweep_config.block_window)
        events, pending = await self.find_pending(from_block, latest)

        batch = pending[: self.sweep_config.batch_size]
        results = []
        for index, bet in enumerate(batch):
            results.append(await self._resolve_in_batch(bet))
            if index < len(batch) - 1 and self.sweep_config.delay_seconds > 0:
                await asyncio.sleep(self.sweep_config.delay_seconds)

        resolved_ids = {r.bet_id for r in results if r.resolved}
        report = SweepReport(
            checked=len(events),
            pending=len(pending),
            results=results,
            stale=self._count_stale([b for b in pending if b.bet_id not in resolved_ids], latest),
        )
        logger.info(
            f"Sweep blocks {from_block}-{latest}: checked {report.checked}, "
            f"pending {report.pending}, resolved {report.resolved}"
        )
        return report

    async def _resolve_in_batch(self, bet: BetInfo) -> ResolutionResult:
        try:
            return await self._settle(bet)
        except OracleError as e:
            logger.warning(f"Bet {bet.bet_id} not resolved: {e}")
            return ResolutionResult.failed(bet.bet_id, e)
        except Exception as e:
            logger.error(f"Unexpected error resolving bet {bet.bet_id}: {e}", exc_info=True)
            return ResolutionResult.failed(bet.bet_id, e)


_resolver: Optional[OracleResolver] = None


def get_resolver() -> OracleResolver:
    """Process-wide resolver built from settings; a config error is raised on every call until fixed."""
    global _resolver
    if _resolver is None:
        _resolver = OracleResolver(settings.oracle, settings.sweep)
        logger.info(
            f"Oracle resolver ready for {_resolver.config.contract_address}",
            extra={"signer": _resolver.signer_address, "backend": _resolver.config.ledger_backend},
        )
    return _resolver


def reset_resolver():
    global _resolver
    _resolver = None
