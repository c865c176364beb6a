"""
web3.py client for the deployed CoinFlip contract.

Every RPC call is awaited; any web3, timeout or connection failure leaves
this module as a ChainError so callers only deal with one exception family.
"""

import asyncio
from functools import wraps
from typing import List, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import Web3Exception
from web3.logs import DISCARD
from web3.middleware import ExtraDataToPOAMiddleware

from flip_oracle.core.exceptions import ChainError
from flip_oracle.core.ledger.abi import COINFLIP_NATIVE_ABI, COINFLIP_TOKEN_ABI, ERC20_ABI
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

logger = get_logger("ledger.onchain")

RPC_ERRORS = (Web3Exception, asyncio.TimeoutError, OSError, ValueError)


def chain_call(description: str):
    """Wrap an async ledger method so RPC failures surface as ChainError."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except ChainError:
                raise
            except RPC_ERRORS as e:
                raise ChainError(f"{description} failed: {e}") from e

        return wrapper

    return decorator


class OnchainLedger(Ledger):
    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        chain_id: int,
        version: ContractVersion = ContractVersion.TOKEN,
        stake_token: Optional[str] = None,
        poa: bool = False,
        receipt_timeout: int = 120,
    ):
        self.chain_id = chain_id
        self.version = ContractVersion(version)
        self.receipt_timeout = receipt_timeout

        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        if poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        abi = COINFLIP_TOKEN_ABI if self.version == ContractVersion.TOKEN else COINFLIP_NATIVE_ABI
        self.address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.address, abi=abi)
        self.token = None
        if stake_token:
            self.token = self.w3.eth.contract(address=Web3.to_checksum_address(stake_token), abi=ERC20_ABI)

    # ---------------- decoding ----------------

    @staticmethod
    def _placed_from_log(log) -> BetPlacedEvent:
        args = log["args"]
        return BetPlacedEvent(
            bet_id=int(args["betId"]),
            player=args["player"],
            guess=Side(int(args["guess"])),
            amount=int(args["amount"]),
            client_seed=int(args["clientSeed"]),
            block_number=int(log["blockNumber"]),
            tx_hash=Web3.to_hex(log["transactionHash"]),
        )

    @staticmethod
    def _resolved_from_log(log) -> BetResolvedEvent:
        args = log["args"]
        return BetResolvedEvent(
            bet_id=int(args["betId"]),
            player=args["player"],
            guess=Side(int(args["guess"])),
            outcome=Side(int(args["outcome"])),
            won=bool(args["won"]),
            amount_in=int(args["amountIn"]),
            payout_total=int(args["payoutTotal"]),
            profit=int(args["profit"]),
            block_number=int(log["blockNumber"]),
            tx_hash=Web3.to_hex(log["transactionHash"]),
        )

    def _decode_receipt(self, receipt) -> TxReceipt:
        events = [
            self._placed_from_log(log)
            for log in self.contract.events.BetPlaced().process_receipt(receipt, errors=DISCARD)
        ]
        events += [
            self._resolved_from_log(log)
            for log in self.contract.events.BetResolved().process_receipt(receipt, errors=DISCARD)
        ]
        return TxReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt["status"]),
            events=events,
        )

    # ---------------- views ----------------

    @chain_call("eth_blockNumber")
    async def get_block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    @chain_call("bets()")
    async def get_bet(self, bet_id: int) -> BetInfo:
        player, amount, status, placed_at_block = await self.contract.functions.bets(bet_id).call()
        return BetInfo(bet_id, player, int(amount), BetStatus(int(status)), int(placed_at_block))

    @chain_call("oracleSigner()")
    async def oracle_signer(self) -> str:
        return await self.contract.functions.oracleSigner().call()

    @chain_call("BetPlaced query")
    async def scan_bet_placed(self, from_block: int, to_block: int) -> List[BetPlacedEvent]:
        logs = await self.contract.events.BetPlaced.get_logs(from_block=from_block, to_block=to_block)
        return [self._placed_from_log(log) for log in logs]

    @chain_call("BetPlaced query")
    async def find_bet_placed(self, bet_id, from_block, to_block=None) -> Optional[BetPlacedEvent]:
        logs = await self.contract.events.BetPlaced.get_logs(
            argument_filters={"betId": bet_id},
            from_block=from_block,
            to_block=to_block if to_block is not None else "latest",
        )
        return self._placed_from_log(logs[0]) if logs else None

    @chain_call("BetResolved query")
    async def find_bet_resolved(self, bet_id, from_block, to_block=None) -> Optional[BetResolvedEvent]:
        logs = await self.contract.events.BetResolved.get_logs(
            argument_filters={"betId": bet_id},
            from_block=from_block,
            to_block=to_block if to_block is not None else "latest",
        )
        return self._resolved_from_log(logs[0]) if logs else None

    # ---------------- transactions ----------------

    async def _send(self, fn_call, account: LocalAccount, gas_limit: Optional[int] = None, value: int = 0):
        nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
        params = {
            "from": account.address,
            "nonce": nonce,
            "chainId": self.chain_id,
            "value": value,
        }
        if gas_limit:
            params["gas"] = gas_limit
        tx = await fn_call.build_transaction(params)
        signed = account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Submitted {fn_call.fn_name} tx {Web3.to_hex(tx_hash)}")
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            raise ChainError("Transaction reverted", details={"transactionHash": Web3.to_hex(tx_hash)})
        return receipt

    @chain_call("resolveBet")
    async def resolve_bet(self, bet_id, random, signature, account, gas_limit) -> TxReceipt:
        receipt = await self._send(
            self.contract.functions.resolveBet(bet_id, random, signature), account, gas_limit=gas_limit
        )
        return self._decode_receipt(receipt)

    @chain_call("flip")
    async def place_bet(self, account, guess, amount, client_seed) -> TxReceipt:
        if self.version == ContractVersion.TOKEN:
            await self._ensure_allowance(account, amount)
            fn_call = self.contract.functions.flip(int(guess), amount, client_seed)
            receipt = await self._send(fn_call, account)
        else:
            fn_call = self.contract.functions.flip(int(guess), client_seed)
            receipt = await self._send(fn_call, account, value=amount)
        return self._decode_receipt(receipt)

    async def _ensure_allowance(self, account: LocalAccount, amount: int):
        if self.token is None:
            return
        allowance = await self.token.functions.allowance(account.address, self.address).call()
        if allowance < amount:
            logger.info(f"Approving {amount} stake units for {account.address}")
            await self._send(self.token.functions.approve(self.address, amount), account)
