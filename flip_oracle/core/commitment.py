"""
Commitment scheme binding a bet to its outcome.

    random      = keccak256(abi.encode(bytes32 serverSecret, uint256 clientSeed, uint256 betId))
    outcome     = HEADS if random[0] & 1 == 0 else TAILS
    messageHash = keccak256(abi.encode(uint256 betId, bytes32 random))

The oracle signs messageHash with the EIP-191 personal-message prefix; the
contract recovers the signer and compares it with oracleSigner(). Everything
here is pure and deterministic so a resolution can be retried any number of
times and still produce the same random value.
"""

from dataclasses import dataclass
from typing import Union

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from flip_oracle.core.exceptions import ConfigurationError
from flip_oracle.core.ledger.base import Side

UINT256_MAX = 2**256 - 1


@dataclass(frozen=True)
class Commitment:
    bet_id: int
    client_seed: int
    random: bytes
    outcome: Side
    message_hash: bytes

    @property
    def random_hex(self) -> str:
        return Web3.to_hex(self.random)


def parse_server_secret(value: Union[str, bytes]) -> bytes:
    """Decode the 32-byte server secret (hex, 0x prefix optional)."""
    if isinstance(value, bytes):
        secret = value
    else:
        text = (value or "").strip()
        if text.startswith(("0x", "0X")):
            text = text[2:]
        try:
            secret = bytes.fromhex(text)
        except ValueError:
            raise ConfigurationError("SERVER_SEED must be hex encoded") from None

    if len(secret) != 32:
        raise ConfigurationError(f"SERVER_SEED must be 32 bytes, got {len(secret)}")
    return secret


def _check_uint256(name: str, value: int):
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= UINT256_MAX:
        raise ValueError(f"{name} must be an unsigned 256-bit integer")


def derive_random(server_secret: bytes, client_seed: int, bet_id: int) -> bytes:
    _check_uint256("client_seed", client_seed)
    _check_uint256("bet_id", bet_id)
    return Web3.keccak(encode(["bytes32", "uint256", "uint256"], [server_secret, client_seed, bet_id]))


def outcome_for(random: bytes) -> Side:
    """Low bit of the first digest byte picks the side."""
    return Side.HEADS if random[0] & 1 == 0 else Side.TAILS


def message_hash(bet_id: int, random: bytes) -> bytes:
    _check_uint256("bet_id", bet_id)
    return Web3.keccak(encode(["uint256", "bytes32"], [bet_id, random]))


def sign_resolution(digest: bytes, signing_key) -> bytes:
    """65-byte r||s||v personal-message signature over the raw digest bytes."""
    signed = Account.sign_message(encode_defunct(primitive=digest), private_key=signing_key)
    return bytes(signed.signature)


def recover_signer(digest: bytes, signature: bytes) -> str:
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


def commit(server_secret: bytes, client_seed: int, bet_id: int) -> Commitment:
    random = derive_random(server_secret, client_seed, bet_id)
    return Commitment(
        bet_id=bet_id,
        client_seed=client_seed,
        random=bytes(random),
        outcome=outcome_for(random),
        message_hash=bytes(message_hash(bet_id, random)),
    )
