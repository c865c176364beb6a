"""
Recompute a bet's committed outcome once the server secret has been revealed.

Usage:
  python scripts/verify_outcome.py --secret 0x... --seed 42 --bet-id 7
  python scripts/verify_outcome.py --secret 0x... --seed 42 --bet-id 7 --signature 0x...
"""

import argparse
import os
import sys

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, project_root)

from web3 import Web3

from flip_oracle.core.commitment import commit, parse_server_secret, recover_signer
from flip_oracle.core.exceptions import ConfigurationError


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify a coin flip outcome")
    parser.add_argument("--secret", required=True, help="32-byte server secret (hex)")
    parser.add_argument("--seed", required=True, type=int, help="clientSeed from the BetPlaced event")
    parser.add_argument("--bet-id", required=True, type=int)
    parser.add_argument("--signature", help="resolution signature to check against the oracle address")
    args = parser.parse_args()

    try:
        secret = parse_server_secret(args.secret)
    except ConfigurationError as e:
        print(f"Invalid secret: {e}")
        return 2

    commitment = commit(secret, args.seed, args.bet_id)
    print(f"bet id       : {commitment.bet_id}")
    print(f"client seed  : {commitment.client_seed}")
    print(f"random       : {commitment.random_hex}")
    print(f"outcome      : {commitment.outcome.label}")
    print(f"message hash : {Web3.to_hex(commitment.message_hash)}")

    if args.signature:
        signer = recover_signer(commitment.message_hash, Web3.to_bytes(hexstr=args.signature))
        print(f"signed by    : {signer}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
