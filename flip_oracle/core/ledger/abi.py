"""Minimal CoinFlip / ERC-20 ABI fragments used by the oracle."""

BET_PLACED_EVENT = {
    "type": "event",
    "name": "BetPlaced",
    "anonymous": False,
    "inputs": [
        {"name": "betId", "type": "uint256", "indexed": True},
        {"name": "player", "type": "address", "indexed": True},
        {"name": "guess", "type": "uint8", "indexed": False},
        {"name": "amount", "type": "uint256", "indexed": False},
        {"name": "clientSeed", "type": "uint256", "indexed": False},
    ],
}

BET_RESOLVED_EVENT = {
    "type": "event",
    "name": "BetResolved",
    "anonymous": False,
    "inputs": [
        {"name": "betId", "type": "uint256", "indexed": True},
        {"name": "player", "type": "address", "indexed": True},
        {"name": "guess", "type": "uint8", "indexed": False},
        {"name": "outcome", "type": "uint8", "indexed": False},
        {"name": "won", "type": "bool", "indexed": False},
        {"name": "amountIn", "type": "uint256", "indexed": False},
        {"name": "payoutTotal", "type": "uint256", "indexed": False},
        {"name": "profit", "type": "uint256", "indexed": False},
    ],
}

BETS_FUNCTION = {
    "type": "function",
    "name": "bets",
    "stateMutability": "view",
    "inputs": [{"name": "betId", "type": "uint256"}],
    "outputs": [
        {"name": "player", "type": "address"},
        {"name": "amount", "type": "uint256"},
        {"name": "status", "type": "uint8"},
        {"name": "placedAtBlock", "type": "uint64"},
    ],
}

RESOLVE_BET_FUNCTION = {
    "type": "function",
    "name": "resolveBet",
    "stateMutability": "nonpayable",
    "inputs": [
        {"name": "betId", "type": "uint256"},
        {"name": "random", "type": "bytes32"},
        {"name": "signature", "type": "bytes"},
    ],
    "outputs": [],
}

ORACLE_SIGNER_FUNCTION = {
    "type": "function",
    "name": "oracleSigner",
    "stateMutability": "view",
    "inputs": [],
    "outputs": [{"name": "", "type": "address"}],
}

FLIP_TOKEN_FUNCTION = {
    "type": "function",
    "name": "flip",
    "stateMutability": "nonpayable",
    "inputs": [
        {"name": "guess", "type": "uint8"},
        {"name": "amount", "type": "uint256"},
        {"name": "clientSeed", "type": "uint256"},
    ],
    "outputs": [{"name": "betId", "type": "uint256"}],
}

FLIP_NATIVE_FUNCTION = {
    "type": "function",
    "name": "flip",
    "stateMutability": "payable",
    "inputs": [
        {"name": "guess", "type": "uint8"},
        {"name": "clientSeed", "type": "uint256"},
    ],
    "outputs": [{"name": "betId", "type": "uint256"}],
}

_COMMON = [
    BET_PLACED_EVENT,
    BET_RESOLVED_EVENT,
    BETS_FUNCTION,
    RESOLVE_BET_FUNCTION,
    ORACLE_SIGNER_FUNCTION,
]

# One ABI per contract version; the two flip() overloads never share an ABI
COINFLIP_TOKEN_ABI = _COMMON + [FLIP_TOKEN_FUNCTION]
COINFLIP_NATIVE_ABI = _COMMON + [FLIP_NATIVE_FUNCTION]

ERC20_ABI = [
    {
        "type": "function",
        "name": "allowance",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]
