"""ABI fragments for the deployed SenteToken and SenteVault contracts.

Only the functions and events the wallet client calls are listed.
"""


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


TRANSFER_EVENT = {
    "type": "event",
    "name": "Transfer",
    "anonymous": False,
    "inputs": [
        {"indexed": True, "name": "from", "type": "address"},
        {"indexed": True, "name": "to", "type": "address"},
        {"indexed": False, "name": "value", "type": "uint256"},
    ],
}

SENTE_TOKEN_ABI: list[dict] = [
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("decimals", [], ["uint8"], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
    _fn("claimFaucet", [], [], "nonpayable"),
    _fn("canClaimFaucet", [("account", "address")], ["bool"], "view"),
    TRANSFER_EVENT,
]

SENTE_VAULT_ABI: list[dict] = [
    _fn("getBalance", [("user", "address")], ["uint256"], "view"),
    _fn("getSavingsBalance", [("user", "address")], ["uint256"], "view"),
    _fn("getUnlockTime", [("user", "address")], ["uint256"], "view"),
    _fn("isSavingsUnlocked", [("user", "address")], ["bool"], "view"),
    _fn("deposit", [("amount", "uint256")], [], "nonpayable"),
    _fn("withdraw", [("amount", "uint256")], [], "nonpayable"),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], [], "nonpayable"),
    _fn("saveToVault", [("amount", "uint256"), ("lockDuration", "uint256")], [], "nonpayable"),
    _fn("withdrawFromVault", [("amount", "uint256")], [], "nonpayable"),
]
