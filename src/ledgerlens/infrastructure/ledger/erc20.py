"""Minimal ERC-20 ABI: only the read-only balance query is needed."""

from __future__ import annotations

ERC20_BALANCE_OF_ABI: list[dict] = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function",
    }
]
