from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.contract import AsyncContract

from ...domain.addresses import Address, TokenIdentifier
from .erc20 import ERC20_BALANCE_OF_ABI


class Web3LedgerClient:
    """Read-only ledger client backed by a JSON-RPC node through web3.py.

    - Builds an ERC-20 contract binding per token and calls ``balanceOf``.
    - Reads the pending transaction count for nonces.
    - Does not retry; errors from the provider propagate to the caller.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        *,
        web3: Optional[AsyncWeb3] = None,
    ) -> None:
        self._w3 = web3 or AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            )
        )

    def token_contract(self, token_address: TokenIdentifier) -> AsyncContract:
        return self._w3.eth.contract(address=token_address, abi=ERC20_BALANCE_OF_ABI)

    async def get_token_balance(
        self, token_address: TokenIdentifier, holder_address: Address
    ) -> int:
        contract = self.token_contract(token_address)
        return await contract.functions.balanceOf(holder_address).call()

    async def get_pending_nonce(self, holder_address: Address) -> int:
        return await self._w3.eth.get_transaction_count(holder_address, "pending")

    async def aclose(self) -> None:
        await self._w3.provider.disconnect()

    async def __aenter__(self) -> "Web3LedgerClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
