"""Protocol interface for ledger client implementations.

This protocol defines the read-only contract the account service needs from a
ledger node. It enables dependency injection and makes services testable by
allowing fake implementations.
"""

from __future__ import annotations

from types import TracebackType
from typing import Optional, Protocol, Type

from .addresses import Address, TokenIdentifier


class LedgerClientProtocol(Protocol):
    """Protocol defining the interface for ledger client implementations.

    Implementations should provide async methods for:
    - Reading an ERC-20 token balance of a holder
    - Reading the pending transaction count (nonce) of a holder
    - Context manager support for resource cleanup
    """

    async def get_token_balance(
        self, token_address: TokenIdentifier, holder_address: Address
    ) -> int:
        """Read ``balanceOf(holder_address)`` on the token contract.

        Args:
            token_address: Checksummed token contract address
            holder_address: Checksummed holder address

        Returns:
            Balance in the token's smallest unit
        """
        ...

    async def get_pending_nonce(self, holder_address: Address) -> int:
        """Read the next expected nonce for the holder from the pending state.

        Args:
            holder_address: Checksummed holder address

        Returns:
            Pending transaction count
        """
        ...

    async def aclose(self) -> None:
        """Close the client and release resources."""
        ...

    async def __aenter__(self) -> "LedgerClientProtocol":
        ...

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        ...
