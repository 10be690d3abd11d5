"""Streaming batch balance lookups."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import AsyncIterable, AsyncIterator

from ...domain.addresses import (
    Address,
    TokenIdentifier,
    parse_address,
    parse_token_identifier,
)
from ..dtos import GetAccountsRequestDTO, GetAccountsResponseDTO
from .resolvers import BalanceResolver


class BalanceStreamService:
    """Turns a stream of (holders, token) requests into one balance per pair.

    Responses follow request arrival order and, within a request, the order the
    holders were listed. With ``max_in_flight == 1`` each lookup is awaited
    before the next one is issued. Larger values let up to that many lookups of
    a single request run concurrently while responses are still yielded in
    order.

    The first failed lookup raises ``UpstreamUnavailableError`` out of the
    iterator; nothing after the failed holder is yielded.
    """

    def __init__(self, balance_resolver: BalanceResolver, max_in_flight: int = 1):
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be >= 1")
        self.balance_resolver = balance_resolver
        self.max_in_flight = max_in_flight

    async def stream_balances(
        self, requests: AsyncIterable[GetAccountsRequestDTO]
    ) -> AsyncIterator[GetAccountsResponseDTO]:
        async for request in requests:
            token_address, holders = self._parse_request(request)
            if self.max_in_flight == 1:
                for raw_address, holder in holders:
                    balance = await self.balance_resolver.resolve(token_address, holder)
                    yield self._response(raw_address, balance)
            else:
                async for response in self._resolve_ordered(token_address, holders):
                    yield response

    def _parse_request(
        self, request: GetAccountsRequestDTO
    ) -> tuple[TokenIdentifier, list[tuple[str, Address]]]:
        """Validate a whole request before any of its lookups is issued."""
        token_address = parse_token_identifier(request.erc20_token_address)
        holders = [
            (raw, parse_address(raw, field="ethereum_address"))
            for raw in request.ethereum_addresses
        ]
        return token_address, holders

    async def _resolve_ordered(
        self,
        token_address: TokenIdentifier,
        holders: list[tuple[str, Address]],
    ) -> AsyncIterator[GetAccountsResponseDTO]:
        pending: deque[tuple[str, asyncio.Task[int]]] = deque()
        try:
            for raw_address, holder in holders:
                task = asyncio.ensure_future(
                    self.balance_resolver.resolve(token_address, holder)
                )
                pending.append((raw_address, task))
                if len(pending) >= self.max_in_flight:
                    head_address, head_task = pending.popleft()
                    yield self._response(head_address, await head_task)
            while pending:
                head_address, head_task = pending.popleft()
                yield self._response(head_address, await head_task)
        finally:
            outstanding = [task for _, task in pending]
            for task in outstanding:
                task.cancel()
            if outstanding:
                await asyncio.gather(*outstanding, return_exceptions=True)

    @staticmethod
    def _response(raw_address: str, balance: int) -> GetAccountsResponseDTO:
        return GetAccountsResponseDTO(
            ethereum_address=raw_address, erc20_balance=str(balance)
        )
