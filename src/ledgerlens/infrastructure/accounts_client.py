from __future__ import annotations

from types import TracebackType
from typing import AsyncIterator, Iterable, Optional, Type

import aiohttp
import httpx

from ..application.dtos import (
    GetAccountRequestDTO,
    GetAccountResponseDTO,
    GetAccountsRequestDTO,
    GetAccountsResponseDTO,
    StreamEndDTO,
    StreamErrorDTO,
)
from ..domain.errors import (
    AccountServiceError,
    InvalidEncodingError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)
from .http.http_client import AsyncHttpClient

_ERRORS_BY_STATUS: dict[int, Type[AccountServiceError]] = {
    400: InvalidEncodingError,
    401: UnauthenticatedError,
    502: UpstreamUnavailableError,
}

_ERRORS_BY_CODE: dict[str, Type[AccountServiceError]] = {
    error.code: error
    for error in (InvalidEncodingError, UnauthenticatedError, UpstreamUnavailableError)
}


class AccountsClient:
    """Asynchronous client for the account API.

    The unary query goes over HTTP; the batch balance stream over a WebSocket.
    Service failures are raised as the matching ``AccountServiceError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        # base_url is expected to already contain the API prefix (e.g. /api/v1)
        self._http = AsyncHttpClient(base_url, timeout=timeout, transport=transport)
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def get_account(self, dto: GetAccountRequestDTO) -> GetAccountResponseDTO:
        try:
            resp = await self._http.post("/accounts/query", json=dto.model_dump())
        except httpx.HTTPStatusError as e:
            error_cls = _ERRORS_BY_STATUS.get(e.response.status_code)
            if error_cls is None:
                raise
            raise error_cls(e.response.json().get("detail", str(e))) from e
        return GetAccountResponseDTO.model_validate(resp.json())

    async def get_accounts(
        self, requests: Iterable[GetAccountsRequestDTO]
    ) -> AsyncIterator[GetAccountsResponseDTO]:
        """Send every request, signal end of input, then yield responses in order."""
        session = self._get_session()
        async with session.ws_connect(self._http.url("/accounts/stream")) as ws:
            for request in requests:
                await ws.send_json(request.model_dump())
            await ws.send_json(StreamEndDTO().model_dump())

            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    data = msg.json()
                    if data.get("type") == "error":
                        error = StreamErrorDTO.model_validate(data)
                        error_cls = _ERRORS_BY_CODE.get(
                            error.code, AccountServiceError
                        )
                        raise error_cls(error.detail)
                    yield GetAccountsResponseDTO.model_validate(data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise ws.exception() or aiohttp.ClientError(
                        "WebSocket stream failed"
                    )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self._timeout)
            )
        return self._session

    async def aclose(self) -> None:
        await self._http.aclose()
        if self._session is not None:
            await self._session.close()

    async def __aenter__(self) -> "AccountsClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
