"""Account API routes: unary account query and streaming batch balances."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import AsyncIterator

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from prometheus_client import Counter, Gauge, Histogram
from pydantic import ValidationError

from ...application.dtos import (
    GetAccountRequestDTO,
    GetAccountResponseDTO,
    GetAccountsRequestDTO,
    StreamErrorDTO,
)
from ...application.use_cases.account_query import AccountQueryService
from ...application.use_cases.balance_stream import BalanceStreamService
from ...domain.errors import (
    AccountServiceError,
    InvalidEncodingError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)
from ..dependencies import get_account_query_service, get_balance_stream_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])

INBOUND_FRAME_BUFFER = 16


account_query_requests_total = Counter(
    "account_query_requests_total",
    "Total account query requests processed",
    ["status"],
)

account_query_duration_seconds = Histogram(
    "account_query_duration_seconds",
    "Wall time to process an account query",
    ["status"],
)

balance_stream_responses_total = Counter(
    "balance_stream_responses_total",
    "Total balance responses emitted on streams",
)

balance_stream_terminations_total = Counter(
    "balance_stream_terminations_total",
    "Balance streams ended, by reason",
    ["reason"],
)

balance_streams_open = Gauge(
    "balance_streams_open",
    "Number of balance streams currently open",
    multiprocess_mode="livesum",
)


def _observe(status_label: str, start_time: float) -> None:
    account_query_requests_total.labels(status=status_label).inc()
    elapsed = time.perf_counter() - start_time
    account_query_duration_seconds.labels(status=status_label).observe(elapsed)


@router.post(
    "/query",
    response_model=GetAccountResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_account(
    payload: GetAccountRequestDTO,
    service: AccountQueryService = Depends(get_account_query_service),
) -> GetAccountResponseDTO:
    """Return the gas token balance and pending nonce of a signature-verified address."""
    start_time = time.perf_counter()
    try:
        result = await service.get_account(payload)
    except InvalidEncodingError as e:
        _observe("invalid_encoding", start_time)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except UnauthenticatedError as e:
        _observe("unauthenticated", start_time)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except UpstreamUnavailableError as e:
        _observe("upstream_error", start_time)
        logger.warning("Account query failed upstream: %s", e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except Exception as e:
        _observe("server_error", start_time)
        logger.exception("Failed to process account query")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process account query: {str(e)}",
        )
    _observe("success", start_time)
    return result


async def _read_frames(websocket: WebSocket, frames: asyncio.Queue) -> None:
    """Move inbound messages to ``frames`` until the client disconnects."""
    while True:
        message = await websocket.receive()
        await frames.put(message)
        if message["type"] == "websocket.disconnect":
            return


async def _receive_requests(
    frames: asyncio.Queue,
) -> AsyncIterator[GetAccountsRequestDTO]:
    """Yield inbound requests until the client sends the end frame."""
    while True:
        message = await frames.get()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(
                message.get("code", status.WS_1000_NORMAL_CLOSURE)
            )
        raw = message.get("text")
        if raw is None:
            raise InvalidEncodingError("Stream frames must be JSON text")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidEncodingError("Stream frame is not valid JSON") from e
        if isinstance(data, dict) and data.get("type") == "end":
            return
        try:
            request = GetAccountsRequestDTO.model_validate(data)
        except ValidationError as e:
            raise InvalidEncodingError(
                f"Malformed stream request: {e.error_count()} validation error(s)"
            ) from e
        yield request


async def _send_balances(
    websocket: WebSocket, service: BalanceStreamService, frames: asyncio.Queue
) -> int:
    emitted = 0
    async for response in service.stream_balances(_receive_requests(frames)):
        await websocket.send_json(response.model_dump())
        balance_stream_responses_total.inc()
        emitted += 1
    return emitted


async def _abort_stream(
    websocket: WebSocket, error: AccountServiceError, close_code: int
) -> None:
    frame = StreamErrorDTO(code=error.code, detail=error.message)
    await websocket.send_json(frame.model_dump())
    await websocket.close(code=close_code, reason=error.code)


async def _cancel(task: asyncio.Task) -> None:
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


@router.websocket("/stream")
async def get_accounts(
    websocket: WebSocket,
    service: BalanceStreamService = Depends(get_balance_stream_service),
) -> None:
    """Stream one balance per (address, token) pair for every inbound request.

    Protocol:
        - client sends ``GetAccountsRequestDTO`` JSON text frames
        - client sends ``{"type": "end"}`` when it has no more requests
        - server sends one ``GetAccountsResponseDTO`` per address, in order
        - server closes with 1000 once all requests are drained, or sends a
          ``StreamErrorDTO`` frame and closes with 1008/1011 on failure

    Inbound frames are read by a separate task so a client disconnect cancels
    the lookup in progress instead of waiting for it to finish.
    """
    stream_id = f"stream_{uuid.uuid4().hex[:12]}"
    await websocket.accept()
    balance_streams_open.inc()
    logger.info("Balance stream opened [stream=%s]", stream_id)

    frames: asyncio.Queue = asyncio.Queue(maxsize=INBOUND_FRAME_BUFFER)
    reader = asyncio.create_task(_read_frames(websocket, frames))
    sender = asyncio.create_task(_send_balances(websocket, service, frames))
    try:
        await asyncio.wait({reader, sender}, return_when=asyncio.FIRST_COMPLETED)
        if reader.done():
            await _cancel(sender)
            reader.result()
            balance_stream_terminations_total.labels(reason="client_disconnect").inc()
            logger.info("Client disconnected [stream=%s]", stream_id)
            return
        await _cancel(reader)

        try:
            emitted = sender.result()
        except InvalidEncodingError as e:
            balance_stream_terminations_total.labels(reason="invalid_encoding").inc()
            logger.warning(
                "Aborting stream on invalid input [stream=%s]: %s",
                stream_id,
                e.message,
            )
            await _abort_stream(websocket, e, status.WS_1008_POLICY_VIOLATION)
            return
        except UpstreamUnavailableError as e:
            balance_stream_terminations_total.labels(reason="upstream_error").inc()
            logger.warning(
                "Aborting stream on upstream failure [stream=%s]: %s",
                stream_id,
                e.message,
            )
            await _abort_stream(websocket, e, status.WS_1011_INTERNAL_ERROR)
            return
    finally:
        for task in (reader, sender):
            if not task.done():
                await _cancel(task)
        balance_streams_open.dec()

    balance_stream_terminations_total.labels(reason="completed").inc()
    logger.info("Balance stream completed [stream=%s] [emitted=%d]", stream_id, emitted)
    await websocket.close(code=status.WS_1000_NORMAL_CLOSURE)
