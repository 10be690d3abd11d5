"""Unit tests for account API routes."""

import unittest
from unittest.mock import AsyncMock

from eth_utils import to_checksum_address
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from ledgerlens.api.dependencies import (
    get_account_query_service,
    get_balance_stream_service,
)
from ledgerlens.api.routers.accounts import router
from ledgerlens.application.use_cases.account_query import AccountQueryService
from ledgerlens.application.use_cases.balance_stream import BalanceStreamService
from ledgerlens.application.use_cases.resolvers import BalanceResolver, NonceResolver
from ledgerlens.crypto.key_utils import address_from_private_key, generate_private_key
from ledgerlens.crypto.signatures import (
    FixedMessageSignatureVerifier,
    encode_signature,
    sign_auth_message,
)
from ledgerlens.domain.addresses import parse_token_identifier
from ledgerlens.envs.server_env import USDT_TOKEN_ADDRESS
from tests.fixtures import FakeLedgerClient

HOLDER_A = "0x" + "aa" * 20
HOLDER_B = "0x" + "bb" * 20
HOLDER_C = "0x" + "cc" * 20
HOLDER_D = "0x" + "dd" * 20


class TestAccountsRouter(unittest.TestCase):
    """Test cases for accounts router."""

    def setUp(self):
        """Set up test fixtures."""
        self.app = FastAPI()
        self.app.include_router(router, prefix="/api/v1")

        self.ledger = FakeLedgerClient()
        self.query_service = AccountQueryService(
            verifier=FixedMessageSignatureVerifier(),
            balance_resolver=BalanceResolver(self.ledger),
            nonce_resolver=NonceResolver(self.ledger),
            gas_token_address=parse_token_identifier(USDT_TOKEN_ADDRESS),
        )
        self.stream_service = BalanceStreamService(BalanceResolver(self.ledger))

        self.app.dependency_overrides[get_account_query_service] = (
            lambda: self.query_service
        )
        self.app.dependency_overrides[get_balance_stream_service] = (
            lambda: self.stream_service
        )

        private_key = generate_private_key()
        self.address = address_from_private_key(private_key)
        self.signature = encode_signature(sign_auth_message(private_key))

        self.client = TestClient(self.app)

    def tearDown(self):
        """Clean up after tests."""
        self.app.dependency_overrides.clear()

    # ------------------------------------------------------------------
    # POST /accounts/query
    # ------------------------------------------------------------------

    def test_get_account_success(self):
        """Test a signed query returns balance and nonce."""
        # Arrange
        self.ledger.set_balance(USDT_TOKEN_ADDRESS, self.address, 1_000_000)
        self.ledger.set_nonce(self.address, 7)

        # Act
        response = self.client.post(
            "/api/v1/accounts/query",
            json={
                "ethereum_address": self.address,
                "crypto_signature": self.signature,
            },
        )

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"gastoken_balance": "1000000", "wallet_nonce": 7}
        )

    def test_get_account_malformed_signature(self):
        """Test non-base64 signature maps to 400."""
        response = self.client.post(
            "/api/v1/accounts/query",
            json={"ethereum_address": self.address, "crypto_signature": "%%%"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("base64", response.json()["detail"])
        self.assertEqual(self.ledger.calls, [])

    def test_get_account_malformed_address(self):
        """Test malformed address maps to 400."""
        response = self.client.post(
            "/api/v1/accounts/query",
            json={"ethereum_address": "0x12", "crypto_signature": self.signature},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("ethereum_address", response.json()["detail"])

    def test_get_account_missing_field(self):
        """Test request body validation still applies."""
        response = self.client.post(
            "/api/v1/accounts/query", json={"ethereum_address": self.address}
        )

        self.assertEqual(response.status_code, 422)

    def test_get_account_wrong_signer(self):
        """Test signature by another key maps to 401."""
        other_signature = encode_signature(sign_auth_message(generate_private_key()))

        response = self.client.post(
            "/api/v1/accounts/query",
            json={
                "ethereum_address": self.address,
                "crypto_signature": other_signature,
            },
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid signature")
        self.assertEqual(self.ledger.calls, [])

    def test_get_account_upstream_failure(self):
        """Test ledger failure maps to 502."""
        self.ledger.fail_nonce_for(self.address)

        response = self.client.post(
            "/api/v1/accounts/query",
            json={
                "ethereum_address": self.address,
                "crypto_signature": self.signature,
            },
        )

        self.assertEqual(response.status_code, 502)
        self.assertIn("Failed to get nonce", response.json()["detail"])

    def test_get_account_unexpected_error(self):
        """Test unexpected service errors map to 500."""
        mock_service = AsyncMock()
        mock_service.get_account.side_effect = RuntimeError("boom")
        self.app.dependency_overrides[get_account_query_service] = lambda: mock_service

        response = self.client.post(
            "/api/v1/accounts/query",
            json={
                "ethereum_address": self.address,
                "crypto_signature": self.signature,
            },
        )

        self.assertEqual(response.status_code, 500)
        self.assertIn("boom", response.json()["detail"])

    # ------------------------------------------------------------------
    # WebSocket /accounts/stream
    # ------------------------------------------------------------------

    def test_stream_emits_balances_then_closes_normally(self):
        """Test every address is answered in order before a 1000 close."""
        # Arrange
        self.ledger.set_balance(USDT_TOKEN_ADDRESS, HOLDER_A, 1)
        self.ledger.set_balance(USDT_TOKEN_ADDRESS, HOLDER_B, 2)

        # Act
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json(
                {
                    "ethereum_addresses": [HOLDER_A, HOLDER_B],
                    "erc20_token_address": USDT_TOKEN_ADDRESS,
                }
            )
            ws.send_json({"type": "end"})
            first = ws.receive_json()
            second = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        # Assert
        self.assertEqual(first, {"ethereum_address": HOLDER_A, "erc20_balance": "1"})
        self.assertEqual(second, {"ethereum_address": HOLDER_B, "erc20_balance": "2"})
        self.assertEqual(ctx.exception.code, 1000)

    def test_stream_aborts_on_upstream_failure(self):
        """Test a failed lookup sends an error frame and closes with 1011."""
        self.ledger.fail_balance_for(HOLDER_B)

        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json(
                {
                    "ethereum_addresses": [HOLDER_A, HOLDER_B, HOLDER_C],
                    "erc20_token_address": USDT_TOKEN_ADDRESS,
                }
            )
            ws.send_json({"type": "end"})
            first = ws.receive_json()
            error = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertEqual(first["ethereum_address"], HOLDER_A)
        self.assertEqual(error["type"], "error")
        self.assertEqual(error["code"], "UPSTREAM_UNAVAILABLE")
        self.assertEqual(ctx.exception.code, 1011)
        self.assertEqual(len(self.ledger.calls_to("get_token_balance")), 2)

    def test_stream_rejects_invalid_json(self):
        """Test a non-JSON frame aborts with INVALID_ENCODING and 1008."""
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_text("not json")
            error = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertEqual(error["code"], "INVALID_ENCODING")
        self.assertEqual(ctx.exception.code, 1008)

    def test_stream_rejects_malformed_address(self):
        """Test a malformed address aborts before any lookup."""
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json(
                {
                    "ethereum_addresses": [HOLDER_A, "0xnope"],
                    "erc20_token_address": USDT_TOKEN_ADDRESS,
                }
            )
            error = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertEqual(error["code"], "INVALID_ENCODING")
        self.assertEqual(ctx.exception.code, 1008)
        self.assertEqual(self.ledger.calls, [])

    def test_stream_rejects_wrong_message_shape(self):
        """Test a frame missing required fields aborts with 1008."""
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json({"ethereum_addresses": [HOLDER_A]})
            error = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertIn("Malformed stream request", error["detail"])
        self.assertEqual(ctx.exception.code, 1008)

    def test_stream_with_no_requests_closes_normally(self):
        """Test an immediate end frame closes with 1000."""
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json({"type": "end"})
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertEqual(ctx.exception.code, 1000)

    def test_stream_rejects_binary_frame(self):
        """Test a binary frame aborts with INVALID_ENCODING and 1008."""
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_bytes(b"\x00\x01")
            error = ws.receive_json()
            with self.assertRaises(WebSocketDisconnect) as ctx:
                ws.receive_json()

        self.assertEqual(error["type"], "error")
        self.assertEqual(error["code"], "INVALID_ENCODING")
        self.assertEqual(ctx.exception.code, 1008)
        self.assertEqual(self.ledger.calls, [])

    def test_stream_stops_when_client_disconnects(self):
        """Test a disconnect cancels the pending lookup and skips later addresses."""
        # Arrange
        self.ledger.delay_for(HOLDER_B, 5.0)

        # Act
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json(
                {
                    "ethereum_addresses": [HOLDER_A, HOLDER_B, HOLDER_C],
                    "erc20_token_address": USDT_TOKEN_ADDRESS,
                }
            )
            ws.send_json({"type": "end"})
            first = ws.receive_json()

        # Assert
        self.assertEqual(first["ethereum_address"], HOLDER_A)
        holders = [args[1] for args in self.ledger.calls_to("get_token_balance")]
        self.assertEqual(holders[0], to_checksum_address(HOLDER_A))
        self.assertNotIn(to_checksum_address(HOLDER_C), holders)
        self.assertEqual(self.ledger.cancelled, holders[1:])

    def test_windowed_stream_cancels_outstanding_lookups_on_disconnect(self):
        """Test a disconnect cancels every lookup still in the window."""
        # Arrange
        self.stream_service = BalanceStreamService(
            BalanceResolver(self.ledger), max_in_flight=3
        )
        for holder in (HOLDER_B, HOLDER_C, HOLDER_D):
            self.ledger.delay_for(holder, 5.0)

        # Act
        with self.client.websocket_connect("/api/v1/accounts/stream") as ws:
            ws.send_json(
                {
                    "ethereum_addresses": [HOLDER_A, HOLDER_B, HOLDER_C, HOLDER_D],
                    "erc20_token_address": USDT_TOKEN_ADDRESS,
                }
            )
            ws.send_json({"type": "end"})
            first = ws.receive_json()

        # Assert
        self.assertEqual(first["ethereum_address"], HOLDER_A)
        holders = [args[1] for args in self.ledger.calls_to("get_token_balance")]
        self.assertGreaterEqual(len(holders), 3)
        self.assertCountEqual(self.ledger.cancelled, holders[1:])


if __name__ == "__main__":
    unittest.main()
