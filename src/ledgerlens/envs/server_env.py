from __future__ import annotations

import os
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator

from ..domain.addresses import parse_token_identifier
from ..domain.errors import InvalidEncodingError

USDT_TOKEN_ADDRESS = "0xdAC17F958D2ee523a2206206994597C13D831ec7"


class Settings(BaseModel):
    """Typed server settings built from environment variables."""

    # Ledger settings
    eth_rpc_url: str = "http://localhost:8545"
    rpc_timeout: float = 10.0
    gas_token_address: str = USDT_TOKEN_ADDRESS

    # Stream settings
    stream_max_in_flight: int = 1

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 50051
    api_debug: bool = False
    api_cors_origins: list[str] = ["*"]
    log_level: str = "info"

    # Application settings
    app_name: str = "LedgerLens"
    app_version: str = "1.0.0"

    @field_validator("eth_rpc_url")
    @classmethod
    def validate_eth_rpc_url(cls, v: str) -> str:
        if not v:
            raise ValueError("Ethereum RPC URL cannot be empty")
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("Ethereum RPC URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValueError("Ethereum RPC URL must include a host")
        return v

    @field_validator("gas_token_address")
    @classmethod
    def validate_gas_token_address(cls, v: str) -> str:
        """Normalize the gas token address to checksum form."""
        try:
            return parse_token_identifier(v)
        except InvalidEncodingError as e:
            raise ValueError(e.message) from e

    @field_validator("stream_max_in_flight")
    @classmethod
    def validate_stream_max_in_flight(cls, v: int) -> int:
        if v < 1:
            raise ValueError("stream_max_in_flight must be >= 1")
        return v

    @field_validator("rpc_timeout")
    @classmethod
    def validate_rpc_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("rpc_timeout must be > 0")
        return v


def get_settings() -> Settings:
    """Return typed settings instance sourced from env vars."""
    return Settings(
        eth_rpc_url=os.environ.get("LEDGERLENS_ETH_RPC_URL", "http://localhost:8545"),
        rpc_timeout=float(os.environ.get("LEDGERLENS_RPC_TIMEOUT", "10")),
        gas_token_address=os.environ.get(
            "LEDGERLENS_GAS_TOKEN_ADDRESS", USDT_TOKEN_ADDRESS
        ),
        stream_max_in_flight=int(
            os.environ.get("LEDGERLENS_STREAM_MAX_IN_FLIGHT", "1")
        ),
        api_host=os.environ.get("LEDGERLENS_API_HOST", "0.0.0.0"),
        api_port=int(os.environ.get("LEDGERLENS_API_PORT", "50051")),
        api_debug=os.environ.get("LEDGERLENS_API_DEBUG", "false").lower() == "true",
        api_cors_origins=os.environ.get("LEDGERLENS_API_CORS_ORIGINS", "*").split(","),
        log_level=os.environ.get("LEDGERLENS_LOG_LEVEL", "info").lower(),
        app_name=os.environ.get("LEDGERLENS_APP_NAME", "LedgerLens"),
        app_version=os.environ.get("LEDGERLENS_APP_VERSION", "1.0.0"),
    )
