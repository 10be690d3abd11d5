from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator

from ..crypto.key_utils import load_private_key_from_pem


class Settings(BaseModel):
    base_url: str
    client_private_key_pem: Optional[str] = None

    @field_validator("client_private_key_pem")
    @classmethod
    def validate_client_private_key_pem(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the client private key is a PEM-encoded secp256k1 key."""
        if v is None:
            return v
        try:
            load_private_key_from_pem(v)
        except Exception as e:
            raise ValueError(f"Invalid client private key PEM: {e}") from e
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v:
            raise ValueError("Base URL cannot be empty")
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("Base URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValueError("Base URL must include a host")
        return v.rstrip("/")


def get_settings() -> Settings:
    base_url = os.environ.get("LEDGERLENS_BASE_URL")
    if not base_url:
        raise ValueError("LEDGERLENS_BASE_URL is required")
    return Settings(
        base_url=base_url,
        client_private_key_pem=os.environ.get("LEDGERLENS_CLIENT_PRIVATE_KEY_PEM")
        or None,
    )
