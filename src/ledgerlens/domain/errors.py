"""Domain-specific exceptions."""

from __future__ import annotations


class AccountServiceError(Exception):
    """Base class for failures surfaced to account service callers."""

    code: str = "ACCOUNT_SERVICE_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidEncodingError(AccountServiceError):
    """Raised when an address, token identifier or signature is malformed."""

    code = "INVALID_ENCODING"


class UnauthenticatedError(AccountServiceError):
    """Raised when a signature does not recover to the claimed address."""

    code = "UNAUTHENTICATED"


class UpstreamUnavailableError(AccountServiceError):
    """Raised when the ledger collaborator fails or cannot be reached."""

    code = "UPSTREAM_UNAVAILABLE"
