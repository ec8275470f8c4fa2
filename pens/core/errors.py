"""
Exception hierarchy for the OAuth2 credential lifecycle.

Components raise these; the lifecycle manager catches them at its boundary
and turns them into a boolean result plus a diagnostic record.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class TokenLifecycleError(Exception):
    """Base exception for token lifecycle failures."""

    code = "TOKEN_LIFECYCLE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(TokenLifecycleError):
    """Raised when client id, tenant or a trust mechanism is missing or unusable."""

    code = "CONFIGURATION_ERROR"


class TokenNotFoundError(TokenLifecycleError):
    """Raised when the token file does not exist or cannot be opened."""

    code = "TOKEN_NOT_FOUND"


class MalformedStoreError(TokenLifecycleError):
    """Raised when the token file is unreadable, invalid, or cannot be written."""

    code = "MALFORMED_STORE"


class SigningError(TokenLifecycleError):
    """Raised when the certificate or key cannot be loaded or signing fails."""

    code = "SIGNING_ERROR"


class ParseError(TokenLifecycleError):
    """Raised when a token response is missing a required field."""

    code = "PARSE_ERROR"


class TransportError(TokenLifecycleError):
    """Raised when the token endpoint cannot be reached."""

    code = "TRANSPORT_ERROR"


class ExpiredGrantError(TokenLifecycleError):
    """Raised when the token has expired and there is no refresh token to renew it."""

    code = "EXPIRED_GRANT"


class EndpointError(TokenLifecycleError):
    """Raised when the token endpoint answers with a non-2xx status."""

    code = "ENDPOINT_ERROR"

    def __init__(
        self,
        *,
        error_code: str,
        description: str,
        http_status: int,
        error_codes: Sequence[int] = (),
    ) -> None:
        self.error_code = error_code
        self.description = description
        self.http_status = http_status
        self.error_codes = tuple(error_codes)
        summary = error_code or "unknown_error"
        super().__init__(
            f"Token endpoint returned HTTP {http_status}: {summary}",
            details={
                "error": error_code,
                "error_description": description,
                "http_status": http_status,
                "error_codes": list(self.error_codes),
            },
        )


__all__ = [
    "ConfigurationError",
    "EndpointError",
    "ExpiredGrantError",
    "MalformedStoreError",
    "ParseError",
    "SigningError",
    "TokenLifecycleError",
    "TokenNotFoundError",
    "TransportError",
]
