"""
Classification of identity-provider errors.

Maps provider error codes to a category and a remediation hint so operators
know what to fix. The result is diagnostic only; callers never branch on it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from pens.core.errors import EndpointError

_AADSTS_PATTERN = re.compile(r"AADSTS\d+")


class ErrorCategory(str, Enum):
    CONFIGURATION = "ConfigurationError"
    CREDENTIAL = "CredentialError"
    CONSENT = "ConsentError"
    SCOPE = "ScopeError"
    EXPIRED_GRANT = "ExpiredGrantError"
    UNKNOWN_PROVIDER = "UnknownProviderError"


@dataclass(frozen=True)
class ProviderErrorInfo:
    """Static knowledge about one provider error code."""

    category: ErrorCategory
    summary: str
    remediation: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ErrorClassification:
    """Classification of a concrete endpoint failure."""

    category: ErrorCategory
    code: str
    summary: str
    remediation: Tuple[str, ...] = field(default_factory=tuple)
    description: str = ""


_REGISTRATION_CHECK = "Verify the certificate thumbprint matches the one registered for the application."

PROVIDER_ERROR_TABLE: Dict[str, ProviderErrorInfo] = {
    "AADSTS700016": ProviderErrorInfo(
        ErrorCategory.CONFIGURATION,
        "Application not found in tenant.",
        (
            "Check that the client ID is correct.",
            "Check that the application is registered in the configured tenant.",
            "Check that the tenant ID matches the tenant where the app is registered.",
        ),
    ),
    "AADSTS90002": ProviderErrorInfo(
        ErrorCategory.CONFIGURATION,
        "Tenant not found.",
        ("Verify the tenant ID in the configuration.",),
    ),
    "unauthorized_client": ProviderErrorInfo(
        ErrorCategory.CONFIGURATION,
        "The client is not allowed to use this grant.",
        ("Verify the client ID and the application's allowed flows.",),
    ),
    "AADSTS7000215": ProviderErrorInfo(
        ErrorCategory.CREDENTIAL,
        "Invalid client secret provided.",
        ("Use the secret value, not the secret ID, and check it has not expired.",),
    ),
    "AADSTS7000218": ProviderErrorInfo(
        ErrorCategory.CREDENTIAL,
        "Client assertion or client secret required but not provided.",
        (
            "Verify the certificate is uploaded to the application registration.",
            _REGISTRATION_CHECK,
            "Check the certificate and private key paths are readable.",
        ),
    ),
    "AADSTS700027": ProviderErrorInfo(
        ErrorCategory.CREDENTIAL,
        "Client assertion failed signature validation.",
        (_REGISTRATION_CHECK, "Ensure the certificate and private key belong together."),
    ),
    "AADSTS700024": ProviderErrorInfo(
        ErrorCategory.CREDENTIAL,
        "Client assertion is not within its valid time range.",
        ("Check the system clock is synchronized.",),
    ),
    "invalid_client": ProviderErrorInfo(
        ErrorCategory.CREDENTIAL,
        "Client authentication failed.",
        ("Check the client secret or certificate configuration.",),
    ),
    "AADSTS50173": ProviderErrorInfo(
        ErrorCategory.CONSENT,
        "Fresh authentication required.",
        ("Sign in interactively again to obtain a new refresh token.",),
    ),
    "AADSTS65001": ProviderErrorInfo(
        ErrorCategory.CONSENT,
        "The user or administrator has not consented to the application.",
        ("Grant consent for the requested scopes, then sign in again.",),
    ),
    "AADSTS50076": ProviderErrorInfo(
        ErrorCategory.CONSENT,
        "Multi-factor authentication is required.",
        ("Sign in interactively again to satisfy MFA.",),
    ),
    "interaction_required": ProviderErrorInfo(
        ErrorCategory.CONSENT,
        "User interaction is required.",
        ("Sign in interactively again to obtain a new refresh token.",),
    ),
    "consent_required": ProviderErrorInfo(
        ErrorCategory.CONSENT,
        "Consent is required for the requested scopes.",
        ("Grant consent for the requested scopes, then sign in again.",),
    ),
    "AADSTS70011": ProviderErrorInfo(
        ErrorCategory.SCOPE,
        "Invalid scope.",
        ("Check the configured scopes are correct.",),
    ),
    "invalid_scope": ProviderErrorInfo(
        ErrorCategory.SCOPE,
        "Invalid scope.",
        ("Check the configured scopes are correct.",),
    ),
    "invalid_grant": ProviderErrorInfo(
        ErrorCategory.EXPIRED_GRANT,
        "Invalid grant; the refresh token may be expired or invalid.",
        (
            "Refresh tokens expire after long inactivity or when revoked; sign in again.",
            _REGISTRATION_CHECK,
            "Ensure the certificate and private key belong together.",
            "Use the same authentication method that obtained the refresh token.",
        ),
    ),
    "AADSTS40016": ProviderErrorInfo(
        ErrorCategory.EXPIRED_GRANT,
        "Invalid grant; the refresh token may be expired or invalid.",
        ("Sign in again to obtain a new refresh token.", _REGISTRATION_CHECK),
    ),
    "AADSTS700082": ProviderErrorInfo(
        ErrorCategory.EXPIRED_GRANT,
        "The refresh token has expired due to inactivity.",
        ("Sign in again to obtain a new refresh token.",),
    ),
    "AADSTS70008": ProviderErrorInfo(
        ErrorCategory.EXPIRED_GRANT,
        "The provided grant has expired or been revoked.",
        ("Sign in again to obtain a new refresh token.",),
    ),
}


class ErrorClassifier:
    """Look up endpoint errors in a code table."""

    def __init__(self, table: Optional[Dict[str, ProviderErrorInfo]] = None) -> None:
        self._table = dict(PROVIDER_ERROR_TABLE if table is None else table)

    def register(self, code: str, info: ProviderErrorInfo) -> None:
        self._table[code] = info

    def lookup(self, code: str) -> Optional[ProviderErrorInfo]:
        return self._table.get(code)

    def _candidate_codes(self, error: EndpointError) -> Tuple[str, ...]:
        # Specific AADSTS codes first, then the generic OAuth error value.
        candidates = []
        if _AADSTS_PATTERN.fullmatch(error.error_code or ""):
            candidates.append(error.error_code)
        candidates.extend(f"AADSTS{code}" for code in error.error_codes)
        candidates.extend(_AADSTS_PATTERN.findall(error.description or ""))
        if error.error_code:
            candidates.append(error.error_code)
        return tuple(dict.fromkeys(candidates))

    def classify(self, error: EndpointError) -> ErrorClassification:
        for code in self._candidate_codes(error):
            info = self._table.get(code)
            if info is not None:
                return ErrorClassification(
                    category=info.category,
                    code=code,
                    summary=info.summary,
                    remediation=info.remediation,
                    description=error.description,
                )
        return ErrorClassification(
            category=ErrorCategory.UNKNOWN_PROVIDER,
            code=error.error_code,
            summary=error.description or "Unrecognized provider error.",
            description=error.description,
        )


__all__ = [
    "ErrorCategory",
    "ErrorClassification",
    "ErrorClassifier",
    "PROVIDER_ERROR_TABLE",
    "ProviderErrorInfo",
]
