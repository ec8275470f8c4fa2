"""
Client authentication strategies for the refresh-token grant.

Both strategies build the form body of the refresh request; they differ only
in how the client proves its identity.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from pens.core.config import OAuthSettings
from pens.core.errors import ConfigurationError, SigningError
from pens.services.assertion_signer import AssertionSigner

logger = logging.getLogger(__name__)

JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class ClientCredential(Protocol):
    """Anything that can produce the body of a refresh-token request."""

    name: str

    def build_refresh_form(self, refresh_token: str) -> Dict[str, str]:
        ...


def _base_form(client_id: str, refresh_token: str, scope: Optional[str]) -> Dict[str, str]:
    form = {
        "client_id": client_id,
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    if scope:
        form["scope"] = scope
    return form


class SecretCredential:
    """Authenticate with a shared client secret."""

    name = "client_secret"

    def __init__(self, *, client_id: str, client_secret: str, scope: Optional[str] = None) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope

    def build_refresh_form(self, refresh_token: str) -> Dict[str, str]:
        form = _base_form(self._client_id, refresh_token, self._scope)
        form["client_secret"] = self._client_secret
        return form


class CertificateCredential:
    """Authenticate with a JWT assertion signed by the registered certificate's key."""

    name = "certificate"

    def __init__(
        self,
        *,
        client_id: str,
        audience: str,
        certificate_path: str,
        private_key_path: str,
        signer: AssertionSigner,
        scope: Optional[str] = None,
    ) -> None:
        self._client_id = client_id
        self._audience = audience
        self._certificate_path = certificate_path
        self._private_key_path = private_key_path
        self._signer = signer
        self._scope = scope

    def build_refresh_form(self, refresh_token: str) -> Dict[str, str]:
        try:
            assertion = self._signer.sign(
                self._client_id,
                self._audience,
                self._certificate_path,
                self._private_key_path,
            )
        except SigningError as exc:
            raise ConfigurationError(
                f"Failed to generate client assertion: {exc.message}",
                details={
                    "certificate_path": self._certificate_path,
                    "private_key_path": self._private_key_path,
                },
            ) from exc

        form = _base_form(self._client_id, refresh_token, self._scope)
        form["client_assertion_type"] = JWT_BEARER_ASSERTION_TYPE
        form["client_assertion"] = assertion
        return form


def select_credential(settings: OAuthSettings, signer: AssertionSigner) -> ClientCredential:
    """Prefer the certificate whenever both paths are set; fall back to the secret."""
    scope = settings.scope or None
    if settings.has_certificate:
        logger.info("Using certificate-based authentication for token refresh")
        return CertificateCredential(
            client_id=settings.client_id,
            audience=settings.token_endpoint,
            certificate_path=settings.certificate_path or "",
            private_key_path=settings.private_key_path or "",
            signer=signer,
            scope=scope,
        )
    if settings.client_secret:
        logger.info("Using client secret for token refresh")
        return SecretCredential(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            scope=scope,
        )
    raise ConfigurationError(
        "Neither certificate nor client secret configured for token refresh.",
        details={
            "certificate_path": settings.certificate_path or "(empty)",
            "private_key_path": settings.private_key_path or "(empty)",
            "client_secret": "(configured)" if settings.client_secret else "(empty)",
        },
    )


__all__ = [
    "CertificateCredential",
    "ClientCredential",
    "JWT_BEARER_ASSERTION_TYPE",
    "SecretCredential",
    "select_credential",
]
