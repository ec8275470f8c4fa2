"""
Keeps the mail provider's OAuth access token valid.

The manager is the only thing protocol clients talk to: they await
``ensure_valid_token()`` before each session and then read
``get_access_token()``. Failures never escape as exceptions; they are
logged and recorded in ``last_failure``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple

from pens.clients.token_endpoint import TokenEndpointClient
from pens.clients.token_store import TokenStore
from pens.core.config import OAuthSettings
from pens.core.errors import (
    ConfigurationError,
    EndpointError,
    ExpiredGrantError,
    SigningError,
    TokenLifecycleError,
)
from pens.models.oauth import TokenRecord, TokenResponse
from pens.services.assertion_signer import AssertionSigner
from pens.services.credentials import select_credential
from pens.services.error_classifier import ErrorCategory, ErrorClassifier


class TokenState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    VALID = "valid"
    NEEDS_REFRESH = "needs_refresh"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenFailure:
    """Diagnostic detail for the most recent failed ``ensure_valid_token`` call."""

    error: str
    message: str
    category: Optional[ErrorCategory] = None
    provider_code: str = ""
    remediation: Tuple[str, ...] = field(default_factory=tuple)


class TokenLifecycleManager:
    """Load, validate, refresh and persist the OAuth token."""

    def __init__(
        self,
        settings: OAuthSettings,
        store: TokenStore,
        endpoint_client: TokenEndpointClient,
        signer: AssertionSigner,
        *,
        classifier: Optional[ErrorClassifier] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._store = store
        self._endpoint = endpoint_client
        self._signer = signer
        self._classifier = classifier or ErrorClassifier()
        self._log = logger or logging.getLogger(__name__)
        self._clock = clock
        self._lock = asyncio.Lock()

        self._record: Optional[TokenRecord] = None
        self._state = TokenState.UNLOADED
        self._pending_save = False
        self._last_failure: Optional[TokenFailure] = None

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def record(self) -> Optional[TokenRecord]:
        return self._record

    @property
    def last_failure(self) -> Optional[TokenFailure]:
        return self._last_failure

    def get_access_token(self) -> str:
        """Return the current access token; call ``ensure_valid_token`` first."""
        return self._record.access_token if self._record else ""

    def get_certificate_thumbprint(self) -> str:
        """Return the configured certificate's x5t, or "" when unavailable."""
        if not self._settings.certificate_path:
            return ""
        try:
            return self._signer.thumbprint(self._settings.certificate_path)
        except SigningError as exc:
            self._log.error("Could not compute certificate thumbprint: %s", exc.message)
            return ""

    async def ensure_valid_token(self) -> bool:
        """Make sure a usable access token is held, refreshing it if needed."""
        async with self._lock:
            try:
                return await self._ensure_valid_token()
            except TokenLifecycleError as exc:
                self._fail(exc)
                return False

    async def _ensure_valid_token(self) -> bool:
        if self._record is None:
            self._record = self._store.load()
            self._state = TokenState.LOADED

        record = self._record
        if self._pending_save:
            self._persist(record)

        now = self._clock()
        if not record.access_token:
            self._fail_with("MissingAccessToken", "OAuth access token missing in token file.")
            return False

        if not record.refresh_token:
            if record.is_non_expiring or not record.is_expired(now):
                return self._mark_valid()
            raise ExpiredGrantError("OAuth refresh token missing; token cannot be renewed.")

        if not record.needs_refresh(now, self._settings.refresh_buffer_seconds):
            return self._mark_valid()

        self._state = TokenState.NEEDS_REFRESH
        self._log.info("OAuth access token expired or expiring soon; refreshing")
        return await self._refresh(record)

    async def _refresh(self, record: TokenRecord) -> bool:
        self._state = TokenState.REFRESHING
        settings = self._settings
        if not settings.client_id:
            raise ConfigurationError("OAuth client_id not configured. Set PENS_OAUTH_CLIENT_ID.")
        if not settings.tenant_id:
            raise ConfigurationError("OAuth tenant_id not configured. Set PENS_OAUTH_TENANT_ID.")

        credential = select_credential(settings, self._signer)
        form = credential.build_refresh_form(record.refresh_token)
        refreshed_at = self._clock()
        response = await self._endpoint.exchange(settings.token_endpoint, form)

        self._apply(record, response, refreshed_at)
        self._log.info(
            "OAuth access token refreshed via %s; expires in %d seconds",
            credential.name,
            record.expires_in,
        )
        self._persist(record)
        return self._mark_valid()

    @staticmethod
    def _apply(record: TokenRecord, response: TokenResponse, refreshed_at: float) -> None:
        record.access_token = response.access_token
        if response.refresh_token:
            record.refresh_token = response.refresh_token
        record.expires_in = response.expires_in
        record.expires_at = refreshed_at + response.expires_in

    def _persist(self, record: TokenRecord) -> None:
        try:
            self._store.save(record)
        except TokenLifecycleError as exc:
            # The refreshed token is still good in memory; keep it and retry the
            # write on the next call so a rotated refresh token is not lost.
            self._pending_save = True
            self._log.error("Failed to persist refreshed OAuth token: %s", exc.message)
            return
        self._pending_save = False

    def _mark_valid(self) -> bool:
        self._state = TokenState.VALID
        self._last_failure = None
        return True

    def _fail_with(self, error: str, message: str) -> None:
        self._state = TokenState.FAILED
        self._last_failure = TokenFailure(error=error, message=message)
        self._log.error(message)

    def _fail(self, exc: TokenLifecycleError) -> None:
        self._state = TokenState.FAILED
        if isinstance(exc, EndpointError):
            classification = self._classifier.classify(exc)
            failure = TokenFailure(
                error=type(exc).__name__,
                message=exc.message,
                category=classification.category,
                provider_code=classification.code,
                remediation=classification.remediation,
            )
            self._log.error("OAuth refresh failed with HTTP status %s", exc.http_status)
            self._log.error(
                "Provider error %s (%s): %s",
                classification.code or "(none)",
                classification.category.value,
                classification.summary,
            )
            for hint in classification.remediation:
                self._log.error("  - %s", hint)
            if exc.description:
                self._log.error("Error description: %s", exc.description)
        else:
            category = None
            if isinstance(exc, ConfigurationError):
                category = ErrorCategory.CONFIGURATION
            elif isinstance(exc, ExpiredGrantError):
                category = ErrorCategory.EXPIRED_GRANT
            failure = TokenFailure(error=type(exc).__name__, message=exc.message, category=category)
            self._log.error("%s: %s", type(exc).__name__, exc.message)
            for key, value in exc.details.items():
                self._log.error("  %s: %s", key, value)
        self._last_failure = failure


__all__ = ["TokenFailure", "TokenLifecycleManager", "TokenState"]
