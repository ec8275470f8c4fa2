"""
Factory functions that wire the token lifecycle from settings.

Each call builds fresh objects from the settings it is given; nothing is
cached at module level, so tests and the worker own their own instances.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pens.clients import TokenEndpointClient, TokenStore
from pens.core.config import OAuthSettings
from pens.services import AssertionSigner, ErrorClassifier, TokenLifecycleManager


def get_token_store(settings: OAuthSettings) -> TokenStore:
    """Provide the file-backed token store."""
    return TokenStore(settings.token_file)


def get_token_endpoint_client(
    settings: OAuthSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TokenEndpointClient:
    """Provide the HTTPS token endpoint client."""
    return TokenEndpointClient(
        timeout_seconds=settings.request_timeout_seconds,
        transport=transport,
    )


def get_assertion_signer(settings: OAuthSettings) -> AssertionSigner:
    """Provide the client assertion signer."""
    return AssertionSigner(lifetime_seconds=settings.assertion_lifetime_seconds)


def build_token_manager(
    settings: OAuthSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[logging.Logger] = None,
) -> TokenLifecycleManager:
    """Build a lifecycle manager with all collaborators derived from ``settings``."""
    return TokenLifecycleManager(
        settings,
        get_token_store(settings),
        get_token_endpoint_client(settings, transport=transport),
        get_assertion_signer(settings),
        classifier=ErrorClassifier(),
        logger=logger,
    )


__all__ = [
    "build_token_manager",
    "get_assertion_signer",
    "get_token_endpoint_client",
    "get_token_store",
]
