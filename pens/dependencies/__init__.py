"""Expose dependency helpers for the worker and scripts."""

from .clients import (
    build_token_manager,
    get_assertion_signer,
    get_token_endpoint_client,
    get_token_store,
)

__all__ = [
    "build_token_manager",
    "get_assertion_signer",
    "get_token_endpoint_client",
    "get_token_store",
]
