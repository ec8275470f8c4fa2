"""Expose constructed client wrappers."""

from .token_endpoint import TokenEndpointClient
from .token_store import TokenStore

__all__ = [
    "TokenEndpointClient",
    "TokenStore",
]
