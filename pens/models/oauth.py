"""
Domain models for OAuth token persistence.
"""

from typing import Optional

from pydantic import BaseModel, Field

NON_EXPIRING = 0.0


class TokenRecord(BaseModel):
    """The durable token state kept in the token file."""

    access_token: str
    refresh_token: str = ""
    expires_in: int = Field(3600, description="Provider-declared lifetime in seconds.")
    expires_at: float = Field(
        NON_EXPIRING,
        description="Absolute expiry as epoch seconds; 0 means the token never expires.",
    )

    @property
    def is_non_expiring(self) -> bool:
        return self.expires_at == NON_EXPIRING

    def is_expired(self, now: float) -> bool:
        return not self.is_non_expiring and now >= self.expires_at

    def needs_refresh(self, now: float, buffer_seconds: float) -> bool:
        """True when the token expires within ``buffer_seconds`` of ``now``."""
        if self.is_non_expiring:
            return False
        return now >= self.expires_at - buffer_seconds


class TokenResponse(BaseModel):
    """Parsed success payload from the token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600


__all__ = ["NON_EXPIRING", "TokenRecord", "TokenResponse"]
