"""
Token endpoint client.

Performs the form-encoded refresh-grant POST and parses the JSON answer,
either into a :class:`TokenResponse` or into an :class:`EndpointError`.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

import httpx

from pens.core.errors import EndpointError, ParseError, TransportError
from pens.models.oauth import TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_EXPIRES_IN = 3600


def _decode_json_object(response: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _coerce_error_codes(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    codes: List[int] = []
    for item in value:
        try:
            codes.append(int(item))
        except (TypeError, ValueError):
            continue
    return codes


def parse_token_response(response: httpx.Response) -> TokenResponse:
    """Convert a token endpoint response into a token or raise the matching error."""
    if not response.is_success:
        payload = _decode_json_object(response) or {}
        error_code = payload.get("error")
        description = payload.get("error_description")
        raise EndpointError(
            error_code=error_code if isinstance(error_code, str) else "",
            description=description if isinstance(description, str) else response.text,
            http_status=response.status_code,
            error_codes=_coerce_error_codes(payload.get("error_codes")),
        )

    payload = _decode_json_object(response)
    if payload is None:
        raise ParseError("Token endpoint returned a non-JSON success response.")

    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise ParseError("OAuth refresh response missing access_token.")

    refresh_token = payload.get("refresh_token")
    if not isinstance(refresh_token, str) or not refresh_token:
        refresh_token = None

    expires_in_raw = payload.get("expires_in")
    if expires_in_raw is None:
        expires_in = DEFAULT_EXPIRES_IN
    else:
        if isinstance(expires_in_raw, float) and not math.isfinite(expires_in_raw):
            raise ParseError(f"Invalid expires_in in token response: {expires_in_raw!r}")
        try:
            expires_in = int(expires_in_raw)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ParseError(f"Invalid expires_in in token response: {expires_in_raw!r}") from exc

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )


class TokenEndpointClient:
    """Exchange a refresh grant for a new access token over HTTPS."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport

    async def exchange(self, endpoint_url: str, form: Mapping[str, str]) -> TokenResponse:
        """POST ``form`` to ``endpoint_url`` and return the parsed token."""
        async with httpx.AsyncClient(
            timeout=self._timeout,
            verify=True,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    endpoint_url,
                    data=dict(form),
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                raise TransportError(
                    f"Token request to {endpoint_url} failed: {exc.__class__.__name__}: {exc}"
                ) from exc

        logger.debug("Token endpoint answered HTTP %s", response.status_code)
        return parse_token_response(response)


__all__ = ["TokenEndpointClient", "parse_token_response"]
