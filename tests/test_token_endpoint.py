from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from pens.clients.token_endpoint import TokenEndpointClient
from pens.core.errors import EndpointError, ParseError, TransportError

TOKEN_URL = "https://login.example.com/tenant/oauth2/v2.0/token"
FORM = {"client_id": "client", "grant_type": "refresh_token", "refresh_token": "r-1"}


class RecordingHandler:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def _client(handler) -> TokenEndpointClient:
    return TokenEndpointClient(transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_exchange_posts_form_and_parses_rotated_token() -> None:
    handler = RecordingHandler(
        httpx.Response(200, json={"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3599})
    )

    token = await _client(handler).exchange(TOKEN_URL, FORM)

    assert (token.access_token, token.refresh_token, token.expires_in) == ("new-access", "new-refresh", 3599)
    request = handler.requests[0]
    assert request.method == "POST"
    assert str(request.url) == TOKEN_URL
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert {key: values[0] for key, values in parse_qs(request.content.decode()).items()} == FORM


@pytest.mark.anyio
async def test_exchange_defaults_missing_optional_fields() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"access_token": "new-access"}))

    token = await _client(handler).exchange(TOKEN_URL, FORM)

    assert token.refresh_token is None
    assert token.expires_in == 3600


@pytest.mark.anyio
async def test_empty_refresh_token_is_treated_as_absent() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"access_token": "a", "refresh_token": "", "expires_in": "120"}))

    token = await _client(handler).exchange(TOKEN_URL, FORM)

    assert token.refresh_token is None
    assert token.expires_in == 120


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"token_type": "Bearer"}),
        httpx.Response(200, json={"access_token": ""}),
        httpx.Response(200, text="<html>ok</html>"),
        httpx.Response(200, json={"access_token": "a", "expires_in": "later"}),
        httpx.Response(200, json={"access_token": "a", "expires_in": "nan"}),
        httpx.Response(
            200,
            content=b'{"access_token": "a", "expires_in": 1e999}',
            headers={"content-type": "application/json"},
        ),
        httpx.Response(
            200,
            content=b'{"access_token": "a", "expires_in": NaN}',
            headers={"content-type": "application/json"},
        ),
    ],
)
async def test_unusable_success_response_is_parse_error(response: httpx.Response) -> None:
    with pytest.raises(ParseError):
        await _client(RecordingHandler(response)).exchange(TOKEN_URL, FORM)


@pytest.mark.anyio
async def test_error_response_raises_endpoint_error_with_provider_fields() -> None:
    handler = RecordingHandler(
        httpx.Response(
            400,
            json={
                "error_codes": [7000215],
                "error_description": "AADSTS7000215: Invalid client secret provided.",
                "error": "invalid_client",
            },
        )
    )

    with pytest.raises(EndpointError) as excinfo:
        await _client(handler).exchange(TOKEN_URL, FORM)

    error = excinfo.value
    assert error.error_code == "invalid_client"
    assert error.description.startswith("AADSTS7000215")
    assert error.http_status == 400
    assert error.error_codes == (7000215,)


@pytest.mark.anyio
async def test_error_response_without_json_keeps_raw_body() -> None:
    handler = RecordingHandler(httpx.Response(503, text="Service Unavailable"))

    with pytest.raises(EndpointError) as excinfo:
        await _client(handler).exchange(TOKEN_URL, FORM)

    assert excinfo.value.error_code == ""
    assert excinfo.value.description == "Service Unavailable"
    assert excinfo.value.http_status == 503


@pytest.mark.anyio
async def test_error_response_with_only_error_code() -> None:
    handler = RecordingHandler(httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(EndpointError) as excinfo:
        await _client(handler).exchange(TOKEN_URL, FORM)

    assert excinfo.value.error_code == "invalid_grant"
    assert excinfo.value.error_codes == ()


@pytest.mark.anyio
async def test_network_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        await _client(handler).exchange(TOKEN_URL, FORM)
