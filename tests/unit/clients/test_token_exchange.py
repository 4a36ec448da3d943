"""
Tests for the OAuth token exchange client against a local stub endpoint.
"""

import json
from unittest.mock import patch

import aiohttp
import pytest

from src.sheetlog.core.constants import DEFAULT_ENDPOINTS
from src.sheetlog.core.exceptions import AuthError, TransportError
from src.sheetlog.core.token_client import TokenExchangeClient


class TestTokenExchangeClient:
    """Test exchange_for_access_token."""

    @pytest.mark.asyncio
    async def test_returns_access_token(self, google_stub, http_session: aiohttp.ClientSession) -> None:
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        assert await client.exchange_for_access_token("a.b.c") == "T"

    @pytest.mark.asyncio
    async def test_sends_jwt_bearer_form(self, google_stub, http_session: aiohttp.ClientSession) -> None:
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        await client.exchange_for_access_token("header.payload.signature")

        assert len(google_stub.token_requests) == 1
        sent = google_stub.token_requests[0]
        assert sent["content_type"] == "application/x-www-form-urlencoded"
        assert sent["form"] == {
            "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
            "assertion": "header.payload.signature",
        }

    @pytest.mark.asyncio
    async def test_ignores_extra_fields(self, google_stub, http_session: aiohttp.ClientSession) -> None:
        google_stub.token_response = (
            200,
            json.dumps({"access_token": "ya29.token", "expires_in": 3599, "token_type": "Bearer"}),
        )
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        assert await client.exchange_for_access_token("a.b.c") == "ya29.token"

    @pytest.mark.asyncio
    async def test_token_value_never_logged(self, google_stub, http_session: aiohttp.ClientSession) -> None:
        google_stub.token_response = (200, json.dumps({"access_token": "ya29.secret-bearer"}))
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        with patch("src.sheetlog.core.token_client.logger") as mock_logger:
            await client.exchange_for_access_token("a.b.c")

        mock_logger.debug.assert_called_once_with("Access token obtained", token_length=18)
        for call in mock_logger.method_calls:
            assert not any("ya29" in str(value) for value in call.kwargs.values())

    @pytest.mark.asyncio
    async def test_non_2xx_raises_auth_error(self, google_stub, http_session: aiohttp.ClientSession) -> None:
        google_stub.token_response = (401, "denied")
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        with pytest.raises(AuthError) as exc_info:
            await client.exchange_for_access_token("a.b.c")

        assert exc_info.value.status == 401
        assert exc_info.value.body == "denied"
        assert exc_info.value.details == {"status": 401, "body": "denied"}
        assert "401 denied" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_success_without_token_raises_auth_error(
        self, google_stub, http_session: aiohttp.ClientSession
    ) -> None:
        google_stub.token_response = (200, "<html>maintenance</html>")
        client = TokenExchangeClient(http_session, google_stub.endpoints)

        with pytest.raises(AuthError) as exc_info:
            await client.exchange_for_access_token("a.b.c")

        assert exc_info.value.status == 200

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_raises_transport_error(self, http_session: aiohttp.ClientSession) -> None:
        endpoints = DEFAULT_ENDPOINTS.with_overrides(token_url="http://127.0.0.1:1/token")
        client = TokenExchangeClient(http_session, endpoints)

        with pytest.raises(TransportError) as exc_info:
            await client.exchange_for_access_token("a.b.c")

        assert exc_info.value.url == "http://127.0.0.1:1/token"
        assert isinstance(exc_info.value.cause, aiohttp.ClientError)
