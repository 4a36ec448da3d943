"""
OAuth token exchange for the service-account JWT-bearer grant.
"""

import asyncio
import json

import aiohttp
import structlog

from src.sheetlog.core.constants import DEFAULT_ENDPOINTS, GoogleEndpoints
from src.sheetlog.core.exceptions import AuthError, TransportError

logger = structlog.get_logger(__name__)


class TokenExchangeClient:
    """
    Exchanges a signed assertion for a short-lived bearer access token.

    Tokens are not cached; every call performs a fresh exchange.
    """

    def __init__(self, session: aiohttp.ClientSession, endpoints: GoogleEndpoints = DEFAULT_ENDPOINTS):
        self.session = session
        self.endpoints = endpoints

    async def exchange_for_access_token(self, assertion: str) -> str:
        """
        POST the assertion to the token endpoint and return the access token.

        Raises:
            AuthError: Non-2xx response, or a 2xx body without an access_token.
            TransportError: The token endpoint could not be reached.
        """
        form = {
            "grant_type": self.endpoints.grant_type,
            "assertion": assertion,
        }
        url = self.endpoints.token_url

        try:
            async with self.session.post(
                url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ) as response:
                body = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError("token endpoint unreachable", url=url, cause=e) from e

        if not 200 <= status < 300:
            logger.warning("Token endpoint returned error", status=status, error=body[:200])
            raise AuthError(status, body)

        try:
            access_token = json.loads(body)["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(status, body) from e

        if not isinstance(access_token, str) or not access_token:
            raise AuthError(status, body)

        logger.debug("Access token obtained", token_length=len(access_token))
        return access_token
