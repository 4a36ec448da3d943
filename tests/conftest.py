"""
Pytest configuration and shared fixtures.

Contains RSA key material, settings factories and a local stub of the
Google token and Sheets endpoints built on aiohttp's test server.
"""

import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from src.sheetlog.config import GoogleSettings, HttpSettings, Settings
from src.sheetlog.core.constants import DEFAULT_ENDPOINTS, GoogleEndpoints
from src.sheetlog.models.credentials import ServiceCredential

TEST_CLIENT_EMAIL = "sheet-logger@test-project.iam.gserviceaccount.com"
TEST_SHEET_ID = "1TestSheetIdAbCdEf"
TEST_SHEET_NAME = "Requests"


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """2048-bit RSA key shared across the test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """PKCS8 PEM with real newlines, as written by openssl."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def private_key_der(rsa_private_key: rsa.RSAPrivateKey) -> bytes:
    """Expected decoder output for private_key_pem."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def escaped_private_key_pem(private_key_pem: str) -> str:
    """The same PEM as it usually arrives through an env var: literal backslash-n."""
    return private_key_pem.replace("\n", "\\n")


@pytest.fixture
def credential(escaped_private_key_pem: str) -> ServiceCredential:
    return ServiceCredential(client_email=TEST_CLIENT_EMAIL, private_key_pem=escaped_private_key_pem)


@pytest.fixture
def make_settings(escaped_private_key_pem: str) -> Callable[..., Settings]:
    """
    Factory for Settings with explicit values, so the host environment
    cannot leak into tests.
    """
    def _make(
        client_email: Optional[str] = TEST_CLIENT_EMAIL,
        private_key: Optional[str] = None,
        sheet_id: str = TEST_SHEET_ID,
        sheet_name: str = TEST_SHEET_NAME,
        token_url: Optional[str] = None,
        sheets_base_url: Optional[str] = None,
        **overrides: Any,
    ) -> Settings:
        google = GoogleSettings(
            google_client_email=client_email or "",
            google_private_key=escaped_private_key_pem if private_key is None else private_key,
            sheet_id=sheet_id,
            sheet_name=sheet_name,
        )
        http = HttpSettings(
            timeout_seconds=5,
            token_url=token_url,
            sheets_base_url=sheets_base_url,
        )
        return Settings(google=google, http=http, log_level="DEBUG", **overrides)

    return _make


@pytest.fixture
def empty_settings() -> Settings:
    """Settings with no Google configuration at all."""
    google = GoogleSettings(
        google_client_email="",
        google_private_key="",
        sheet_id="",
        sheet_name="",
    )
    return Settings(google=google, http=HttpSettings(), log_level="DEBUG")


class GoogleStub:
    """
    Stand-in for oauth2.googleapis.com and sheets.googleapis.com.

    Responses are configurable per test; every request is recorded.
    """

    def __init__(self) -> None:
        self.token_response: Tuple[int, str] = (200, json.dumps({"access_token": "T"}))
        self.append_response: Tuple[int, str] = (200, json.dumps({"updates": {"updatedRows": 1}}))
        self.token_requests: List[Dict[str, Any]] = []
        self.append_requests: List[Dict[str, Any]] = []
        self.token_gate: Optional[Any] = None
        self.base_url = ""

    @property
    def endpoints(self) -> GoogleEndpoints:
        return DEFAULT_ENDPOINTS.with_overrides(
            token_url=f"{self.base_url}/token",
            sheets_base_url=self.base_url,
        )

    async def handle_token(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.token_requests.append({
            "content_type": request.content_type,
            "form": dict(form),
        })
        if self.token_gate is not None:
            await self.token_gate.wait()
        status, body = self.token_response
        return web.Response(status=status, text=body)

    async def handle_append(self, request: web.Request) -> web.Response:
        self.append_requests.append({
            "raw_path": request.raw_path,
            "sheet_id": request.match_info["sheet_id"],
            "range": request.match_info["range"],
            "query": dict(request.query),
            "authorization": request.headers.get("Authorization"),
            "content_type": request.content_type,
            "json": await request.json(),
        })
        status, body = self.append_response
        return web.Response(status=status, text=body)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/token", self.handle_token)
        app.router.add_post("/v4/spreadsheets/{sheet_id}/values/{range}", self.handle_append)
        return app


@pytest_asyncio.fixture
async def google_stub() -> AsyncGenerator[GoogleStub, None]:
    """Running stub server for the token and append endpoints."""
    stub = GoogleStub()
    server = TestServer(stub.make_app())
    await server.start_server()
    stub.base_url = f"http://{server.host}:{server.port}"
    try:
        yield stub
    finally:
        await server.close()


@pytest_asyncio.fixture
async def http_session() -> AsyncGenerator[aiohttp.ClientSession, None]:
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
        yield session
