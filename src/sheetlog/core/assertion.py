"""
Signed assertion builder for the service-account JWT-bearer grant.

Produces a compact RS256 JWT:

    base64url(header) "." base64url(claims) "." base64url(signature)

Header and claims are serialized as compact JSON in a fixed field order,
so the same inputs always produce the same signed bytes.
"""

import base64
import binascii
import json
import time
from typing import Any, Dict, Optional

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from src.sheetlog.models.credentials import ServiceCredential
from src.sheetlog.core.constants import ASSERTION_HEADER, DEFAULT_ENDPOINTS, GoogleEndpoints
from src.sheetlog.core.exceptions import ConfigError, SigningError
from src.sheetlog.core.keys import decode_private_key, load_signing_key

logger = structlog.get_logger(__name__)


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without '=' padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Inverse of b64url_encode; restores the padding before decoding."""
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _compact_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def build_claims(
    client_email: str,
    issued_at: int,
    endpoints: GoogleEndpoints = DEFAULT_ENDPOINTS,
) -> Dict[str, Any]:
    """Claims for the token request. Insertion order is the serialized order."""
    return {
        "iss": client_email,
        "scope": endpoints.scope,
        "aud": endpoints.token_url,
        "exp": issued_at + endpoints.assertion_lifetime_seconds,
        "iat": issued_at,
    }


def sign_message(key: rsa.RSAPrivateKey, message: bytes) -> bytes:
    """
    Sign with RSASSA-PKCS1-v1_5 over SHA-256.

    Raises:
        SigningError: Wrapping whatever the signing primitive raised.
    """
    try:
        return key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError("failed to sign assertion", cause=e) from e


def create_signed_assertion(
    credential: ServiceCredential,
    now: Optional[int] = None,
    endpoints: GoogleEndpoints = DEFAULT_ENDPOINTS,
) -> str:
    """
    Build and sign the assertion proving the service account's identity.

    Args:
        credential: Service-account email and PEM private key.
        now: Issue time in epoch seconds. Defaults to the current time.
        endpoints: Scope/audience table.

    Returns:
        The compact three-segment signed assertion.

    Raises:
        ConfigError: If the email or key is missing, or the key is not base64.
        SigningError: If the key cannot be imported or signing fails.
    """
    if not credential.client_email:
        raise ConfigError("missing client email")

    key = load_signing_key(decode_private_key(credential.private_key_pem))
    return sign_assertion(credential.client_email, key, now=now, endpoints=endpoints)


def sign_assertion(
    client_email: str,
    key: rsa.RSAPrivateKey,
    now: Optional[int] = None,
    endpoints: GoogleEndpoints = DEFAULT_ENDPOINTS,
) -> str:
    """Build and sign the assertion with an already imported key."""
    if not client_email:
        raise ConfigError("missing client email")

    issued_at = int(time.time()) if now is None else int(now)
    claims = build_claims(client_email, issued_at, endpoints)

    encoded_header = b64url_encode(_compact_json(ASSERTION_HEADER))
    encoded_claims = b64url_encode(_compact_json(claims))
    message = f"{encoded_header}.{encoded_claims}"

    signature = sign_message(key, message.encode("utf-8"))

    logger.debug(
        "Signed assertion created",
        issuer=client_email,
        issued_at=issued_at,
        expires_at=claims["exp"],
    )

    return f"{message}.{b64url_encode(signature)}"


def decode_assertion_segment(segment: str) -> Dict[str, Any]:
    """
    Decode a header or claims segment back into a dict.

    Raises:
        ValueError: If the segment is not base64url-encoded JSON.
    """
    try:
        return json.loads(b64url_decode(segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"invalid assertion segment: {e}") from e
