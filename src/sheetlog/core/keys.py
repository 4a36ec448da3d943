"""
Service-account private key decoding.

Keys usually arrive through environment variables, where newlines are
often escaped as a literal backslash-n and CRLF sneaks in from editors.
"""

import base64
import binascii
import re
from typing import Optional

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from src.sheetlog.core.constants import PEM_FOOTER, PEM_HEADER
from src.sheetlog.core.exceptions import ConfigError, SigningError

logger = structlog.get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_pem_body(pem: str) -> str:
    """Strip CRs, unescape literal newlines and drop the PEM armor and whitespace."""
    normalized = pem.replace("\r", "").replace("\\n", "\n")
    normalized = normalized.replace(PEM_HEADER, "").replace(PEM_FOOTER, "")
    return _WHITESPACE.sub("", normalized)


def decode_private_key(pem: Optional[str]) -> bytes:
    """
    Decode a PEM-encoded PKCS8 private key into raw DER bytes.

    Raises:
        ConfigError: If the key is missing or its body is not valid base64.
    """
    if not pem:
        raise ConfigError("missing private key")

    body = normalize_pem_body(pem)
    if not body:
        raise ConfigError("missing private key")

    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigError(
            "invalid private key encoding",
            details={"error": str(e)},
        ) from e


def load_signing_key(der: bytes) -> rsa.RSAPrivateKey:
    """
    Import PKCS8 DER bytes as an RSA private key for signing.

    Raises:
        SigningError: If the bytes are not an importable RSA key.
    """
    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError("unable to import private key", cause=e) from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"expected an RSA private key, got {type(key).__name__}")

    logger.debug("Signing key imported", key_size=key.key_size)
    return key
