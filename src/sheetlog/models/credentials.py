"""
Service-account credential model.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from src.sheetlog.config import GoogleSettings


class ServiceCredential(BaseModel):
    """Identity used to sign token requests. Immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    client_email: str = Field(default="", description="Service-account email (assertion issuer)")
    private_key_pem: str = Field(default="", repr=False, description="PEM-encoded PKCS8 private key")

    @classmethod
    def from_settings(cls, settings: "GoogleSettings") -> "ServiceCredential":
        return cls(
            client_email=settings.google_client_email,
            private_key_pem=settings.google_private_key,
        )
