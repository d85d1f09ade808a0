"""Configuration management using Pydantic Settings.

All config is loaded from environment variables with the WEAPP_ prefix.
Secrets MUST be provided via env vars or a local .env file (never hardcoded).
"""

from __future__ import annotations

import base64
import binascii

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

AES_KEY_SIZE = 32


def decode_aes_key(encoding_aes_key: str) -> bytes:
    """Decode the platform's EncodingAESKey into raw key bytes.

    The platform publishes the key as 43 base64 characters with the
    trailing ``=`` dropped, so missing padding is restored first.

    Raises:
        ValueError: If the key is not valid base64 or not 32 bytes long.
    """
    stripped = encoding_aes_key.strip().rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        key = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"encoding_aes_key is not valid base64: {e}") from e
    if len(key) != AES_KEY_SIZE:
        raise ValueError(
            f"encoding_aes_key must decode to {AES_KEY_SIZE} bytes, got {len(key)}"
        )
    return key


class WeappConfig(BaseSettings):
    """Gateway configuration loaded from environment variables.

    All fields prefixed with WEAPP_ in the environment.
    Example: WEAPP_ENCODING_AES_KEY -> encoding_aes_key
    """

    model_config = ConfigDict(
        env_prefix="WEAPP_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # --- Mini program ---
    app_id: str = Field(description="Mini program AppID (tenant identifier)")
    token: str = Field(description="Message push verification token")
    encoding_aes_key: str = Field(
        description="Base64 EncodingAESKey used for message encryption (43 chars)",
    )
    verify_handshake: bool = Field(
        default=True,
        description="Verify the signature of GET handshake requests",
    )

    # --- Merchant (logistics / quota events) ---
    mch_id: str = Field(default="", description="Merchant ID")
    api_key: str = Field(default="", description="Merchant signing key")

    # --- Server ---
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8000, description="Server bind port")
    path: str = Field(default="/weapp/notify", description="Notification endpoint path")
    log_level: str = Field(default="INFO", description="Logging level")
    handlers: str = Field(
        default="",
        description="Module (or module:attr) exposing the HandlerRegistry to serve",
    )

    @field_validator("encoding_aes_key")
    @classmethod
    def _check_aes_key(cls, value: str) -> str:
        decode_aes_key(value)
        return value

    @property
    def aes_key(self) -> bytes:
        """Raw 32-byte AES key."""
        return decode_aes_key(self.encoding_aes_key)


def load_config() -> WeappConfig:
    """Load and validate configuration from environment."""
    return WeappConfig()  # type: ignore[call-arg]
