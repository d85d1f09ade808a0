"""Secret masking for log output.

Notification bodies and configuration carry the verification token, the
EncodingAESKey and base64 ciphertext. None of these should reach the logs.
"""

from __future__ import annotations

import logging
import re
from typing import Any

SECRET_PATTERNS = [
    # token=..., aes_key: ..., api_key="..."
    (r"((?:token|aes[_-]?key|api[_-]?key|secret)[\"']?\s*[=:]\s*[\"']?)([a-zA-Z0-9_\-+/=]{8,})", r"\1****"),
    # Encrypt fields in JSON or XML bodies
    (r"(\"Encrypt\"\s*:\s*\")[^\"]+", r"\1****"),
    (r"(<Encrypt>)(?:<!\[CDATA\[)?[^<\]]+", r"\1****"),
    # Generic long base64 strings (EncodingAESKey is 43 chars)
    (r"[a-zA-Z0-9+/]{40,}={0,2}", r"****"),
]


def mask_secrets(message: str) -> str:
    """Mask potential secrets in log messages.

    Args:
        message: The log message to sanitize.

    Returns:
        Message with potential secrets masked.
    """
    if not message:
        return message

    masked = message
    for pattern, replacement in SECRET_PATTERNS:
        masked = re.sub(pattern, replacement, masked, flags=re.IGNORECASE)

    return masked


class SecurityFormatter(logging.Formatter):
    """Formatter that masks secrets in the rendered record."""

    def format(self, record: logging.LogRecord) -> str:
        return mask_secrets(super().format(record))


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Sanitize a dictionary by masking secret-bearing keys.

    Used when logging the effective configuration at startup.
    """
    sensitive_keys = {"token", "encoding_aes_key", "api_key", "secret", "encrypt"}

    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            result[key] = "****" if value else value
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value)
        else:
            result[key] = value

    return result
