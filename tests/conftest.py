"""Shared test fixtures for the weapp-notify test suite."""

from __future__ import annotations

import base64
import json
import time
from typing import Any

import pytest

from weapp_notify.config import WeappConfig
from weapp_notify.ingress.cipher import MessageCipher, random_nonce
from weapp_notify.ingress.dispatcher import HandlerRegistry
from weapp_notify.ingress.signature import make_signature
from weapp_notify.observability import MetricsCollector

APP_ID = "wx_test_app_0001"
TOKEN = "test_push_token"
# 32 raw bytes, published without the trailing "="
RAW_AES_KEY = bytes(range(32))
ENCODING_AES_KEY = base64.b64encode(RAW_AES_KEY).decode("ascii").rstrip("=")


# ================================================================
# Configuration Fixture
# ================================================================


@pytest.fixture
def config() -> WeappConfig:
    """Test configuration with dummy values."""
    return WeappConfig(
        app_id=APP_ID,
        token=TOKEN,
        encoding_aes_key=ENCODING_AES_KEY,
        mch_id="mch_test_123",
        api_key="test_merchant_key",
        verify_handshake=True,
    )


@pytest.fixture
def cipher() -> MessageCipher:
    return MessageCipher(RAW_AES_KEY, APP_ID, TOKEN)


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry()


@pytest.fixture
def fresh_metrics() -> MetricsCollector:
    return MetricsCollector()


# ================================================================
# Notification Helpers
# ================================================================


def make_notification(msg_type: str = "text", event: str = "", **fields: Any) -> dict[str, Any]:
    """Create a realistic notification payload for testing."""
    payload: dict[str, Any] = {
        "ToUserName": "gh_0123456789ab",
        "FromUserName": "oUser_openid_0001",
        "CreateTime": 1707561564,
        "MsgType": msg_type,
    }
    if event:
        payload["Event"] = event
    payload.update(fields)
    return payload


def to_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


def encrypt_for_platform(
    raw: bytes,
    timestamp: str | None = None,
    nonce: str | None = None,
) -> tuple[bytes, dict[str, str]]:
    """Wrap ``raw`` the way the platform sends it in AES mode (JSON body)."""
    timestamp = timestamp or str(int(time.time()))
    nonce = nonce or random_nonce()
    encrypt = base64.b64encode(
        MessageCipher(RAW_AES_KEY, APP_ID, TOKEN).encrypt(raw)
    ).decode("ascii")
    params = {
        "encrypt_type": "aes",
        "timestamp": timestamp,
        "nonce": nonce,
        "msg_signature": make_signature(TOKEN, timestamp, nonce, encrypt),
    }
    return json.dumps({"ToUserName": "gh_0123456789ab", "Encrypt": encrypt}).encode("utf-8"), params
