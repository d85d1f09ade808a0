"""Tests for configuration loading and secret masking."""

from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError

from tests.conftest import APP_ID, ENCODING_AES_KEY, RAW_AES_KEY, TOKEN
from weapp_notify.config import WeappConfig, decode_aes_key
from weapp_notify.security import mask_secrets, sanitize_dict


class TestAesKey:
    def test_unpadded_key_decodes(self) -> None:
        assert len(ENCODING_AES_KEY) == 43
        assert decode_aes_key(ENCODING_AES_KEY) == RAW_AES_KEY

    def test_padded_key_decodes(self) -> None:
        assert decode_aes_key(base64.b64encode(RAW_AES_KEY).decode()) == RAW_AES_KEY

    def test_invalid_base64_fails_construction(self) -> None:
        with pytest.raises(ValidationError):
            WeappConfig(app_id=APP_ID, token=TOKEN, encoding_aes_key="not base64 at all!!")

    def test_wrong_length_fails_construction(self) -> None:
        short = base64.b64encode(b"0" * 16).decode()
        with pytest.raises(ValidationError):
            WeappConfig(app_id=APP_ID, token=TOKEN, encoding_aes_key=short)

    def test_config_exposes_raw_key(self, config: WeappConfig) -> None:
        assert config.aes_key == RAW_AES_KEY


class TestConfig:
    def test_defaults(self, config: WeappConfig) -> None:
        assert config.verify_handshake is True
        assert config.path == "/weapp/notify"
        assert config.port == 8000

    def test_frozen(self, config: WeappConfig) -> None:
        with pytest.raises(ValidationError):
            config.token = "changed"  # type: ignore[misc]

    def test_loads_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEAPP_APP_ID", "wx_env_app")
        monkeypatch.setenv("WEAPP_TOKEN", "env_token")
        monkeypatch.setenv("WEAPP_ENCODING_AES_KEY", ENCODING_AES_KEY)
        monkeypatch.setenv("WEAPP_VERIFY_HANDSHAKE", "false")

        config = WeappConfig()  # type: ignore[call-arg]
        assert config.app_id == "wx_env_app"
        assert config.verify_handshake is False


class TestSecretMasking:
    def test_masks_encrypt_field(self) -> None:
        masked = mask_secrets('{"Encrypt": "c2VjcmV0IGNpcGhlcnRleHQ="}')
        assert "c2VjcmV0" not in masked

    def test_masks_aes_key(self) -> None:
        assert ENCODING_AES_KEY not in mask_secrets(f"key loaded: {ENCODING_AES_KEY}")

    def test_masks_token_assignment(self) -> None:
        assert "test_push_token" not in mask_secrets("token=test_push_token")

    def test_leaves_plain_text(self) -> None:
        assert mask_secrets("Handshake accepted") == "Handshake accepted"

    def test_sanitize_dict(self, config: WeappConfig) -> None:
        clean = sanitize_dict(config.model_dump())
        assert clean["token"] == "****"
        assert clean["encoding_aes_key"] == "****"
        assert clean["app_id"] == APP_ID
