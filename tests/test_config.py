"""Tests for configuration loading and logging helpers."""

from __future__ import annotations

import pydantic
import pytest

from src.config import Settings
from src.logging_config import mask_chat_id, mask_chat_ids_in_text


class TestSettings:
    """Tests for Settings validation and derived properties."""

    def test_api_key_required(self, monkeypatch) -> None:
        monkeypatch.delenv("API_KEY", raising=False)

        with pytest.raises(pydantic.ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_empty_api_key_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="API_KEY environment variable"):
            Settings(_env_file=None, api_key="")  # type: ignore[call-arg]

    def test_loaded_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("API_KEY", "from-env")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("PROXY_URL", "http://proxy:3128")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.api_key.get_secret_value() == "from-env"
        assert settings.port == 8080
        assert settings.proxy_url == "http://proxy:3128"

    def test_defaults(self, monkeypatch) -> None:
        for name in ("PORT", "ENVIRONMENT", "CLIENT_ID", "PROXY_URL", "MAX_UPLOAD_BYTES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None, api_key="k")  # type: ignore[call-arg]

        assert settings.port == 3000
        assert settings.client_id == "whatsapp-service"
        assert settings.default_typing_duration_ms == 2000
        assert settings.max_upload_bytes == 50 * 1024 * 1024
        assert settings.is_production is True
        assert settings.headless is True

    def test_development_shows_browser(self, settings_factory) -> None:
        settings = settings_factory(environment="development")

        assert settings.is_development is True
        assert settings.headless is False

    def test_api_key_hidden_in_repr(self, settings) -> None:
        assert "test-api-key" not in repr(settings)


class TestMaskChatId:
    @pytest.mark.parametrize(
        ("chat_id", "expected"),
        [
            ("919876543210@c.us", "91XXXX3210@c.us"),
            ("120363025246125486@g.us", "12XXXX5486@g.us"),
            ("123@c.us", "XXXX@c.us"),
            ("", "XXXX"),
            (None, "XXXX"),
        ],
    )
    def test_mask(self, chat_id, expected) -> None:
        assert mask_chat_id(chat_id) == expected

    def test_mask_ids_in_text(self) -> None:
        text = "Chat not found: 919876543210@c.us (reply to true_919876543210@c.us_3EB0)"

        assert mask_chat_ids_in_text(text) == (
            "Chat not found: 91XXXX3210@c.us (reply to true_91XXXX3210@c.us_3EB0)"
        )

    def test_short_ids_left_alone(self) -> None:
        assert mask_chat_ids_in_text("sent to 111@c.us") == "sent to 111@c.us"
