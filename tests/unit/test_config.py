"""Unit tests for Settings validators and env-var loading in config.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from regwatch.config import Settings, get_settings, load_settings
from regwatch.core.constants import CMS_RSS_MAIN, DEFAULT_SYNC_HOUR_UTC

_CREDENTIAL_VARS = (
    "LEXISNEXIS_API_KEY",
    "WESTLAW_API_KEY",
    "WESTLAW_CLIENT_ID",
    "REGWATCH_ADMIN_API_KEY",
    "REGWATCH_SYNC_HOUR_UTC",
    "REGWATCH_CMS_FEED_URLS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParseFeedUrls:
    def test_none_returns_empty_list(self) -> None:
        assert Settings.parse_feed_urls(None) == []

    def test_csv_string(self) -> None:
        assert Settings.parse_feed_urls("https://a.test/1, https://a.test/2") == [
            "https://a.test/1",
            "https://a.test/2",
        ]

    def test_json_array_string(self) -> None:
        assert Settings.parse_feed_urls('["https://a.test/1"]') == ["https://a.test/1"]

    def test_drops_blanks(self) -> None:
        assert Settings.parse_feed_urls(["x", " ", ""]) == ["x"]


class TestBlankSecretIsUnset:
    def test_blank_string(self) -> None:
        assert Settings.blank_secret_is_unset("   ") is None

    def test_value_passthrough(self) -> None:
        assert Settings.blank_secret_is_unset("abc") == "abc"


class TestEnvLoading:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.sync_hour_utc == DEFAULT_SYNC_HOUR_UTC
        assert CMS_RSS_MAIN in settings.cms_feed_urls
        assert len(settings.samhsa_feed_urls) == 2
        assert settings.lexisnexis_api_key is None
        assert settings.westlaw_client_id is None

    def test_credentials_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEXISNEXIS_API_KEY", "lexis")
        monkeypatch.setenv("WESTLAW_API_KEY", "wl")
        monkeypatch.setenv("WESTLAW_CLIENT_ID", "client")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.lexisnexis_api_key is not None
        assert settings.lexisnexis_api_key.get_secret_value() == "lexis"
        assert settings.westlaw_client_id is not None
        assert settings.westlaw_client_id.get_secret_value() == "client"

    def test_empty_env_var_does_not_enable_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEXISNEXIS_API_KEY", "")

        assert Settings(_env_file=None).lexisnexis_api_key is None  # type: ignore[call-arg]

    def test_feed_urls_csv_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REGWATCH_CMS_FEED_URLS", "https://a.test/rss,https://b.test/rss")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.cms_feed_urls == ["https://a.test/rss", "https://b.test/rss"]

    @pytest.mark.parametrize("hour", ["-1", "24"])
    def test_sync_hour_bounds(self, monkeypatch: pytest.MonkeyPatch, hour: str) -> None:
        monkeypatch.setenv("REGWATCH_SYNC_HOUR_UTC", hour)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]


class TestSettingsFactories:
    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_load_settings_sees_new_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert load_settings().lexisnexis_api_key is None

        monkeypatch.setenv("LEXISNEXIS_API_KEY", "added-later")

        assert load_settings().lexisnexis_api_key is not None
