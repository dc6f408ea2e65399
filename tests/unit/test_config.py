"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from bookshelf_sms.config import SMSSettings

_ENV_VARS = (
    "TWILIO_AUTH_TOKEN", "TWILIO_SID", "TWILIO_PHONE_NUMBER", "APP_ENV",
    "SKIP_TWILIO_VALIDATION", "SKIP_SENDER_AUTHORIZATION", "SMS_AUTHORIZATION_FAIL_OPEN",
    "SMS_ALLOWLIST_SETTING_KEY", "SMS_WEBHOOK_URL", "SMS_RATE_LIMIT_MAX",
    "SMS_RATE_LIMIT_WINDOW_SECONDS", "SMS_CONTEXT_TTL_SECONDS", "SMS_CONFIDENCE_THRESHOLD",
    "SMS_SERVICE_TIMEOUT_SECONDS", "LIBRARY_DB_PATH", "AUDIT_LOG_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = SMSSettings.from_env()
    assert settings == SMSSettings()
    assert settings.app_env == "production"
    assert settings.rate_limit_max == 20
    assert settings.rate_limit_window_seconds == 60
    assert settings.context_ttl_seconds == 1800
    assert settings.confidence_threshold == 0.5
    assert settings.authorization_fail_open is True
    assert settings.webhook_url is None
    assert settings.audit_log_path is None


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "tok")
    monkeypatch.setenv("TWILIO_SID", "AC123")
    monkeypatch.setenv("TWILIO_PHONE_NUMBER", "+15550001111")
    monkeypatch.setenv("SMS_WEBHOOK_URL", "https://example.com/api/sms/webhook")
    monkeypatch.setenv("SMS_RATE_LIMIT_MAX", "5")
    monkeypatch.setenv("SMS_CONTEXT_TTL_SECONDS", "60")
    monkeypatch.setenv("SMS_AUTHORIZATION_FAIL_OPEN", "false")
    monkeypatch.setenv("LIBRARY_DB_PATH", "/tmp/lib.db")
    monkeypatch.setenv("AUDIT_LOG_PATH", "/tmp/audit.jsonl")

    settings = SMSSettings.from_env()
    assert settings.twilio_auth_token == "tok"
    assert settings.twilio_account_sid == "AC123"
    assert settings.twilio_phone_number == "+15550001111"
    assert settings.webhook_url == "https://example.com/api/sms/webhook"
    assert settings.rate_limit_max == 5
    assert settings.context_ttl_seconds == 60.0
    assert settings.authorization_fail_open is False
    assert settings.library_db_path == "/tmp/lib.db"
    assert settings.audit_log_path == "/tmp/audit.jsonl"


@pytest.mark.parametrize(("value", "expected"), [
    ("1", True), ("true", True), ("YES", True), (" on ", True),
    ("0", False), ("false", False), ("nope", False), ("", False),
])
def test_boolean_parsing(monkeypatch: pytest.MonkeyPatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("SKIP_SENDER_AUTHORIZATION", value)
    assert SMSSettings.from_env().skip_sender_authorization is expected


def test_blank_boolean_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMS_AUTHORIZATION_FAIL_OPEN", "  ")
    assert SMSSettings.from_env().authorization_fail_open is True


class TestSignatureValidationEnabled:
    def test_on_in_production(self) -> None:
        assert SMSSettings().signature_validation_enabled

    def test_on_without_token(self) -> None:
        assert SMSSettings(twilio_auth_token="").signature_validation_enabled

    def test_off_in_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", " Development ")
        assert not SMSSettings.from_env().signature_validation_enabled

    def test_off_with_skip_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SKIP_TWILIO_VALIDATION", "true")
        assert not SMSSettings.from_env().signature_validation_enabled

    def test_staging_still_validates(self) -> None:
        assert SMSSettings(app_env="staging").signature_validation_enabled


def test_settings_are_frozen() -> None:
    settings = SMSSettings()
    with pytest.raises(AttributeError):
        settings.app_env = "development"  # type: ignore[misc]
