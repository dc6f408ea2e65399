"""Runtime settings for the SMS webhook, read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from bookshelf_sms.assistant.classifier import DEFAULT_THRESHOLD
from bookshelf_sms.assistant.context import DEFAULT_TTL_SECONDS
from bookshelf_sms.handlers.base import DEFAULT_SERVICE_TIMEOUT
from bookshelf_sms.webhook.rate_limiter import DEFAULT_MAX_REQUESTS, DEFAULT_WINDOW_SECONDS

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class SMSSettings:
    twilio_auth_token: str = ""
    twilio_account_sid: str = ""
    twilio_phone_number: str = ""
    app_env: str = "production"
    skip_signature_validation: bool = False
    skip_sender_authorization: bool = False
    authorization_fail_open: bool = True
    allowlist_setting_key: str = "adminPhoneNumbers"
    webhook_url: str | None = None
    rate_limit_max: int = DEFAULT_MAX_REQUESTS
    rate_limit_window_seconds: float = DEFAULT_WINDOW_SECONDS
    context_ttl_seconds: float = DEFAULT_TTL_SECONDS
    confidence_threshold: float = DEFAULT_THRESHOLD
    service_timeout_seconds: float = DEFAULT_SERVICE_TIMEOUT
    library_db_path: str = "data/library.db"
    audit_log_path: str | None = None

    @property
    def signature_validation_enabled(self) -> bool:
        """Signatures are checked everywhere except development or an explicit bypass."""
        return not (self.skip_signature_validation or self.app_env == "development")

    @classmethod
    def from_env(cls) -> SMSSettings:
        env = os.environ
        return cls(
            twilio_auth_token=env.get("TWILIO_AUTH_TOKEN", ""),
            twilio_account_sid=env.get("TWILIO_SID", ""),
            twilio_phone_number=env.get("TWILIO_PHONE_NUMBER", ""),
            app_env=env.get("APP_ENV", "production").strip().lower(),
            skip_signature_validation=_env_bool("SKIP_TWILIO_VALIDATION", False),
            skip_sender_authorization=_env_bool("SKIP_SENDER_AUTHORIZATION", False),
            authorization_fail_open=_env_bool("SMS_AUTHORIZATION_FAIL_OPEN", True),
            allowlist_setting_key=env.get("SMS_ALLOWLIST_SETTING_KEY", "adminPhoneNumbers"),
            webhook_url=env.get("SMS_WEBHOOK_URL") or None,
            rate_limit_max=int(env.get("SMS_RATE_LIMIT_MAX", str(DEFAULT_MAX_REQUESTS))),
            rate_limit_window_seconds=float(
                env.get("SMS_RATE_LIMIT_WINDOW_SECONDS", str(DEFAULT_WINDOW_SECONDS)),
            ),
            context_ttl_seconds=float(
                env.get("SMS_CONTEXT_TTL_SECONDS", str(DEFAULT_TTL_SECONDS)),
            ),
            confidence_threshold=float(
                env.get("SMS_CONFIDENCE_THRESHOLD", str(DEFAULT_THRESHOLD)),
            ),
            service_timeout_seconds=float(
                env.get("SMS_SERVICE_TIMEOUT_SECONDS", str(DEFAULT_SERVICE_TIMEOUT)),
            ),
            library_db_path=env.get("LIBRARY_DB_PATH", "data/library.db"),
            audit_log_path=env.get("AUDIT_LOG_PATH") or None,
        )
