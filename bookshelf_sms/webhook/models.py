"""Data models for the SMS webhook pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

TEXT_XML = "text/xml"
TEXT_PLAIN = "text/plain"


@dataclass(frozen=True)
class IncomingMessage:
    """Normalized inbound SMS, one per webhook request."""

    sender_id: str
    recipient_id: str
    body: str
    media_count: int = 0
    message_sid: str = ""
    account_sid: str = ""
    num_segments: int = 1

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> IncomingMessage:
        """Build from Twilio's form-encoded webhook fields."""
        return cls(
            sender_id=form.get("From", ""),
            recipient_id=form.get("To", ""),
            body=form.get("Body", ""),
            media_count=_to_int(form.get("NumMedia"), 0),
            message_sid=form.get("MessageSid", ""),
            account_sid=form.get("AccountSid", ""),
            num_segments=_to_int(form.get("NumSegments"), 1),
        )


@dataclass
class WebhookReply:
    """What the webhook endpoint sends back to the provider."""

    body: str
    status_code: int
    media_type: str = TEXT_XML


def _to_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default
