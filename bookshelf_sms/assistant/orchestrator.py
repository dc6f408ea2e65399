"""SMS command pipeline.

Runs one inbound message through a fixed sequence of gates and stages:

1. Request check (Body and From present)
2. Signature validation
3. Sender authorization against the allow-list
4. Per-sender rate limit
5. Input validation (blank or oversized bodies)
6. Intent classification
7. Handler dispatch
8. Conversation context update
9. TwiML formatting

Each gate that fails ends the pipeline with its own reply. Only the
signature gate and a malformed request produce a non-200 status; every other
rejection is a normal text reply so the provider does not retry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from bookshelf_sms.assistant.classifier import IntentClassifier, is_actionable
from bookshelf_sms.assistant.context import ConversationContextStore
from bookshelf_sms.config import SMSSettings
from bookshelf_sms.handlers import build_handlers
from bookshelf_sms.handlers.base import USER_FRIENDLY_MESSAGES, SMSErrorType
from bookshelf_sms.library.service import LibraryService, LibraryServiceError
from bookshelf_sms.models import (
    AuditEventType,
    ClassificationResult,
    HandlerResponse,
    Intent,
    RiskLevel,
)
from bookshelf_sms.webhook import signature
from bookshelf_sms.webhook.models import TEXT_PLAIN, IncomingMessage, WebhookReply
from bookshelf_sms.webhook.phone import mask_phone, normalize_phone_number, parse_allowlist
from bookshelf_sms.webhook.rate_limiter import SenderRateLimiter
from bookshelf_sms.webhook.twiml import (
    INVALID_REQUEST_MESSAGE,
    MAX_MESSAGE_LENGTH,
    calculate_segments,
    format_twiml,
)

if TYPE_CHECKING:
    from bookshelf_sms.audit.logger import AuditLogger
    from bookshelf_sms.handlers.base import CommandHandler

logger = logging.getLogger(__name__)

EMPTY_MESSAGE_REPLY = "Please send a message. Reply HELP for available commands."
TOO_LONG_REPLY = "Your message is too long. Please keep it under 1600 characters."

# Expired rate limit windows and contexts are purged every N processed messages
SWEEP_INTERVAL = 100


class PipelineStage(str, Enum):
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    AUTHORIZED = "authorized"
    RATE_CHECKED = "rate_checked"
    CLASSIFIED = "classified"
    DISPATCHED = "dispatched"
    CONTEXT_UPDATED = "context_updated"
    FORMATTED = "formatted"


@dataclass
class PipelineResult:
    """Outcome of one message: the reply and the last stage that passed."""

    reply: WebhookReply
    stage: PipelineStage
    classification: ClassificationResult | None = None
    intent: Intent | None = None
    response: HandlerResponse | None = None

    @property
    def dispatched(self) -> bool:
        return self.response is not None


class SMSOrchestrator:
    """Wires the gates, classifier, handlers and context store together."""

    def __init__(
        self,
        library: LibraryService,
        settings: SMSSettings | None = None,
        *,
        classifier: IntentClassifier | None = None,
        handlers: Mapping[Intent, CommandHandler] | None = None,
        rate_limiter: SenderRateLimiter | None = None,
        context_store: ConversationContextStore | None = None,
        audit_logger: AuditLogger | None = None,
        sweep_interval: int = SWEEP_INTERVAL,
    ) -> None:
        self._settings = settings or SMSSettings()
        self._library = library
        self._classifier = classifier or IntentClassifier()
        self._handlers = dict(handlers or build_handlers(
            library, self._settings.service_timeout_seconds,
        ))
        self._rate_limiter = rate_limiter or SenderRateLimiter(
            max_requests=self._settings.rate_limit_max,
            window_seconds=self._settings.rate_limit_window_seconds,
        )
        self._contexts = context_store or ConversationContextStore(
            ttl_seconds=self._settings.context_ttl_seconds,
        )
        self._audit = audit_logger
        self._sweep_interval = max(1, sweep_interval)
        self._processed = 0

    @property
    def contexts(self) -> ConversationContextStore:
        return self._contexts

    @property
    def rate_limiter(self) -> SenderRateLimiter:
        return self._rate_limiter

    async def handle_webhook(
        self, url: str, form: Mapping[str, str], signature_header: str,
    ) -> PipelineResult:
        """Run a raw webhook request through the whole pipeline."""
        message = IncomingMessage.from_form(form)
        if not message.body or not message.sender_id:
            logger.warning("Rejected SMS webhook missing Body or From")
            return PipelineResult(
                reply=WebhookReply(format_twiml(INVALID_REQUEST_MESSAGE), 400),
                stage=PipelineStage.RECEIVED,
            )

        if self._settings.signature_validation_enabled and not signature.validate(
            signature_header, url, form, self._settings.twilio_auth_token,
        ):
            logger.warning("Invalid Twilio signature for %s", url)
            self._record(
                AuditEventType.SIGNATURE_REJECTED, message,
                action="validate_signature", result="blocked", risk_level=RiskLevel.HIGH,
                details={"url": url},
            )
            return PipelineResult(
                reply=WebhookReply("Unauthorized", 401, TEXT_PLAIN),
                stage=PipelineStage.RECEIVED,
            )

        return await self.process(message)

    async def process(self, message: IncomingMessage) -> PipelineResult:
        """Run an already authenticated message through the remaining stages."""
        self._maybe_sweep()
        sender = normalize_phone_number(message.sender_id)

        if not await self._is_authorized(sender, message):
            logger.warning("Unauthorized SMS sender %s", mask_phone(sender))
            self._record(
                AuditEventType.SENDER_UNAUTHORIZED, message,
                action="authorize_sender", result="blocked", risk_level=RiskLevel.MEDIUM,
            )
            return self._early_reply(
                USER_FRIENDLY_MESSAGES[SMSErrorType.UNAUTHORIZED], PipelineStage.AUTHENTICATED,
            )

        decision = self._rate_limiter.check_and_increment(sender)
        if not decision.allowed:
            logger.warning(
                "Rate limited SMS sender %s (retry after %.0fs)",
                mask_phone(sender), decision.retry_after or 0,
            )
            self._record(
                AuditEventType.RATE_LIMITED, message,
                action="rate_limit", result="blocked", risk_level=RiskLevel.LOW,
                details={"retry_after": decision.retry_after},
            )
            return self._early_reply(
                USER_FRIENDLY_MESSAGES[SMSErrorType.RATE_LIMIT], PipelineStage.AUTHORIZED,
            )

        if not message.body.strip():
            return self._early_reply(EMPTY_MESSAGE_REPLY, PipelineStage.RATE_CHECKED)
        if len(message.body) > MAX_MESSAGE_LENGTH:
            return self._early_reply(TOO_LONG_REPLY, PipelineStage.RATE_CHECKED)

        context = self._contexts.get(sender)
        classification = self._classifier.classify(message.body)
        intent = classification.intent
        if not is_actionable(classification, self._settings.confidence_threshold):
            intent = Intent.UNKNOWN
        logger.info(
            "SMS from %s classified as %s (confidence %.2f), dispatching %s",
            mask_phone(sender), classification.intent.value, classification.confidence,
            intent.value,
        )

        response = await self._handlers[intent].handle(
            classification.parameters, context, message.body,
        )
        self._contexts.update(sender, **self._context_changes(intent, response))

        segments = calculate_segments(response.message)
        logger.debug("Reply to %s is %d SMS segment(s)", mask_phone(sender), segments)
        self._record(
            AuditEventType.MESSAGE_PROCESSED, message,
            action=intent.value,
            result="success" if response.success else "failure",
            risk_level=RiskLevel.INFO,
            details={"confidence": classification.confidence, "segments": segments},
        )
        return PipelineResult(
            reply=WebhookReply(format_twiml(response.message), 200),
            stage=PipelineStage.FORMATTED,
            classification=classification,
            intent=intent,
            response=response,
        )

    async def _is_authorized(self, sender: str, message: IncomingMessage) -> bool:
        """Check the sender against the allow-list loaded for this request.

        When the list cannot be loaded or is empty the outcome follows the
        ``authorization_fail_open`` setting.
        """
        if self._settings.skip_sender_authorization:
            return True

        key = self._settings.allowlist_setting_key
        try:
            raw = await asyncio.wait_for(
                self._library.get_setting(key), timeout=self._settings.service_timeout_seconds,
            )
        except (LibraryServiceError, TimeoutError) as exc:
            logger.error("Could not load SMS allow-list %r: %s", key, exc)
            self._record(
                AuditEventType.ALLOWLIST_UNAVAILABLE, message,
                action="load_allowlist", result="failure", risk_level=RiskLevel.MEDIUM,
                details={"fail_open": self._settings.authorization_fail_open},
            )
            return self._settings.authorization_fail_open

        allowed = parse_allowlist(raw)
        if not allowed:
            logger.warning("SMS allow-list %r is empty", key)
            return self._settings.authorization_fail_open
        return sender in allowed

    @staticmethod
    def _context_changes(intent: Intent, response: HandlerResponse) -> dict[str, Any]:
        changes: dict[str, Any] = {"last_intent": intent}
        if response.book_id is not None:
            changes["last_book_id"] = response.book_id
        data = response.data or {}
        if "query" in data:
            changes["last_query"] = data["query"]
            changes["result_offset"] = (
                data.get("offset", 0) + data.get("shown", 0) if data["query"] else 0
            )
        return changes

    def sweep(self) -> tuple[int, int]:
        """Purge expired rate limit windows and contexts.

        Returns:
            Number of windows and contexts removed.
        """
        windows = self._rate_limiter.cleanup()
        contexts = self._contexts.sweep()
        if windows or contexts:
            logger.debug(
                "Swept %d expired rate limit window(s) and %d context(s)", windows, contexts,
            )
        return windows, contexts

    def _maybe_sweep(self) -> None:
        self._processed += 1
        if self._processed % self._sweep_interval == 0:
            self.sweep()

    @staticmethod
    def _early_reply(text: str, stage: PipelineStage) -> PipelineResult:
        return PipelineResult(reply=WebhookReply(format_twiml(text), 200), stage=stage)

    def _record(
        self,
        event_type: AuditEventType,
        message: IncomingMessage,
        *,
        action: str,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object] | None = None,
    ) -> None:
        if self._audit is None:
            return
        self._audit.record(
            event_type,
            action=action,
            result=result,
            risk_level=risk_level,
            sender=mask_phone(message.sender_id),
            message_sid=message.message_sid,
            details=details,
        )
