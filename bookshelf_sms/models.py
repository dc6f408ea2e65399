"""Shared Pydantic data models for the bookshelf SMS assistant."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class Intent(str, Enum):
    """Classified purpose of an inbound text message.

    Declaration order here is only for readability; classification order is
    fixed by the pattern table in ``bookshelf_sms.assistant.classifier``.
    """

    UPDATE_PROGRESS = "update_progress"
    START_BOOK = "start_book"
    FINISH_BOOK = "finish_book"
    GET_STATUS = "get_status"
    LIST_READING = "list_reading"
    SEARCH_BOOK = "search_book"
    GET_STATS = "get_stats"
    HELP = "help"
    MORE_RESULTS = "more_results"
    RECOMMEND_BOOKS = "recommend_books"
    UNREAD_BOOKS = "unread_books"
    BOOK_DETAILS = "book_details"
    UNKNOWN = "unknown"


class AuditEventType(str, Enum):
    SIGNATURE_REJECTED = "signature_rejected"
    SENDER_UNAUTHORIZED = "sender_unauthorized"
    ALLOWLIST_UNAVAILABLE = "allowlist_unavailable"
    RATE_LIMITED = "rate_limited"
    MESSAGE_PROCESSED = "message_processed"
    WELCOME_SENT = "welcome_sent"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Classification Models ---


class IntentParameters(BaseModel):
    """Sparse parameters extracted from a message.

    Only the fields relevant to the matched intent are populated.
    """

    model_config = ConfigDict(frozen=True)

    page_number: int | None = Field(default=None, ge=0)
    percent_complete: float | None = Field(default=None, ge=0, le=100)
    book_title: str | None = None
    query: str | None = None
    genre: str | None = None
    author: str | None = None
    book_id: int | None = None


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: float = Field(ge=0.0, le=1.0)
    parameters: IntentParameters = Field(default_factory=IntentParameters)
    raw_message: str


# --- Conversation Models ---


def _now() -> datetime:
    return datetime.now(UTC)


class ConversationContext(BaseModel):
    """Short-lived memory of what a sender was just talking about."""

    model_config = ConfigDict(frozen=True)

    sender_id: str
    last_book_id: int | None = None
    last_intent: Intent | None = None
    last_query: str | None = None
    result_offset: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=_now)


class HandlerResponse(BaseModel):
    """Terminal artifact of a handler invocation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    data: dict[str, Any] | None = None

    @property
    def book_id(self) -> int | None:
        if not self.data:
            return None
        value = self.data.get("book_id")
        return value if isinstance(value, int) else None


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    sender: str | None = None  # always masked
    message_sid: str | None = None
    action: str
    result: str  # "success" | "failure" | "blocked"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
