"""Shared plumbing for SMS command handlers."""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from enum import Enum
from typing import ClassVar, TypeVar

from bookshelf_sms.library.models import ReadingProgress
from bookshelf_sms.library.service import LibraryService, LibraryServiceError
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)
from bookshelf_sms.webhook.twiml import truncate_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SERVICE_TIMEOUT = 5.0


class SMSErrorType(str, Enum):
    DATABASE_ERROR = "database_error"
    BOOK_NOT_FOUND = "book_not_found"
    INVALID_INPUT = "invalid_input"
    RATE_LIMIT = "rate_limit"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN_ERROR = "unknown_error"


USER_FRIENDLY_MESSAGES: dict[SMSErrorType, str] = {
    SMSErrorType.DATABASE_ERROR: (
        "Sorry, I'm having trouble accessing your bookshelf right now. "
        "Please try again in a moment."
    ),
    SMSErrorType.BOOK_NOT_FOUND: (
        "I couldn't find that book in your library. "
        "Try searching with a different title or check your spelling."
    ),
    SMSErrorType.INVALID_INPUT: "That doesn't look quite right. Could you try again?",
    SMSErrorType.RATE_LIMIT: (
        "Whoa, slow down! You're sending messages too fast. Please wait a moment."
    ),
    SMSErrorType.UNAUTHORIZED: (
        "Sorry, this number isn't set up to use the Bookshelf assistant."
    ),
    SMSErrorType.UNKNOWN_ERROR: "Oops! Something went wrong on my end. Please try again.",
}


class CommandHandler(ABC):
    """Base class for one intent's handler.

    Subclasses implement ``_handle``. Any exception raised while talking to
    the library service, including a call exceeding its time budget, is
    logged and turned into a plain retry message. Nothing is retried.
    """

    intent: ClassVar[Intent]
    failure_message: ClassVar[str] = USER_FRIENDLY_MESSAGES[SMSErrorType.UNKNOWN_ERROR]

    def __init__(
        self, library: LibraryService, timeout: float = DEFAULT_SERVICE_TIMEOUT,
    ) -> None:
        self._library = library
        self._timeout = timeout

    async def handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None = None,
        raw_message: str = "",
    ) -> HandlerResponse:
        try:
            response = await self._handle(parameters, context, raw_message)
        except TimeoutError:
            logger.error("%s handler timed out after %.1fs", self.intent.value, self._timeout)
            return HandlerResponse(success=False, message=self.failure_message)
        except LibraryServiceError as exc:
            logger.error("%s handler failed: %s", self.intent.value, exc)
            return HandlerResponse(success=False, message=self.failure_message)
        except Exception:
            logger.exception("Unexpected error in %s handler", self.intent.value)
            return HandlerResponse(success=False, message=self.failure_message)
        return response.model_copy(update={"message": truncate_message(response.message)})

    @abstractmethod
    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse: ...

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await one library call within this handler's time budget."""
        return await asyncio.wait_for(awaitable, timeout=self._timeout)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_progress_summary(progress: ReadingProgress) -> str:
    """One-line summary: title, author, pages read and percentage."""
    book = progress.book
    author = f" by {book.author}" if book.author else ""
    pages = f" - {progress.current_page}/{book.pages} pages" if book.pages else ""
    percent = (
        f" ({round_half_up(progress.progress_percent)}%)"
        if progress.progress_percent > 0 else ""
    )
    return f'"{book.title}"{author}{pages}{percent}'


def progress_payload(progress: ReadingProgress) -> dict[str, object]:
    return {
        "id": progress.book_id,
        "title": progress.book.title,
        "author": progress.book.author,
        "pages": progress.book.pages,
        "current_page": progress.current_page,
        "progress_percent": progress.progress_percent,
        "status": progress.status.value,
    }
