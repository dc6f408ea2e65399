"""Command handlers, one per intent."""

from __future__ import annotations

from bookshelf_sms.handlers.base import (
    DEFAULT_SERVICE_TIMEOUT,
    USER_FRIENDLY_MESSAGES,
    CommandHandler,
    SMSErrorType,
)
from bookshelf_sms.handlers.collection import (
    BookDetailsHandler,
    RecommendBooksHandler,
    UnreadBooksHandler,
)
from bookshelf_sms.handlers.help import HelpHandler
from bookshelf_sms.handlers.progress import (
    FinishBookHandler,
    StartBookHandler,
    UpdateProgressHandler,
)
from bookshelf_sms.handlers.reading import GetStatusHandler, ListReadingHandler
from bookshelf_sms.handlers.search import (
    MoreResultsHandler,
    SearchBookHandler,
    UnknownHandler,
)
from bookshelf_sms.handlers.stats import GetStatsHandler
from bookshelf_sms.library.service import LibraryService
from bookshelf_sms.models import Intent

HANDLER_CLASSES: tuple[type[CommandHandler], ...] = (
    UpdateProgressHandler,
    StartBookHandler,
    FinishBookHandler,
    GetStatusHandler,
    ListReadingHandler,
    SearchBookHandler,
    GetStatsHandler,
    HelpHandler,
    MoreResultsHandler,
    RecommendBooksHandler,
    UnreadBooksHandler,
    BookDetailsHandler,
    UnknownHandler,
)


def build_handlers(
    library: LibraryService, timeout: float = DEFAULT_SERVICE_TIMEOUT,
) -> dict[Intent, CommandHandler]:
    """Instantiate every handler against one library service."""
    return {cls.intent: cls(library, timeout) for cls in HANDLER_CLASSES}


__all__ = [
    "DEFAULT_SERVICE_TIMEOUT",
    "HANDLER_CLASSES",
    "USER_FRIENDLY_MESSAGES",
    "BookDetailsHandler",
    "CommandHandler",
    "FinishBookHandler",
    "GetStatsHandler",
    "GetStatusHandler",
    "HelpHandler",
    "ListReadingHandler",
    "MoreResultsHandler",
    "RecommendBooksHandler",
    "SMSErrorType",
    "SearchBookHandler",
    "StartBookHandler",
    "UnknownHandler",
    "UnreadBooksHandler",
    "UpdateProgressHandler",
    "build_handlers",
]
