"""Library data service used by the SMS command handlers."""

from bookshelf_sms.library.models import (
    Book,
    ReadingProgress,
    ReadingStatsSummary,
    ReadingStatus,
    SearchPage,
)
from bookshelf_sms.library.service import (
    DEFAULT_USER_ID,
    LibraryService,
    LibraryServiceError,
)
from bookshelf_sms.library.sqlite import SQLiteLibraryService

__all__ = [
    "DEFAULT_USER_ID",
    "Book",
    "LibraryService",
    "LibraryServiceError",
    "ReadingProgress",
    "ReadingStatsSummary",
    "ReadingStatus",
    "SQLiteLibraryService",
    "SearchPage",
]
