"""Contract between the SMS pipeline and the library data service.

The pipeline treats every call as asynchronous and fallible. Implementations
raise LibraryServiceError for any storage failure so handlers have a single
exception to convert into a user-facing retry message.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from bookshelf_sms.library.models import (
    Book,
    ReadingProgress,
    ReadingStatus,
    SearchPage,
)

DEFAULT_USER_ID = "default"


class LibraryServiceError(Exception):
    """Raised when the library data service cannot complete a call."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Library service failed during {operation}{detail}")


@runtime_checkable
class LibraryService(Protocol):
    async def get_book(self, book_id: int) -> Book | None: ...

    async def find_book_by_title(self, fragment: str) -> Book | None: ...

    async def get_progress(
        self, book_id: int, status: ReadingStatus | None = None,
    ) -> ReadingProgress | None: ...

    async def latest_progress(
        self, status: ReadingStatus, title_fragment: str | None = None,
    ) -> ReadingProgress | None: ...

    async def list_progress(
        self, status: ReadingStatus, limit: int = 5,
    ) -> list[ReadingProgress]: ...

    async def start_reading(self, book_id: int) -> ReadingProgress: ...

    async def save_progress(
        self,
        progress_id: int,
        *,
        current_page: int,
        progress_percent: float,
        status: ReadingStatus,
        completed_at: datetime | None = None,
    ) -> ReadingProgress: ...

    async def search_books(
        self, term: str, limit: int = 5, offset: int = 0,
    ) -> SearchPage: ...

    async def list_unread(
        self, genre: str | None = None, limit: int = 5, offset: int = 0,
    ) -> SearchPage: ...

    async def count_progress(self, status: ReadingStatus) -> int: ...

    async def total_pages_read(self) -> int: ...

    async def recent_session_titles(self, limit: int = 5) -> list[str]: ...

    async def get_setting(self, key: str) -> str | None: ...
