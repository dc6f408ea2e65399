"""Read models returned by the library data service."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReadingStatus(str, Enum):
    NOT_STARTED = "not_started"
    READING = "reading"
    COMPLETED = "completed"


class Book(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    author: str | None = None
    genre: str | None = None
    description: str | None = None
    pages: int | None = Field(default=None, ge=0)
    read: str | None = None  # catalog shelf marker: "Read", "Reading" or unset
    rating_overall: float | None = None


class ReadingProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    book: Book
    status: ReadingStatus
    current_page: int = 0
    progress_percent: float = 0.0
    total_pages: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime

    @property
    def book_id(self) -> int:
        return self.book.id

    @property
    def page_count(self) -> int | None:
        """Total pages, preferring the catalog value over the progress snapshot."""
        return self.book.pages or self.total_pages or None


class SearchPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    books: list[Book]
    total: int = Field(ge=0)
    offset: int = Field(default=0, ge=0)

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.books) < self.total


class ReadingStatsSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    books_reading: int = Field(ge=0)
    books_completed: int = Field(ge=0)
    total_pages_read: int = Field(ge=0)
    recently_read: list[str] = Field(default_factory=list)
