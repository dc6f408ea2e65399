"""Shared test fixtures for the bookshelf SMS assistant."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from bookshelf_sms.audit.logger import AuditLogger
from bookshelf_sms.config import SMSSettings
from bookshelf_sms.library.models import Book, ReadingProgress, ReadingStatus
from bookshelf_sms.library.service import LibraryService
from bookshelf_sms.library.sqlite import SQLiteLibraryService
from bookshelf_sms.webhook.models import IncomingMessage

AUTH_TOKEN = "test_auth_token"
SENDER = "+15551234567"
OTHER_SENDER = "+15559876543"
TWILIO_NUMBER = "+15550001111"

# (title, author, genre, pages, read marker, rating)
SEED_BOOKS: list[tuple[str, str, str, int, str | None, float | None]] = [
    ("The Hobbit", "J.R.R. Tolkien", "Fantasy", 416, None, 4.7),
    ("The Fellowship of the Ring", "J.R.R. Tolkien", "Fantasy", 423, None, 4.8),
    ("Dune", "Frank Herbert", "Science Fiction", 412, "Read", 4.6),
    ("Project Hail Mary", "Andy Weir", "Science Fiction", 476, None, 4.7),
    ("The Martian", "Andy Weir", "Science Fiction", 369, "Reading", 4.4),
    ("Hyperion", "Dan Simmons", "Science Fiction", 482, None, 4.5),
    ("Foundation", "Isaac Asimov", "Science Fiction", 255, None, 4.2),
    ("Neuromancer", "William Gibson", "Science Fiction", 271, None, 3.9),
    ("Atomic Habits", "James Clear", "Self-help", 320, None, 4.1),
]


def seed_library(service: SQLiteLibraryService) -> dict[str, int]:
    """Insert the seed catalog and return book ids keyed by title."""
    ids: dict[str, int] = {}
    for title, author, genre, pages, read, rating in SEED_BOOKS:
        ids[title] = service.add_book(
            title, author=author, genre=genre, pages=pages, read=read, rating_overall=rating,
        )
    return ids


@pytest.fixture
def book_ids() -> dict[str, int]:
    return {}


@pytest.fixture
def library(tmp_path: Path, book_ids: dict[str, int]) -> Iterator[SQLiteLibraryService]:
    """A seeded SQLite library; ``book_ids`` is filled in as a side effect."""
    service = SQLiteLibraryService(str(tmp_path / "library.db"))
    book_ids.update(seed_library(service))
    yield service
    service.close()


@pytest.fixture
def mock_library() -> AsyncMock:
    return AsyncMock(spec=LibraryService)


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def settings() -> SMSSettings:
    """Production-like settings with the allow-list open to everyone."""
    return SMSSettings(twilio_auth_token=AUTH_TOKEN, twilio_phone_number=TWILIO_NUMBER)


# --- Factory functions for test data ---


def make_book(**kwargs: Any) -> Book:
    """Factory for Book with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": 1,
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "genre": "Fantasy",
        "pages": 416,
    }
    defaults.update(kwargs)
    return Book(**defaults)


def make_progress(**kwargs: Any) -> ReadingProgress:
    """Factory for ReadingProgress with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": 1,
        "book": make_book(),
        "status": ReadingStatus.READING,
        "current_page": 0,
        "progress_percent": 0.0,
        "updated_at": datetime(2026, 1, 1, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return ReadingProgress(**defaults)


def make_message(body: str, sender: str = SENDER, **kwargs: Any) -> IncomingMessage:
    """Factory for IncomingMessage with sensible defaults."""
    defaults: dict[str, Any] = {
        "sender_id": sender,
        "recipient_id": TWILIO_NUMBER,
        "body": body,
        "message_sid": "SM" + "0" * 32,
        "account_sid": "AC" + "0" * 32,
    }
    defaults.update(kwargs)
    return IncomingMessage(**defaults)


def make_form(body: str | None, sender: str | None = SENDER, **extra: str) -> dict[str, str]:
    """Twilio webhook form fields; pass None to omit Body or From."""
    form = {
        "MessageSid": "SM" + "1" * 32,
        "AccountSid": "AC" + "1" * 32,
        "To": TWILIO_NUMBER,
        "NumMedia": "0",
        "NumSegments": "1",
    }
    if body is not None:
        form["Body"] = body
    if sender is not None:
        form["From"] = sender
    form.update(extra)
    return form
