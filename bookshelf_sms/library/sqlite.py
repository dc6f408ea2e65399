"""SQLite-backed implementation of the library data service."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from bookshelf_sms.library.db import LibraryDB
from bookshelf_sms.library.models import (
    Book,
    ReadingProgress,
    ReadingStatus,
    SearchPage,
)
from bookshelf_sms.library.service import DEFAULT_USER_ID, LibraryServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PROGRESS_SELECT = """
SELECT p.id AS progress_id, p.status, p.current_page, p.progress_percent,
       p.total_pages, p.started_at, p.completed_at, p.updated_at,
       b.id, b.title, b.author, b.genre, b.description, b.pages, b.read,
       b.rating_overall
FROM reading_progress p
JOIN books b ON b.id = p.book_id
"""

_SEARCH_WHERE = """
WHERE title LIKE ? ESCAPE '\\'
   OR author LIKE ? ESCAPE '\\'
   OR genre LIKE ? ESCAPE '\\'
   OR description LIKE ? ESCAPE '\\'
"""

_BOOK_COLUMNS = ("id", "title", "author", "genre", "description", "pages", "read", "rating_overall")


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _like(fragment: str) -> str:
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _book_from_row(row: dict[str, Any]) -> Book:
    return Book.model_validate({k: row[k] for k in _BOOK_COLUMNS})


def _progress_from_row(row: dict[str, Any]) -> ReadingProgress:
    return ReadingProgress(
        id=row["progress_id"],
        book=_book_from_row(row),
        status=ReadingStatus(row["status"]),
        current_page=row["current_page"],
        progress_percent=row["progress_percent"],
        total_pages=row["total_pages"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )


class SQLiteLibraryService:
    """Library data service over a local SQLite file.

    Every public coroutine runs its query in a worker thread and wraps
    ``sqlite3.Error`` in LibraryServiceError.
    """

    def __init__(self, db_path: str, user_id: str = DEFAULT_USER_ID) -> None:
        self._db = LibraryDB(db_path)
        self._user_id = user_id

    async def _run(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(fn)
        except sqlite3.Error as exc:
            logger.error("Library query failed during %s: %s", operation, exc)
            raise LibraryServiceError(operation, exc) from exc

    # --- Books ---

    async def get_book(self, book_id: int) -> Book | None:
        def query() -> Book | None:
            row = self._db.fetch_one("SELECT * FROM books WHERE id = ?", (book_id,))
            return _book_from_row(row) if row else None

        return await self._run("get_book", query)

    async def find_book_by_title(self, fragment: str) -> Book | None:
        """First book whose title contains ``fragment``; exact titles win."""

        def query() -> Book | None:
            row = self._db.fetch_one(
                "SELECT * FROM books WHERE title LIKE ? ESCAPE '\\' "
                "ORDER BY (lower(title) = lower(?)) DESC, id ASC LIMIT 1",
                (_like(fragment), fragment),
            )
            return _book_from_row(row) if row else None

        return await self._run("find_book_by_title", query)

    async def search_books(self, term: str, limit: int = 5, offset: int = 0) -> SearchPage:
        def query() -> SearchPage:
            pattern = _like(term)
            params = (pattern, pattern, pattern, pattern)
            rows = self._db.fetch_all(
                "SELECT * FROM books" + _SEARCH_WHERE
                + "ORDER BY rating_overall DESC, title COLLATE NOCASE ASC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            )
            count = self._db.fetch_one("SELECT COUNT(*) AS n FROM books" + _SEARCH_WHERE, params)
            return SearchPage(
                books=[_book_from_row(r) for r in rows],
                total=count["n"] if count else 0,
                offset=offset,
            )

        return await self._run("search_books", query)

    async def list_unread(
        self, genre: str | None = None, limit: int = 5, offset: int = 0,
    ) -> SearchPage:
        """Books not shelved as read or reading, by title, optionally within a genre."""

        def query() -> SearchPage:
            where = " WHERE (read IS NULL OR read NOT IN ('Read', 'Reading'))"
            params: tuple[Any, ...] = ()
            if genre:
                where += " AND genre LIKE ? ESCAPE '\\'"
                params = (_like(genre),)
            rows = self._db.fetch_all(
                "SELECT * FROM books" + where
                + " ORDER BY title COLLATE NOCASE ASC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            )
            count = self._db.fetch_one("SELECT COUNT(*) AS n FROM books" + where, params)
            return SearchPage(
                books=[_book_from_row(r) for r in rows],
                total=count["n"] if count else 0,
                offset=offset,
            )

        return await self._run("list_unread", query)

    # --- Reading progress ---

    async def get_progress(
        self, book_id: int, status: ReadingStatus | None = None,
    ) -> ReadingProgress | None:
        def query() -> ReadingProgress | None:
            sql = _PROGRESS_SELECT + "WHERE p.book_id = ? AND p.user_id = ?"
            params: tuple[Any, ...] = (book_id, self._user_id)
            if status is not None:
                sql += " AND p.status = ?"
                params += (status.value,)
            row = self._db.fetch_one(sql, params)
            return _progress_from_row(row) if row else None

        return await self._run("get_progress", query)

    async def latest_progress(
        self, status: ReadingStatus, title_fragment: str | None = None,
    ) -> ReadingProgress | None:
        def query() -> ReadingProgress | None:
            sql = _PROGRESS_SELECT + "WHERE p.status = ? AND p.user_id = ?"
            params: tuple[Any, ...] = (status.value, self._user_id)
            if title_fragment:
                sql += " AND b.title LIKE ? ESCAPE '\\'"
                params += (_like(title_fragment),)
            sql += " ORDER BY p.updated_at DESC, p.id DESC LIMIT 1"
            row = self._db.fetch_one(sql, params)
            return _progress_from_row(row) if row else None

        return await self._run("latest_progress", query)

    async def list_progress(self, status: ReadingStatus, limit: int = 5) -> list[ReadingProgress]:
        def query() -> list[ReadingProgress]:
            rows = self._db.fetch_all(
                _PROGRESS_SELECT
                + "WHERE p.status = ? AND p.user_id = ? "
                "ORDER BY p.updated_at DESC, p.id DESC LIMIT ?",
                (status.value, self._user_id, limit),
            )
            return [_progress_from_row(r) for r in rows]

        return await self._run("list_progress", query)

    async def start_reading(self, book_id: int) -> ReadingProgress:
        """Create or reset the progress row for ``book_id`` to reading, page 0."""

        def query() -> ReadingProgress:
            now = _now_iso()
            self._db.execute(
                """INSERT INTO reading_progress
                       (book_id, user_id, status, current_page, progress_percent,
                        total_pages, started_at, completed_at, updated_at)
                   VALUES (?, ?, ?, 0, 0, (SELECT pages FROM books WHERE id = ?), ?, NULL, ?)
                   ON CONFLICT (book_id, user_id) DO UPDATE SET
                       status = excluded.status,
                       current_page = 0,
                       progress_percent = 0,
                       started_at = excluded.started_at,
                       completed_at = NULL,
                       updated_at = excluded.updated_at""",
                (book_id, self._user_id, ReadingStatus.READING.value, book_id, now, now),
            )
            row = self._db.fetch_one(
                _PROGRESS_SELECT + "WHERE p.book_id = ? AND p.user_id = ?",
                (book_id, self._user_id),
            )
            if row is None:
                raise sqlite3.IntegrityError(f"progress row for book {book_id} missing")
            return _progress_from_row(row)

        return await self._run("start_reading", query)

    async def save_progress(
        self,
        progress_id: int,
        *,
        current_page: int,
        progress_percent: float,
        status: ReadingStatus,
        completed_at: datetime | None = None,
    ) -> ReadingProgress:
        def query() -> ReadingProgress:
            self._db.execute(
                """UPDATE reading_progress
                   SET current_page = ?, progress_percent = ?, status = ?,
                       completed_at = COALESCE(?, completed_at), updated_at = ?
                   WHERE id = ?""",
                (
                    current_page,
                    progress_percent,
                    status.value,
                    completed_at.isoformat() if completed_at else None,
                    _now_iso(),
                    progress_id,
                ),
            )
            row = self._db.fetch_one(_PROGRESS_SELECT + "WHERE p.id = ?", (progress_id,))
            if row is None:
                raise sqlite3.IntegrityError(f"progress row {progress_id} missing")
            return _progress_from_row(row)

        return await self._run("save_progress", query)

    async def count_progress(self, status: ReadingStatus) -> int:
        def query() -> int:
            row = self._db.fetch_one(
                "SELECT COUNT(*) AS n FROM reading_progress WHERE status = ? AND user_id = ?",
                (status.value, self._user_id),
            )
            return row["n"] if row else 0

        return await self._run("count_progress", query)

    # --- Sessions ---

    async def total_pages_read(self) -> int:
        def query() -> int:
            row = self._db.fetch_one(
                "SELECT COALESCE(SUM(pages_read), 0) AS total FROM reading_sessions",
            )
            return int(row["total"]) if row else 0

        return await self._run("total_pages_read", query)

    async def recent_session_titles(self, limit: int = 5) -> list[str]:
        def query() -> list[str]:
            rows = self._db.fetch_all(
                """SELECT b.title FROM reading_sessions s
                   JOIN books b ON b.id = s.book_id
                   ORDER BY s.start_time DESC, s.id DESC LIMIT ?""",
                (limit,),
            )
            return [r["title"] for r in rows]

        return await self._run("recent_session_titles", query)

    # --- Settings ---

    async def get_setting(self, key: str) -> str | None:
        def query() -> str | None:
            row = self._db.fetch_one("SELECT value FROM settings WHERE key = ?", (key,))
            return row["value"] if row else None

        return await self._run("get_setting", query)

    # --- Seeding helpers (CLI and tests) ---

    def add_book(
        self,
        title: str,
        *,
        author: str | None = None,
        genre: str | None = None,
        description: str | None = None,
        pages: int | None = None,
        read: str | None = None,
        rating_overall: float | None = None,
    ) -> int:
        now = _now_iso()
        return self._db.execute(
            """INSERT INTO books
                   (title, author, genre, description, pages, read, rating_overall,
                    created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (title, author, genre, description, pages, read, rating_overall, now, now),
        )

    def record_session(self, book_id: int, pages_read: int, start_time: str | None = None) -> int:
        return self._db.execute(
            "INSERT INTO reading_sessions (book_id, pages_read, start_time) VALUES (?, ?, ?)",
            (book_id, pages_read, start_time or _now_iso()),
        )

    def set_setting(self, key: str, value: str) -> None:
        self._db.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT (key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def close(self) -> None:
        self._db.close()
