"""Browsing the collection: recommendations, the unread pile and book details."""

from __future__ import annotations

from bookshelf_sms.handlers.base import CommandHandler, round_half_up, shorten
from bookshelf_sms.handlers.search import PAGE_SIZE, format_book_line
from bookshelf_sms.library.models import Book, ReadingProgress, ReadingStatus
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)

UNREAD_TITLE_LIMIT = 30
DETAILS_TITLE_LIMIT = 40
DETAILS_ECHO_LIMIT = 30


def _page_data(
    books: list[Book], total: int, offset: int, query: str | None,
) -> dict[str, object]:
    return {
        "books": [{"id": b.id, "title": b.title} for b in books],
        "total_count": total,
        "shown": len(books),
        "query": query,
        "offset": offset,
    }


class RecommendBooksHandler(CommandHandler):
    """Highest rated books in the collection, optionally about a topic.

    A topic is matched against title, author, genre and description. Results
    page with "more" the same way a search does.
    """

    intent = Intent.RECOMMEND_BOOKS
    failure_message = "Sorry, I couldn't put together recommendations. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        term = parameters.genre or parameters.author or parameters.query
        page = await self._call(self._library.search_books(term or "", limit=PAGE_SIZE))

        if not page.books:
            if term:
                return HandlerResponse(
                    success=True,
                    message=(
                        f'No books found matching "{term}". Try a different topic '
                        'or say "my books" to see your collection.'
                    ),
                    data=_page_data([], 0, 0, term),
                )
            return HandlerResponse(
                success=True,
                message="Your bookshelf is empty! Add some books first.",
            )

        header = (
            f"{term} books in your collection ({page.total} total):"
            if term else f"Books in your collection ({page.total} total):"
        )
        lines = [format_book_line(i, book) for i, book in enumerate(page.books, start=1)]
        more = "\nReply MORE for more." if term and page.has_more else ""
        return HandlerResponse(
            success=True,
            message=header + "\n" + "\n".join(lines) + more,
            data=_page_data(page.books, page.total, page.offset, term),
        )


class UnreadBooksHandler(CommandHandler):
    intent = Intent.UNREAD_BOOKS
    failure_message = "Sorry, I couldn't load your unread books. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        genre = parameters.genre
        page = await self._call(self._library.list_unread(genre, limit=PAGE_SIZE))

        if not page.books:
            suffix = " matching that genre" if genre else ""
            return HandlerResponse(success=True, message=f"No unread books{suffix} found.")

        header = (
            f"Unread {genre} books ({page.total} total):"
            if genre else f"Unread books ({page.total} total):"
        )
        lines = []
        for i, book in enumerate(page.books, start=1):
            pages = f" ({book.pages}p)" if book.pages else ""
            lines.append(f"{i}. {shorten(book.title, UNREAD_TITLE_LIMIT)}{pages}")
        # Unread listings do not page, so any earlier search stops here
        return HandlerResponse(
            success=True,
            message=header + "\n" + "\n".join(lines),
            data=_page_data(page.books, page.total, page.offset, None),
        )


class BookDetailsHandler(CommandHandler):
    """Catalog details and reading status for one book.

    The book is looked up by title first and then by a general search, so an
    author's name also works. Without a title the book from the previous
    message is described.
    """

    intent = Intent.BOOK_DETAILS
    failure_message = "Sorry, I couldn't look up that book. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        term = parameters.book_title
        book: Book | None = None
        if term:
            book = await self._call(self._library.find_book_by_title(term))
            if book is None:
                page = await self._call(self._library.search_books(term, limit=1))
                book = page.books[0] if page.books else None
            if book is None:
                return HandlerResponse(
                    success=False,
                    message=f'No book found matching "{shorten(term, DETAILS_ECHO_LIMIT)}".',
                )
        elif context is not None and context.last_book_id is not None:
            book = await self._call(self._library.get_book(context.last_book_id))

        if book is None:
            return HandlerResponse(
                success=False, message="Which book would you like details about?",
            )

        progress = await self._call(self._library.get_progress(book.id))
        return HandlerResponse(
            success=True,
            message=format_book_details(book, progress),
            data={"book_id": book.id, "title": book.title},
        )


def format_book_details(book: Book, progress: ReadingProgress | None) -> str:
    lines = [f'"{shorten(book.title, DETAILS_TITLE_LIMIT)}"']
    if book.author:
        lines.append(f"by {book.author}")
    if book.pages:
        lines.append(f"{book.pages:,} pages")
    if book.genre:
        lines.append(f"Genre: {book.genre}")
    if book.rating_overall:
        lines.append(f"Rating: {book.rating_overall:g}/5")

    if progress is not None and progress.status == ReadingStatus.READING:
        lines.append(f"Progress: {round_half_up(progress.progress_percent)}%")
    elif progress is not None and progress.status == ReadingStatus.COMPLETED:
        lines.append("Status: Read")
    else:
        lines.append(f"Status: {book.read if book.read in ('Read', 'Reading') else 'Unread'}")
    return "\n".join(lines)
