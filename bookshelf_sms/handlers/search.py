"""Library search, its "more" follow-up and the unknown-message fallback."""

from __future__ import annotations

import logging

from bookshelf_sms.handlers.base import CommandHandler, shorten
from bookshelf_sms.library.models import Book, SearchPage
from bookshelf_sms.library.service import LibraryServiceError
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 5
TITLE_LIMIT = 25
AUTHOR_LIMIT = 15

# Short messages that matched nothing are tried as a search first
FALLBACK_MAX_WORDS = 5
FALLBACK_MIN_LENGTH = 2
ECHO_LIMIT = 25

FALLBACK_SUGGESTIONS = (
    'Try: "search [title]" to find books',
    '"page 50" to update progress',
    '"help" for all commands',
)

_SHELF_MARKERS = {"Read": "✓", "Reading": "📖"}


def format_book_line(index: int, book: Book) -> str:
    marker = _SHELF_MARKERS.get(book.read or "", "")
    rating = f" ★{book.rating_overall:g}" if book.rating_overall else ""
    author = f" - {shorten(book.author, AUTHOR_LIMIT)}" if book.author else ""
    return f"{index}. {marker}{shorten(book.title, TITLE_LIMIT)}{rating}{author}"


def format_search_page(term: str, page: SearchPage) -> HandlerResponse:
    """Render one page of results, numbered from the page's offset."""
    lines = [
        format_book_line(page.offset + i, book)
        for i, book in enumerate(page.books, start=1)
    ]
    more = "\nReply MORE for more results." if page.has_more else ""
    return HandlerResponse(
        success=True,
        message=f'Found {page.total} book(s) matching "{term}":\n' + "\n".join(lines) + more,
        data={
            "books": [{"id": b.id, "title": b.title} for b in page.books],
            "total_count": page.total,
            "shown": len(page.books),
            "query": term,
            "offset": page.offset,
            "has_more": page.has_more,
        },
    )


class SearchBookHandler(CommandHandler):
    intent = Intent.SEARCH_BOOK
    failure_message = "Sorry, there was an error searching. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        term = parameters.query or parameters.genre or parameters.author
        if not term:
            return HandlerResponse(
                success=False,
                message='Please specify what to search for. Example: "find Harry Potter" or "fantasy books"',
            )
        return await self.search(term)

    async def search(self, term: str, offset: int = 0) -> HandlerResponse:
        page = await self._call(self._library.search_books(term, limit=PAGE_SIZE, offset=offset))
        if not page.books:
            return HandlerResponse(
                success=True,
                message=f'No books found matching "{term}". Try a different search term.',
                data={
                    "books": [],
                    "total_count": 0,
                    "shown": 0,
                    "query": term,
                    "offset": offset,
                    "has_more": False,
                },
            )
        return format_search_page(term, page)


class MoreResultsHandler(SearchBookHandler):
    """Continue the sender's last search from where the previous page ended."""

    intent = Intent.MORE_RESULTS

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        if context is None or not context.last_query:
            return HandlerResponse(
                success=False,
                message="No previous results to show more of. Try a search first.",
            )
        page = await self._call(self._library.search_books(
            context.last_query, limit=PAGE_SIZE, offset=context.result_offset,
        ))
        if not page.books:
            return HandlerResponse(
                success=True,
                message="No more results to show. Try a new search.",
            )
        return format_search_page(context.last_query, page)


class UnknownHandler(SearchBookHandler):
    """Fallback for messages no intent claimed.

    Short messages such as an author's name are tried as a library search;
    anything with hits is answered as a search. Otherwise the reply echoes
    the start of the message and lists a few commands to try. A search that
    fails gets the same suggestions.
    """

    intent = Intent.UNKNOWN
    failure_message = "Sorry, something went wrong. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        trimmed = raw_message.strip()
        words = trimmed.split()
        if len(words) <= FALLBACK_MAX_WORDS and len(trimmed) >= FALLBACK_MIN_LENGTH:
            try:
                result = await self.search(trimmed)
            except (LibraryServiceError, TimeoutError) as exc:
                logger.warning("Fallback search failed, replying with suggestions: %s", exc)
            else:
                if result.data and result.data.get("books"):
                    return result

        echo = shorten(trimmed, ECHO_LIMIT)
        return HandlerResponse(
            success=False,
            message=f'I couldn\'t find anything for "{echo}"\n\n' + "\n".join(FALLBACK_SUGGESTIONS),
        )
