"""Handlers that change reading progress: update, start and finish."""

from __future__ import annotations

from datetime import UTC, datetime

from bookshelf_sms.handlers.base import CommandHandler, round_half_up
from bookshelf_sms.library.models import ReadingProgress, ReadingStatus
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)


class UpdateProgressHandler(CommandHandler):
    """Record a page number or percentage against the current book.

    The book is, in order: an explicit book id, the book last discussed in
    this conversation, or the most recently updated book being read.
    """

    intent = Intent.UPDATE_PROGRESS
    failure_message = "Sorry, there was an error updating your progress. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        page = parameters.page_number
        percent = parameters.percent_complete
        if page is None and percent is None:
            return HandlerResponse(
                success=False,
                message='Please specify a page number or percentage. Example: "page 150" or "50%"',
            )

        target_id = parameters.book_id or (context.last_book_id if context else None)
        if target_id is not None:
            progress = await self._call(self._library.get_progress(target_id))
            if progress is None:
                return await self._not_started(target_id)
        else:
            progress = await self._call(self._library.latest_progress(ReadingStatus.READING))
            if progress is None:
                return HandlerResponse(
                    success=False,
                    message='No active book found. Start reading a book first with "start [book title]"',
                )

        total = progress.page_count
        if page is None and percent is not None and total:
            page = round_half_up(percent / 100 * total)
        if page is not None and percent is None and total:
            percent = page / total * 100

        title = progress.book.title
        if page is not None and total and page > total:
            return HandlerResponse(
                success=False,
                message=f'"{title}" only has {total} pages. Did you finish the book?',
                data={"book_id": progress.book_id, "title": title},
            )

        complete = percent is not None and percent >= 100
        new_page = page if page is not None else progress.current_page
        if complete and total:
            new_page = total
        saved = await self._call(self._library.save_progress(
            progress.id,
            current_page=new_page,
            progress_percent=min(percent, 100.0) if percent is not None else progress.progress_percent,
            status=ReadingStatus.COMPLETED if complete else ReadingStatus.READING,
            completed_at=datetime.now(UTC) if complete else None,
        ))

        if complete:
            message = f'Congratulations! You\'ve finished "{title}"!'
        elif page is not None:
            suffix = f" ({round_half_up(percent)}%)" if percent is not None else ""
            message = f'Updated "{title}" to page {page}{suffix}'
        else:
            message = f'Updated "{title}" to {round_half_up(percent or 0)}%'

        return HandlerResponse(
            success=True,
            message=message,
            data={
                "book_id": saved.book_id,
                "title": title,
                "page": saved.current_page,
                "percent": saved.progress_percent,
                "completed": complete,
            },
        )

    async def _not_started(self, book_id: int) -> HandlerResponse:
        book = await self._call(self._library.get_book(book_id))
        if book is None:
            return HandlerResponse(
                success=False,
                message='No active book found. Start reading a book first with "start [book title]"',
            )
        return HandlerResponse(
            success=False,
            message=f'You haven\'t started "{book.title}" yet. Text "start {book.title}" first.',
            data={"book_id": book.id, "title": book.title},
        )


class StartBookHandler(CommandHandler):
    intent = Intent.START_BOOK
    failure_message = "Sorry, there was an error starting the book. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        title = parameters.book_title
        if not title:
            return HandlerResponse(
                success=False,
                message='Please specify a book title. Example: "start The Great Gatsby"',
            )

        book = await self._call(self._library.find_book_by_title(title))
        if book is None:
            return HandlerResponse(
                success=False,
                message=(
                    f'Couldn\'t find a book matching "{title}". '
                    "Check the title or add it to your library first."
                ),
            )

        existing = await self._call(self._library.get_progress(book.id))
        if existing is not None and existing.status == ReadingStatus.READING:
            return HandlerResponse(
                success=True,
                message=(
                    f'You\'re already reading "{book.title}". '
                    f"Current progress: {_describe(existing)}"
                ),
                data={
                    "book_id": book.id,
                    "title": book.title,
                    "already_reading": True,
                    "page": existing.current_page,
                    "percent": existing.progress_percent,
                },
            )

        started = await self._call(self._library.start_reading(book.id))
        pages = f" ({book.pages} pages)" if book.pages else ""
        return HandlerResponse(
            success=True,
            message=f'Started reading "{book.title}"{pages}. Good luck!',
            data={
                "book_id": started.book_id,
                "title": book.title,
                "already_reading": False,
                "page": started.current_page,
                "percent": started.progress_percent,
            },
        )


class FinishBookHandler(CommandHandler):
    """Mark a book in progress as completed.

    Only books currently being read qualify. An explicit id or title must
    match one of them; the conversation's last book is used when it is still
    being read, otherwise the most recently updated book is finished.
    """

    intent = Intent.FINISH_BOOK
    failure_message = "Sorry, there was an error marking the book as finished. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        title = parameters.book_title
        progress: ReadingProgress | None
        if parameters.book_id is not None:
            progress = await self._call(
                self._library.get_progress(parameters.book_id, ReadingStatus.READING),
            )
        elif title:
            progress = await self._call(
                self._library.latest_progress(ReadingStatus.READING, title_fragment=title),
            )
        else:
            progress = None
            if context and context.last_book_id is not None:
                progress = await self._call(
                    self._library.get_progress(context.last_book_id, ReadingStatus.READING),
                )
            if progress is None:
                progress = await self._call(self._library.latest_progress(ReadingStatus.READING))

        if progress is None:
            return HandlerResponse(
                success=False,
                message=(
                    f'Couldn\'t find "{title}" in your currently reading list.'
                    if title else "No active book found to finish."
                ),
            )

        saved = await self._call(self._library.save_progress(
            progress.id,
            current_page=progress.page_count or progress.current_page,
            progress_percent=100.0,
            status=ReadingStatus.COMPLETED,
            completed_at=datetime.now(UTC),
        ))
        return HandlerResponse(
            success=True,
            message=f'Congratulations on finishing "{saved.book.title}"! That\'s awesome!',
            data={"book_id": saved.book_id, "title": saved.book.title, "completed": True},
        )


def _describe(progress: ReadingProgress) -> str:
    percent = f"{round_half_up(progress.progress_percent)}%"
    if progress.current_page and progress.page_count:
        return f"page {progress.current_page} of {progress.page_count} ({percent})"
    return percent
