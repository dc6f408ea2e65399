"""Read-only handlers for what the user is reading right now."""

from __future__ import annotations

from bookshelf_sms.handlers.base import (
    CommandHandler,
    format_progress_summary,
    progress_payload,
    round_half_up,
)
from bookshelf_sms.library.models import ReadingStatus
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)

NOT_READING_MESSAGE = (
    'You\'re not currently reading any books. Start one with "start [book title]"'
)
LIST_LIMIT = 5


class GetStatusHandler(CommandHandler):
    intent = Intent.GET_STATUS
    failure_message = "Sorry, there was an error getting your status. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        # The book from the conversation is reported whatever its status.
        if context and context.last_book_id is not None:
            progress = await self._call(self._library.get_progress(context.last_book_id))
            if progress is not None:
                return HandlerResponse(
                    success=True,
                    message=format_progress_summary(progress),
                    data={"book_id": progress.book_id, "book": progress_payload(progress)},
                )

        current = await self._call(self._library.latest_progress(ReadingStatus.READING))
        if current is None:
            return HandlerResponse(success=True, message=NOT_READING_MESSAGE)
        return HandlerResponse(
            success=True,
            message=f"Currently reading: {format_progress_summary(current)}",
            data={"book_id": current.book_id, "book": progress_payload(current)},
        )


class ListReadingHandler(CommandHandler):
    intent = Intent.LIST_READING
    failure_message = "Sorry, there was an error getting your reading list. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        reading = await self._call(
            self._library.list_progress(ReadingStatus.READING, limit=LIST_LIMIT),
        )
        if not reading:
            return HandlerResponse(success=True, message=NOT_READING_MESSAGE)

        lines = [
            f'{i}. "{p.book.title}" - {round_half_up(p.progress_percent)}%'
            for i, p in enumerate(reading, start=1)
        ]
        return HandlerResponse(
            success=True,
            message=f"Currently reading ({len(reading)}):\n" + "\n".join(lines),
            data={"count": len(reading), "books": [progress_payload(p) for p in reading]},
        )
