"""Reading statistics summary."""

from __future__ import annotations

import asyncio

from bookshelf_sms.handlers.base import CommandHandler
from bookshelf_sms.library.models import ReadingStatsSummary, ReadingStatus
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)

RECENT_LIMIT = 5


class GetStatsHandler(CommandHandler):
    intent = Intent.GET_STATS
    failure_message = "Sorry, there was an error getting your stats. Please try again."

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        reading, completed, pages, recent = await asyncio.gather(
            self._call(self._library.count_progress(ReadingStatus.READING)),
            self._call(self._library.count_progress(ReadingStatus.COMPLETED)),
            self._call(self._library.total_pages_read()),
            self._call(self._library.recent_session_titles(limit=RECENT_LIMIT)),
        )
        stats = ReadingStatsSummary(
            books_reading=reading,
            books_completed=completed,
            total_pages_read=pages,
            recently_read=recent,
        )
        message = "\n".join([
            "Your Reading Stats:",
            f"Books completed: {stats.books_completed}",
            f"Currently reading: {stats.books_reading}",
            f"Total pages read: {stats.total_pages_read:,}",
        ])
        return HandlerResponse(success=True, message=message, data={"stats": stats.model_dump()})
