"""Static command reference."""

from __future__ import annotations

from bookshelf_sms.handlers.base import CommandHandler
from bookshelf_sms.models import (
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)

HELP_TEXT = "\n".join([
    "Bookshelf SMS Commands:",
    "",
    'Progress: "page 150" or "50%"',
    'Start: "start [book title]"',
    'Finish: "finished [book]"',
    'Search: "find Harry Potter"',
    'More: "more" after a search',
    'Recommend: "recommend fantasy"',
    'Unread: "what should I read next?"',
    'Details: "tell me about Dune"',
    'Status: "what am I reading?"',
    'Reading list: "currently reading"',
    'Stats: "my stats"',
    "",
    "Just ask naturally!",
])


class HelpHandler(CommandHandler):
    intent = Intent.HELP

    async def _handle(
        self,
        parameters: IntentParameters,
        context: ConversationContext | None,
        raw_message: str,
    ) -> HandlerResponse:
        return HandlerResponse(success=True, message=HELP_TEXT)
