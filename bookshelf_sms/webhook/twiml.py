"""TwiML reply rendering and SMS length handling."""

from __future__ import annotations

import re
from xml.sax.saxutils import escape

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

MAX_MESSAGE_LENGTH = 1600  # Twilio's cap for one concatenated message
SEGMENT_LENGTH = 160
CONCATENATED_SEGMENT_LENGTH = 153  # 7 characters go to the UDH header

INVALID_REQUEST_MESSAGE = "Invalid request"
INTERNAL_ERROR_MESSAGE = "Sorry, something went wrong. Please try again."

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}
# Characters that are not allowed anywhere in an XML 1.0 document
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
_BREAK_CHARS = re.compile(r"[\s.!?]")


def escape_xml(text: str) -> str:
    return escape(_INVALID_XML_CHARS.sub("", text), _XML_ENTITIES)


def format_twiml(message: str | None) -> str:
    """Render a messaging reply; an empty message yields an empty Response."""
    if not message:
        return f"{XML_DECLARATION}<Response></Response>"
    body = escape_xml(truncate_message(message))
    return f"{XML_DECLARATION}<Response><Message>{body}</Message></Response>"


def truncate_message(body: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Cut ``body`` to ``max_length`` characters, ending with an ellipsis if cut."""
    if len(body) <= max_length:
        return body
    return body[: max_length - 3] + "..."


def split_message(body: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split a long body into chunks, preferring whitespace or sentence breaks.

    A break point is searched for in the last 50 characters of each chunk;
    without one the chunk is cut at ``max_length``.
    """
    if len(body) <= max_length:
        return [body]

    chunks: list[str] = []
    remaining = body
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break
        break_point = max_length
        for i in range(max_length - 1, max(0, max_length - 50) - 1, -1):
            if _BREAK_CHARS.match(remaining[i]):
                break_point = i + 1
                break
        chunks.append(remaining[:break_point].strip())
        remaining = remaining[break_point:].strip()
    return chunks


def calculate_segments(body: str) -> int:
    """Number of SMS segments the carrier will bill for ``body``."""
    if len(body) <= SEGMENT_LENGTH:
        return 1
    return -(-len(body) // CONCATENATED_SEGMENT_LENGTH)
