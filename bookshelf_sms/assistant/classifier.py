"""Intent classification for inbound SMS text.

This module provides the IntentClassifier class for:
- Matching text against an ordered table of intent patterns
- Extracting page numbers, percentages, titles and queries
- Falling back to keyword matching when no pattern fires
- Scoring how confident the match is

The table order is part of the behaviour: intents are tried in the order
listed, and the first pattern that matches decides the intent. There is no
best-match search across intents.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from bookshelf_sms.models import ClassificationResult, Intent, IntentParameters

IntentPatterns = tuple[Intent, tuple[re.Pattern[str], ...]]


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


DEFAULT_PATTERNS: tuple[IntentPatterns, ...] = (
    (Intent.UPDATE_PROGRESS, _compile(
        r"(?:i'?m?\s+)?(?:on|at)\s+page\s+(\d+)",
        r"page\s+(\d+)",
        r"(\d+)\s+pages?\s+(?:in|into|through)",
        r"(?:read|reading)\s+(?:to\s+)?page\s+(\d+)",
        r"(\d+)%\s+(?:done|complete|through)",
        r"(?:progress|update)\s+(\d+)",
        r"^(\d+)\s*%$",
    )),
    (Intent.START_BOOK, _compile(
        r"(?:start(?:ing|ed)?|begin(?:ning)?|reading)\s+[\"']?([^\"'\d]+)[\"']?",
        r"(?:new\s+book|picked\s+up)\s*:?\s*[\"']?([^\"'\d]+)[\"']?",
        r"(?:starting|began|begin)\s+[\"']?([^\"'\d]+)[\"']?",
    )),
    (Intent.FINISH_BOOK, _compile(
        r"^(?:finished|done|completed?)$",
        r"(?:finish(?:ed)?|complete(?:d)?|done\s+(?:with|reading)?)\s+[\"']?([^\"']+)[\"']?",
        r"(?:just\s+)?finished\s+[\"']?([^\"']+)[\"']?",
        r"done\s+(?:with\s+)?[\"']?([^\"']+)[\"']?",
    )),
    (Intent.GET_STATUS, _compile(
        r"(?:what(?:'s|\s+is)?|where\s+am\s+i|how\s+far)\s+(?:my\s+)?(?:progress|status)",
        r"(?:current|my)\s+(?:book|reading|progress)",
        r"status",
        r"where\s+(?:am\s+)?i\s+(?:in|at|with)",
    )),
    (Intent.LIST_READING, _compile(
        r"(?:what(?:'s|\s+am\s+i)?|list|show)\s+(?:am\s+i\s+)?(?:reading|books?)",
        r"(?:my\s+)?(?:current\s+)?books?",
        r"reading\s+list",
        r"what\s+books?",
    )),
    (Intent.SEARCH_BOOK, _compile(
        r"(?:find|search|look\s+(?:for|up))\s+[\"']?([^\"']+)[\"']?",
        r"(?:do\s+i\s+have|have\s+i\s+got)\s+[\"']?([^\"']+)[\"']?",
        r"book\s+(?:called|named|titled)\s+[\"']?([^\"']+)[\"']?",
    )),
    (Intent.GET_STATS, _compile(
        r"(?:my\s+)?(?:reading\s+)?stats?(?:istics)?",
        r"how\s+(?:much|many)\s+(?:have\s+i\s+)?read",
        r"(?:total|all)\s+(?:books?|pages?)",
        r"reading\s+(?:summary|overview)",
    )),
    (Intent.HELP, _compile(
        r"^help$",
        r"(?:what\s+)?(?:can\s+(?:you|i)\s+)?(?:do|commands?|options?)",
        r"how\s+(?:do\s+i|does\s+this|to)\s+(?:use|work)",
        r"^\?$",
    )),
    (Intent.MORE_RESULTS, _compile(
        r"^(?:more|next|more\s+results|show\s+more)[.!]?$",
    )),
    (Intent.RECOMMEND_BOOKS, _compile(
        r"^(?:recommend|suggest)(?:\s+(?:me\s+)?(?:something|anything))?(?:\s+good)?[.!?]?$",
        r"(?:recommend|suggest)(?:\s+(?:me|something|anything))*\s+by\s+([^?!.]+)",
        r"(?:recommend|suggest)(?:\s+(?:me|a|an|some|something|anything))*\s+([^?!.]+)",
        r"got\s+any\s+([^?!.]+)",
    )),
    (Intent.UNREAD_BOOKS, _compile(
        r"\bunread\b(?:\s+([^?!.\d]+))?",
        r"what\s+should\s+i\s+read(?:\s+next)?",
        r"\b(?:tbr|to\s+be\s+read)\b",
    )),
    (Intent.BOOK_DETAILS, _compile(
        r"tell\s+me\s+about\s+[\"']?([^\"'?!]+)[\"']?",
        r"(?:details|info(?:rmation)?)\s+(?:on|about|for)\s+[\"']?([^\"'?!]+)[\"']?",
        r"how\s+(?:many\s+pages|long)\s+is\s+[\"']?([^\"'?!]+)[\"']?",
    )),
)

# Earlier entries shadow later ones, so phrasing such as "unread books" or
# "recommend a book" is claimed by list_reading before these rows are tried.

DEFAULT_KEYWORDS: dict[Intent, tuple[str, ...]] = {
    Intent.UPDATE_PROGRESS: ("page", "progress", "%", "percent", "through"),
    Intent.START_BOOK: ("start", "begin", "new book", "picked up", "starting"),
    Intent.FINISH_BOOK: ("finish", "done", "complete", "ended"),
    Intent.GET_STATUS: ("status", "where", "progress", "current"),
    Intent.LIST_READING: ("list", "reading", "books", "what am i"),
    Intent.SEARCH_BOOK: ("find", "search", "look for", "have i got"),
    Intent.GET_STATS: ("stats", "statistics", "total", "how many", "how much"),
    Intent.HELP: ("help", "commands", "?"),
    Intent.MORE_RESULTS: (),
    Intent.RECOMMEND_BOOKS: ("recommend", "suggest"),
    Intent.UNREAD_BOOKS: ("unread", "read next", "tbr"),
    Intent.BOOK_DETAILS: ("tell me about", "details", "how many pages"),
}

REGEX_BASE_CONFIDENCE = 0.7
KEYWORD_BASE_CONFIDENCE = 0.3
KEYWORD_BOOST = 0.1
MAX_CONFIDENCE = 0.95
BARE_NUMBER_CONFIDENCE = 0.6
NO_MATCH_CONFIDENCE = 0.1
DEFAULT_THRESHOLD = 0.5

_PAGE_PATTERNS = _compile(r"page\s+(\d+)", r"(\d+)\s+pages?", r"^(\d+)$")
_PERCENT_PATTERN = re.compile(r"(\d+)\s*%")
_BARE_NUMBER = re.compile(r"^(\d+)$")
_QUOTES = re.compile(r"['\"]+")
_TOPIC_FILLER = re.compile(r"(?:\s+(?:books?|novels?|to\s+read))+\s*$", re.IGNORECASE)


class IntentClassifier:
    """Classifies free text into an Intent with extracted parameters.

    Deterministic and total: every input yields a result, unmatched text
    yields ``Intent.UNKNOWN``.
    """

    def __init__(
        self,
        patterns: Sequence[IntentPatterns] = DEFAULT_PATTERNS,
        keywords: dict[Intent, tuple[str, ...]] | None = None,
    ) -> None:
        self._patterns = tuple(patterns)
        self._keywords = keywords if keywords is not None else DEFAULT_KEYWORDS
        self._by_intent = dict(self._patterns)

    def classify(self, message: str) -> ClassificationResult:
        """Classify a message and extract its parameters."""
        text = message.strip()
        if not text:
            return ClassificationResult(
                intent=Intent.UNKNOWN, confidence=0.0, raw_message=message,
            )

        for intent, patterns in self._patterns:
            if any(p.search(text) for p in patterns):
                return ClassificationResult(
                    intent=intent,
                    confidence=self._confidence(text, intent, pattern_matched=True),
                    parameters=self._extract(intent, text),
                    raw_message=message,
                )

        bare = _BARE_NUMBER.match(text)
        if bare:
            return ClassificationResult(
                intent=Intent.UPDATE_PROGRESS,
                confidence=BARE_NUMBER_CONFIDENCE,
                parameters=IntentParameters(page_number=int(bare.group(1))),
                raw_message=message,
            )

        lowered = text.lower()
        for intent, _ in self._patterns:
            if any(k.lower() in lowered for k in self._keywords.get(intent, ())):
                return ClassificationResult(
                    intent=intent,
                    confidence=self._confidence(text, intent, pattern_matched=False),
                    raw_message=message,
                )

        return ClassificationResult(
            intent=Intent.UNKNOWN, confidence=NO_MATCH_CONFIDENCE, raw_message=message,
        )

    def _extract(self, intent: Intent, text: str) -> IntentParameters:
        if intent == Intent.UPDATE_PROGRESS:
            return IntentParameters(
                page_number=extract_page_number(text),
                percent_complete=extract_percentage(text),
            )
        if intent in (Intent.START_BOOK, Intent.FINISH_BOOK):
            return IntentParameters(book_title=extract_title(text, self._by_intent[intent]))
        if intent == Intent.SEARCH_BOOK:
            return IntentParameters(query=extract_title(text, self._by_intent[intent]))
        if intent == Intent.RECOMMEND_BOOKS:
            return self._extract_recommendation(text)
        if intent == Intent.UNREAD_BOOKS:
            return IntentParameters(genre=_topic(extract_title(text, self._by_intent[intent])))
        if intent == Intent.BOOK_DETAILS:
            return IntentParameters(book_title=extract_title(text, self._by_intent[intent]))
        return IntentParameters()

    def _extract_recommendation(self, text: str) -> IntentParameters:
        bare, by_author, *topical = self._by_intent[Intent.RECOMMEND_BOOKS]
        if bare.search(text):
            return IntentParameters()
        author = extract_title(text, (by_author,))
        if author:
            return IntentParameters(author=_topic(author))
        return IntentParameters(genre=_topic(extract_title(text, topical)))

    def _confidence(self, text: str, intent: Intent, *, pattern_matched: bool) -> float:
        confidence = REGEX_BASE_CONFIDENCE if pattern_matched else KEYWORD_BASE_CONFIDENCE
        lowered = text.lower()
        for keyword in self._keywords.get(intent, ()):
            if keyword.lower() in lowered:
                confidence += KEYWORD_BOOST
        return round(min(confidence, MAX_CONFIDENCE), 4)


def extract_page_number(text: str) -> int | None:
    for pattern in _PAGE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


def extract_percentage(text: str) -> int | None:
    """Return the percentage in ``text`` if it lies within [0, 100]."""
    match = _PERCENT_PATTERN.search(text)
    if not match:
        return None
    percent = int(match.group(1))
    return percent if 0 <= percent <= 100 else None


def extract_title(text: str, patterns: Sequence[re.Pattern[str]]) -> str | None:
    """Return the first captured title, trimmed and without quote characters."""
    for pattern in patterns:
        if pattern.groups < 1:
            continue
        match = pattern.search(text)
        if match and match.group(1):
            title = _QUOTES.sub("", match.group(1).strip()).strip()
            if title:
                return title
    return None


def _topic(phrase: str | None) -> str | None:
    """Trim a captured genre or author down to its subject.

    "sci-fi books" becomes "sci-fi"; a phrase that is only filler ("books")
    yields None.
    """
    if not phrase:
        return None
    topic = _TOPIC_FILLER.sub("", " " + phrase.strip(" ,;:")).strip()
    if not topic or topic.lower() in ("book", "books", "novel", "novels"):
        return None
    return topic


_default_classifier = IntentClassifier()


def classify(message: str) -> ClassificationResult:
    """Classify ``message`` with the default pattern table."""
    return _default_classifier.classify(message)


def is_actionable(result: ClassificationResult, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """True if the classification is confident enough to dispatch directly."""
    return result.confidence >= threshold
