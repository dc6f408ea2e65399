"""Tests for the regex intent classifier."""

from __future__ import annotations

import re

import pytest

from bookshelf_sms.assistant.classifier import (
    DEFAULT_PATTERNS,
    IntentClassifier,
    classify,
    extract_page_number,
    extract_percentage,
    extract_title,
    is_actionable,
)
from bookshelf_sms.models import ClassificationResult, Intent


class TestProgressMessages:
    def test_page_number(self) -> None:
        result = classify("page 150")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.page_number == 150
        assert result.parameters.percent_complete is None

    def test_on_page_phrase(self) -> None:
        result = classify("I'm on page 87")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.page_number == 87

    def test_bare_percentage(self) -> None:
        result = classify("75%")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.percent_complete == 75
        assert result.parameters.page_number is None

    def test_percentage_out_of_range_dropped(self) -> None:
        result = classify("150%")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.percent_complete is None

    def test_percent_done_phrase(self) -> None:
        result = classify("40% done")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.percent_complete == 40

    def test_bare_number_is_page(self) -> None:
        result = classify("42")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.parameters.page_number == 42
        assert result.confidence == 0.6


class TestTitleMessages:
    def test_start_book_title(self) -> None:
        result = classify("start The Hobbit")
        assert result.intent == Intent.START_BOOK
        assert result.parameters.book_title == "The Hobbit"

    def test_start_book_strips_quotes(self) -> None:
        result = classify('starting "Dune"')
        assert result.intent == Intent.START_BOOK
        assert result.parameters.book_title == "Dune"

    def test_finish_without_title(self) -> None:
        result = classify("finished")
        assert result.intent == Intent.FINISH_BOOK
        assert result.parameters.book_title is None

    def test_finish_with_title(self) -> None:
        result = classify("finished Dune")
        assert result.intent == Intent.FINISH_BOOK
        assert result.parameters.book_title == "Dune"

    def test_search_query(self) -> None:
        result = classify("find Harry Potter")
        assert result.intent == Intent.SEARCH_BOOK
        assert result.parameters.query == "Harry Potter"


class TestOtherIntents:
    @pytest.mark.parametrize(("text", "intent"), [
        ("what am I reading?", Intent.LIST_READING),
        ("my stats", Intent.GET_STATS),
        ("status", Intent.GET_STATUS),
        ("help", Intent.HELP),
        ("?", Intent.HELP),
        ("more", Intent.MORE_RESULTS),
        ("show more", Intent.MORE_RESULTS),
    ])
    def test_intent(self, text: str, intent: Intent) -> None:
        assert classify(text).intent == intent

    def test_table_order(self) -> None:
        assert [intent for intent, _ in DEFAULT_PATTERNS] == [
            Intent.UPDATE_PROGRESS,
            Intent.START_BOOK,
            Intent.FINISH_BOOK,
            Intent.GET_STATUS,
            Intent.LIST_READING,
            Intent.SEARCH_BOOK,
            Intent.GET_STATS,
            Intent.HELP,
            Intent.MORE_RESULTS,
            Intent.RECOMMEND_BOOKS,
            Intent.UNREAD_BOOKS,
            Intent.BOOK_DETAILS,
        ]

    def test_table_order_decides_ties(self) -> None:
        """Text matching both start_book and list_reading goes to start_book."""
        result = classify("reading list")
        assert result.intent == Intent.START_BOOK


class TestCollectionMessages:
    def test_recommend_by_genre(self) -> None:
        result = classify("recommend fantasy")
        assert result.intent == Intent.RECOMMEND_BOOKS
        assert result.parameters.genre == "fantasy"
        assert result.parameters.author is None
        assert result.confidence == pytest.approx(0.8)

    def test_recommend_by_author(self) -> None:
        result = classify("recommend something by Andy Weir")
        assert result.intent == Intent.RECOMMEND_BOOKS
        assert result.parameters.author == "Andy Weir"
        assert result.parameters.genre is None

    def test_recommend_drops_trailing_filler(self) -> None:
        assert classify("suggest sci-fi novels").parameters.genre == "sci-fi"
        assert classify("got any sci-fi?").parameters.genre == "sci-fi"

    @pytest.mark.parametrize("text", ["recommend", "suggest something", "Recommend me anything!"])
    def test_bare_recommend_has_no_topic(self, text: str) -> None:
        result = classify(text)
        assert result.intent == Intent.RECOMMEND_BOOKS
        assert result.parameters.genre is None
        assert result.parameters.author is None

    def test_unread(self) -> None:
        result = classify("unread")
        assert result.intent == Intent.UNREAD_BOOKS
        assert result.parameters.genre is None

    def test_unread_with_genre(self) -> None:
        result = classify("unread fantasy")
        assert result.intent == Intent.UNREAD_BOOKS
        assert result.parameters.genre == "fantasy"

    def test_read_next(self) -> None:
        assert classify("what should I read next?").intent == Intent.UNREAD_BOOKS

    @pytest.mark.parametrize(("text", "title"), [
        ("tell me about Dune", "Dune"),
        ("how many pages is The Hobbit?", "The Hobbit"),
        ("info on 'Hyperion'", "Hyperion"),
    ])
    def test_book_details_title(self, text: str, title: str) -> None:
        result = classify(text)
        assert result.intent == Intent.BOOK_DETAILS
        assert result.parameters.book_title == title

    def test_earlier_rows_shadow_collection_rows(self) -> None:
        assert classify("recommend a book").intent == Intent.LIST_READING


class TestFallbacks:
    def test_empty_message(self) -> None:
        result = classify("")
        assert result.intent == Intent.UNKNOWN
        assert result.confidence == 0.0

    def test_whitespace_message(self) -> None:
        result = classify("   \n ")
        assert result.intent == Intent.UNKNOWN
        assert result.confidence == 0.0

    def test_keyword_fallback_low_confidence(self) -> None:
        result = classify("finishing up soon")
        assert result.intent == Intent.FINISH_BOOK
        assert result.confidence == pytest.approx(0.4)
        assert not is_actionable(result)

    def test_no_match(self) -> None:
        result = classify("Tolkien")
        assert result.intent == Intent.UNKNOWN
        assert result.confidence == pytest.approx(0.1)

    def test_raw_message_preserved(self) -> None:
        assert classify("  page 3 ").raw_message == "  page 3 "


class TestConfidence:
    def test_regex_match_with_keyword_boost(self) -> None:
        assert classify("page 150").confidence == pytest.approx(0.8)

    def test_regex_match_without_keywords(self) -> None:
        assert classify("more").confidence == pytest.approx(0.7)

    def test_capped(self) -> None:
        # Many update_progress keywords at once
        result = classify("progress update: page 10, 5 percent through, 5%")
        assert result.intent == Intent.UPDATE_PROGRESS
        assert result.confidence == pytest.approx(0.95)

    def test_is_actionable_threshold(self) -> None:
        result = ClassificationResult(intent=Intent.HELP, confidence=0.5, raw_message="x")
        assert is_actionable(result)
        assert not is_actionable(result, threshold=0.6)


class TestDeterminism:
    @pytest.mark.parametrize("text", ["page 150", "75%", "", "Tolkien", "start Dune"])
    def test_same_input_same_result(self, text: str) -> None:
        assert classify(text) == classify(text)

    def test_custom_table(self) -> None:
        classifier = IntentClassifier(
            patterns=[(Intent.HELP, (re.compile(r"^halp$", re.IGNORECASE),))],
            keywords={},
        )
        assert classifier.classify("HALP").intent == Intent.HELP
        assert classifier.classify("help").intent == Intent.UNKNOWN


class TestExtractors:
    def test_page_number_forms(self) -> None:
        assert extract_page_number("page 12") == 12
        assert extract_page_number("read 30 pages") == 30
        assert extract_page_number("99") == 99
        assert extract_page_number("no digits") is None

    def test_percentage_bounds(self) -> None:
        assert extract_percentage("0%") == 0
        assert extract_percentage("100 %") == 100
        assert extract_percentage("101%") is None
        assert extract_percentage("nothing") is None

    def test_title_skips_groupless_patterns(self) -> None:
        patterns = (re.compile(r"^done$"), re.compile(r"done\s+with\s+(.+)"))
        assert extract_title("done with 'Emma'", patterns) == "Emma"
        assert extract_title("done", patterns) is None
