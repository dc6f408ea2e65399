"""Tests for the pipeline data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bookshelf_sms.models import (
    ClassificationResult,
    ConversationContext,
    HandlerResponse,
    Intent,
    IntentParameters,
)
from bookshelf_sms.webhook.models import IncomingMessage
from tests.conftest import SENDER, make_form


class TestIncomingMessage:
    def test_from_form(self) -> None:
        msg = IncomingMessage.from_form(make_form("page 10", NumMedia="2", NumSegments="3"))
        assert msg.sender_id == SENDER
        assert msg.body == "page 10"
        assert msg.media_count == 2
        assert msg.num_segments == 3
        assert msg.message_sid.startswith("SM")

    def test_missing_and_malformed_fields(self) -> None:
        msg = IncomingMessage.from_form({"NumMedia": "lots", "NumSegments": ""})
        assert msg.sender_id == ""
        assert msg.body == ""
        assert msg.media_count == 0
        assert msg.num_segments == 1

    def test_frozen(self) -> None:
        msg = IncomingMessage.from_form(make_form("hi"))
        with pytest.raises(AttributeError):
            msg.body = "other"  # type: ignore[misc]


class TestValidation:
    def test_percent_bounds(self) -> None:
        with pytest.raises(ValidationError):
            IntentParameters(percent_complete=101)

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ClassificationResult(intent=Intent.HELP, confidence=1.5, raw_message="help")

    def test_result_offset_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            ConversationContext(sender_id=SENDER, result_offset=-1)


class TestHandlerResponse:
    def test_book_id_from_data(self) -> None:
        assert HandlerResponse(success=True, message="", data={"book_id": 7}).book_id == 7

    @pytest.mark.parametrize("data", [None, {}, {"book_id": "7"}, {"title": "Dune"}])
    def test_book_id_absent(self, data) -> None:
        assert HandlerResponse(success=True, message="", data=data).book_id is None

    def test_intent_values_serialize(self) -> None:
        result = ClassificationResult(intent=Intent.MORE_RESULTS, confidence=0.7, raw_message="more")
        assert result.model_dump(mode="json")["intent"] == "more_results"
