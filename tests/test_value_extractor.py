"""Tests for the tiered extraction pipeline and the LLM handler."""

import pytest

from conftest import FakeChatModel, make_field
from docfill.config import settings
from docfill.errors import ExternalUnavailableError
from docfill.llm_handler import LLMHandler, build_llm, parse_extraction_reply
from docfill.models import ConversationTurn, FieldType
from docfill.value_extractor import ValueExtractor


@pytest.fixture
def amount_field():
    return make_field("PURCHASE_AMOUNT", FieldType.NUMBER, "Purchase Amount")


@pytest.fixture
def date_field():
    return make_field("DATE", FieldType.DATE, "Date")


class TestParseReply:

    def test_value(self):
        assert parse_extraction_reply("VALUE: Acme Corp") == "Acme Corp"

    def test_value_quoted_lowercase_token(self):
        assert parse_extraction_reply('value: "DE"') == "DE"

    def test_value_on_later_line(self):
        assert parse_extraction_reply("Sure.\nVALUE: 750000") == "750000"

    def test_unclear(self):
        assert parse_extraction_reply("UNCLEAR") is None

    def test_malformed(self):
        with pytest.raises(ExternalUnavailableError):
            parse_extraction_reply("I think it might be something")


class TestBuildLLM:

    def test_disabled_without_key(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "")
        assert build_llm() is None
        assert not settings.llm_enabled


class TestLLMHandler:

    @pytest.mark.asyncio
    async def test_history_is_windowed(self, amount_field):
        model = FakeChatModel(replies=["VALUE: 100000"])
        handler = LLMHandler(model, history_window=6)
        history = [
            ConversationTurn(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}")
            for i in range(10)
        ]
        assert await handler.extract_value(amount_field, "a hundred grand", history) == "100000"
        messages = model.calls[0]
        # system + 6 turns + new message
        assert len(messages) == 8
        assert messages[1].content == "turn 4"
        assert messages[-1].content == "a hundred grand"

    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(self, amount_field):
        handler = LLMHandler(FakeChatModel(replies=["VALUE: 1"], delay=1.0), timeout=0.01)
        with pytest.raises(ExternalUnavailableError):
            await handler.extract_value(amount_field, "hmm")

    @pytest.mark.asyncio
    async def test_no_model_raises_unavailable(self, amount_field):
        with pytest.raises(ExternalUnavailableError):
            await LLMHandler(None).extract_value(amount_field, "hmm")

    @pytest.mark.asyncio
    async def test_clarification_truncated(self, date_field):
        handler = LLMHandler(FakeChatModel(replies=["x" * 500]))
        reply = await handler.generate_clarification(date_field, "soon", max_chars=50)
        assert len(reply) == 50


class TestValueExtractor:

    @pytest.mark.asyncio
    async def test_pattern_tier_short_circuits(self, amount_field):
        model = FakeChatModel(replies=["VALUE: 1"])
        outcome = await ValueExtractor(LLMHandler(model)).extract(amount_field, "$500,000")
        assert outcome.kind == "extracted"
        assert outcome.raw_value == "500000"
        assert outcome.source == "pattern"
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_llm_tier_used_on_pattern_miss(self, amount_field):
        model = FakeChatModel(replies=["VALUE: 750000"])
        outcome = await ValueExtractor(LLMHandler(model)).extract(amount_field, "three quarters of a million")
        assert outcome.kind == "extracted"
        assert outcome.raw_value == "750000"
        assert outcome.source == "llm"

    @pytest.mark.asyncio
    async def test_llm_amount_normalized(self, amount_field):
        model = FakeChatModel(replies=["VALUE: $750,000"])
        outcome = await ValueExtractor(LLMHandler(model)).extract(amount_field, "three quarters of a million")
        assert outcome.raw_value == "750000"
        assert outcome.source == "llm"

    @pytest.mark.asyncio
    async def test_llm_date_normalized(self, date_field):
        model = FakeChatModel(replies=["VALUE: December 15, 2024"])
        outcome = await ValueExtractor(LLMHandler(model)).extract(date_field, "the fifteenth of december this year")
        assert outcome.raw_value == "12/15/2024"
        assert outcome.source == "llm"

    @pytest.mark.asyncio
    async def test_llm_unclear(self, amount_field):
        outcome = await ValueExtractor(LLMHandler(FakeChatModel(replies=["UNCLEAR"]))).extract(
            amount_field, "not sure yet"
        )
        assert outcome.kind == "unclear"

    @pytest.mark.asyncio
    async def test_llm_error_degrades_silently(self, amount_field):
        model = FakeChatModel(error=ConnectionError("network down"))
        outcome = await ValueExtractor(LLMHandler(model)).extract(amount_field, "not sure yet")
        assert outcome.kind == "unclear"

    @pytest.mark.asyncio
    async def test_llm_timeout_degrades_silently(self, amount_field):
        model = FakeChatModel(replies=["VALUE: 1"], delay=1.0)
        outcome = await ValueExtractor(LLMHandler(model, timeout=0.01)).extract(amount_field, "not sure")
        assert outcome.kind == "unclear"

    @pytest.mark.asyncio
    async def test_malformed_reply_degrades_silently(self, amount_field):
        model = FakeChatModel(replies=["Here you go!"])
        outcome = await ValueExtractor(LLMHandler(model)).extract(amount_field, "not sure")
        assert outcome.kind == "unclear"

    @pytest.mark.asyncio
    async def test_without_llm(self, amount_field):
        outcome = await ValueExtractor(LLMHandler(None)).extract(amount_field, "not sure")
        assert outcome.kind == "unclear"


class TestClarification:

    @pytest.mark.asyncio
    async def test_template_without_llm(self, date_field):
        text = await ValueExtractor(LLMHandler(None)).clarify(date_field, "soon")
        assert "**Date**" in text
        assert "MM/DD/YYYY" in text

    @pytest.mark.asyncio
    async def test_template_number_hint(self, amount_field):
        text = await ValueExtractor(LLMHandler(None)).clarify(amount_field, "lots")
        assert "500000" in text

    @pytest.mark.asyncio
    async def test_llm_wording_preferred(self, date_field):
        model = FakeChatModel(replies=["When should the SAFE be dated? Please use MM/DD/YYYY."])
        text = await ValueExtractor(LLMHandler(model)).clarify(date_field, "soon")
        assert text.startswith("When should the SAFE be dated?")

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_template(self, date_field):
        model = FakeChatModel(error=RuntimeError("boom"))
        text = await ValueExtractor(LLMHandler(model)).clarify(date_field, "soon")
        assert text.startswith("I'm not sure I caught that.")
