# docfill/value_extractor.py
"""
Tiered value extraction

    Tier 1  PatternProvider   regular expressions, always available
    Tier 2  LLMProvider       optional, any failure collapses to "no value"
    Tier 3  clarify()         LLM wording if possible, else a fixed template

Providers are tried in order and the first non-empty value wins.
"""

import logging
from typing import List, Optional, Sequence

from docfill.errors import ExternalUnavailableError
from docfill.hints import templated_clarification
from docfill.llm_handler import LLMHandler
from docfill.models import ConversationTurn, ExtractionOutcome, Field, FieldType
from docfill.pattern_extractor import extract_with_patterns

logger = logging.getLogger(__name__)


class PatternProvider:
    source = "pattern"

    async def provide(self, field: Field, message: str, history: Sequence[ConversationTurn]) -> Optional[str]:
        return extract_with_patterns(message, field)


class LLMProvider:
    source = "llm"

    def __init__(self, handler: LLMHandler):
        self.handler = handler

    async def provide(self, field: Field, message: str, history: Sequence[ConversationTurn]) -> Optional[str]:
        if not self.handler.available:
            return None
        try:
            value = await self.handler.extract_value(field, message, history)
        except ExternalUnavailableError as e:
            logger.warning("LLM extraction unavailable for %s: %s", field.name, e)
            return None
        if value and field.type in (FieldType.DATE, FieldType.NUMBER):
            # "December 15, 2024" or "$750,000" from the model -> canonical form
            return extract_with_patterns(value, field) or value
        return value


class ValueExtractor:
    """Runs the providers for one field and, when all miss, words a clarification"""

    def __init__(self, llm_handler: Optional[LLMHandler] = None):
        self.llm_handler = llm_handler or LLMHandler()
        self.providers: List = [PatternProvider(), LLMProvider(self.llm_handler)]

    async def extract(
        self,
        field: Field,
        message: str,
        history: Sequence[ConversationTurn] = (),
    ) -> ExtractionOutcome:
        for provider in self.providers:
            value = await provider.provide(field, message, history)
            if value:
                logger.debug("%s extracted %r for %s", provider.source, value, field.name)
                return ExtractionOutcome.extracted(value, source=provider.source)
        return ExtractionOutcome.unclear()

    async def clarify(
        self,
        field: Field,
        message: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        if self.llm_handler.available:
            try:
                return await self.llm_handler.generate_clarification(field, message, history)
            except ExternalUnavailableError as e:
                logger.warning("LLM clarification unavailable for %s: %s", field.name, e)
        return templated_clarification(field)
