# docfill/llm_handler.py
"""
LLM access for the second extraction tier and for clarification wording

The model is asked about exactly one field at a time and must answer with
either "VALUE: <value>" or "UNCLEAR". Anything that goes wrong here is
raised as ExternalUnavailableError; callers decide how to degrade.
"""

import asyncio
import logging
import re
from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from docfill.config import settings
from docfill.errors import ExternalUnavailableError
from docfill.hints import format_hint
from docfill.models import ConversationTurn, Field

logger = logging.getLogger(__name__)

VALUE_TOKEN = re.compile(r"^\s*VALUE\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
UNCLEAR_TOKEN = re.compile(r"\bUNCLEAR\b", re.IGNORECASE)


def build_llm(model_name: Optional[str] = None) -> Optional[ChatOpenAI]:
    """Create the chat model, or None when no API key is configured"""
    if not settings.llm_enabled:
        logger.info("No OpenAI API key configured, LLM tier disabled")
        return None

    llm = ChatOpenAI(
        model=model_name or settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        api_key=settings.openai_api_key,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
    logger.info("ChatOpenAI initialized (%s)", model_name or settings.openai_model)
    return llm


def _history_messages(history: Sequence[ConversationTurn], window: int) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for turn in list(history)[-window:] if window > 0 else []:
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.content))
        else:
            messages.append(AIMessage(content=turn.content))
    return messages


def extraction_instructions(field: Field) -> str:
    return f"""You are a document filling assistant. Extract the value the user gave for ONE field.

Field: "{field.description}" ({field.name})
Type: {field.type.value}
Expected format: {format_hint(field)}

Reply with exactly one line:
VALUE: <the value, nothing else>
or, if the user did not clearly provide a value for this field:
UNCLEAR"""


def clarification_instructions(field: Field, max_chars: int) -> str:
    return f"""You are a friendly document filling assistant. The user's last message did not give a usable value for the field "{field.description}".

Ask them again in one or two short sentences (under {max_chars} characters).
Mention the expected format: {format_hint(field)}.
Do not invent a value."""


def parse_extraction_reply(text: str) -> Optional[str]:
    """
    Read a "VALUE: x" / "UNCLEAR" reply

    Returns:
        The value, or None for UNCLEAR

    Raises:
        ExternalUnavailableError: reply matches neither token
    """
    match = VALUE_TOKEN.search(text or "")
    if match:
        value = match.group(1).strip().strip('"').strip("'").strip()
        if value and not UNCLEAR_TOKEN.fullmatch(value):
            return value
        return None
    if UNCLEAR_TOKEN.search(text or ""):
        return None
    raise ExternalUnavailableError(f"Malformed LLM reply: {(text or '')[:80]!r}")


class LLMHandler:
    """Thin async wrapper around a LangChain chat model with a bounded timeout"""

    def __init__(self, llm=None, timeout: Optional[float] = None, history_window: Optional[int] = None):
        self.llm = llm
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.history_window = history_window if history_window is not None else settings.history_window

    @property
    def available(self) -> bool:
        return self.llm is not None

    async def _invoke(self, messages: List[BaseMessage]) -> str:
        if self.llm is None:
            raise ExternalUnavailableError("No LLM configured")
        try:
            response = await asyncio.wait_for(self.llm.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ExternalUnavailableError(f"LLM call timed out after {self.timeout}s") from e
        except Exception as e:
            raise ExternalUnavailableError(f"LLM call failed: {e}") from e

        content = getattr(response, "content", None)
        if not isinstance(content, str):
            raise ExternalUnavailableError("LLM reply has no text content")
        logger.debug("LLM response: %d chars", len(content))
        return content

    async def extract_value(
        self,
        field: Field,
        message: str,
        history: Sequence[ConversationTurn] = (),
    ) -> Optional[str]:
        """Ask the model for field's value in message; None means UNCLEAR"""
        messages: List[BaseMessage] = [SystemMessage(content=extraction_instructions(field))]
        messages.extend(_history_messages(history, self.history_window))
        messages.append(HumanMessage(content=message))

        reply = await self._invoke(messages)
        return parse_extraction_reply(reply)

    async def generate_clarification(
        self,
        field: Field,
        message: str,
        history: Sequence[ConversationTurn] = (),
        max_chars: Optional[int] = None,
    ) -> str:
        max_chars = max_chars or settings.clarification_max_chars
        messages: List[BaseMessage] = [SystemMessage(content=clarification_instructions(field, max_chars))]
        messages.extend(_history_messages(history, self.history_window))
        messages.append(HumanMessage(content=message))

        reply = (await self._invoke(messages)).strip()
        if not reply:
            raise ExternalUnavailableError("Empty clarification from LLM")
        return reply[:max_chars]
