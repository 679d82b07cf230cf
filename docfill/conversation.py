# docfill/conversation.py
"""
Conversation orchestration: which field is current, and what to say next

process_message() is a pure step: it takes the field list and history,
never mutates them, and returns new copies together with the reply. Callers
must serialize turns per conversation.
"""

import logging
from typing import List, Optional, Sequence

from docfill.config import settings
from docfill.hints import prompt_hint
from docfill.models import ConversationTurn, ExtractionOutcome, Field, TurnResult
from docfill.validators import format_value, validate_value
from docfill.value_extractor import ValueExtractor

logger = logging.getLogger(__name__)

CONFIRMATION_WORDS = frozenset({"yes", "yeah", "yep", "correct", "right", "sure", "ok", "okay"})

COMPLETION_MESSAGE = (
    "🎉 Perfect! All fields are complete. Review the values, "
    "then download the completed document when ready."
)


def next_field(fields: Sequence[Field]) -> Optional[Field]:
    """First field in document order that has no value yet"""
    return next((f for f in fields if f.value is None), None)


def is_complete(fields: Sequence[Field]) -> bool:
    return all(f.value is not None for f in fields)


def progress(fields: Sequence[Field]) -> str:
    filled = sum(1 for f in fields if f.value is not None)
    return f"{filled}/{len(fields)}"


def is_confirmation(message: str) -> bool:
    return message.strip().lower() in CONFIRMATION_WORDS


def ask_for(field: Field, lead: str = "Next, what's") -> str:
    return f"{lead} the **{field.description}**?{prompt_hint(field)}"


def build_welcome_message(filename: str, fields: Sequence[Field]) -> str:
    """Opening message listing what the document needs"""
    names = ", ".join(f.description for f in fields[:5])
    more = f" and {len(fields) - 5} more" if len(fields) > 5 else ""
    message = (
        f'I\'ve loaded your document "{filename}".\n\n'
        f"I found {len(fields)} fields that need to be filled: {names}{more}."
    )
    first = next_field(fields)
    if first is not None:
        message += "\n\n" + ask_for(first, lead="Let's start: what's")
    return message


async def process_message(
    message: str,
    fields: Sequence[Field],
    history: Sequence[ConversationTurn],
    extractor: ValueExtractor,
    history_window: Optional[int] = None,
) -> TurnResult:
    """
    Run one conversation turn

    Args:
        message: Latest user message
        fields: Current field list (not modified)
        history: Conversation so far (not modified)
        extractor: Tiered value extractor
        history_window: Number of earlier turns the extractor may see

    Returns:
        TurnResult with updated copies of fields and history
    """
    window = history_window if history_window is not None else settings.history_window
    fields: List[Field] = [f.model_copy() for f in fields]
    recent = list(history)[-window:] if window > 0 else []
    current = next_field(fields)

    outcome: Optional[ExtractionOutcome] = None
    filled_name: Optional[str] = None

    if current is None:
        response = COMPLETION_MESSAGE
    elif is_confirmation(message):
        response = ask_for(current, lead="Great! Now, what's")
    else:
        outcome = await extractor.extract(current, message, recent)

        if outcome.kind == "extracted":
            validation = validate_value(outcome.raw_value, current)
            if not validation.valid:
                logger.debug("Rejected %r for %s: %s", outcome.raw_value, current.name, validation.feedback)
                outcome = ExtractionOutcome.invalid(
                    validation.feedback,
                    raw_value=outcome.raw_value,
                    needs_confirmation=validation.needs_confirmation,
                )
                response = f"⚠️ {validation.feedback}"
            else:
                current.value = format_value(outcome.raw_value, current)
                filled_name = current.name
                logger.info("Filled %s (%s)", current.name, progress(fields))

                response = f"✓ Got it! **{current.description}**: {current.value}"
                upcoming = next_field(fields)
                if upcoming is None:
                    response += f"\n\n{COMPLETION_MESSAGE}"
                else:
                    response += "\n\n" + ask_for(upcoming)
        else:
            response = await extractor.clarify(current, message, recent)

    new_history = list(history) + [
        ConversationTurn(role="user", content=message),
        ConversationTurn(role="assistant", content=response),
    ]

    return TurnResult(
        fields=fields,
        history=new_history,
        response=response,
        is_complete=is_complete(fields),
        outcome=outcome,
        filled_field=filled_name,
    )
