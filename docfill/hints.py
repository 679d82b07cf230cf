# docfill/hints.py
"""
Type-specific wording shared by prompts, clarifications and LLM instructions
"""

from docfill.models import Field, FieldType


def format_hint(field: Field) -> str:
    """Short machine-facing description of the expected value shape"""
    if field.type == FieldType.NUMBER:
        return "a plain number without currency symbols, e.g. 500000"
    if field.type == FieldType.DATE:
        return "a date in MM/DD/YYYY format"
    if field.type == FieldType.EMAIL:
        return "an email address"
    if field.is_state_like:
        return "a US state, preferably its 2-letter code, e.g. CA"
    return "free text"


def prompt_hint(field: Field) -> str:
    """Suffix appended when asking for a field"""
    if field.type == FieldType.NUMBER:
        return " (enter a number, e.g., 500000)"
    if field.type == FieldType.DATE:
        return " (MM/DD/YYYY format)"
    if field.is_state_like:
        return " (2-letter state code, e.g., CA)"
    return ""


def clarification_hint(field: Field) -> str:
    if field.type == FieldType.NUMBER:
        return " Just enter the number (e.g., 500000)."
    if field.type == FieldType.DATE:
        return " Please use MM/DD/YYYY format (e.g., 12/23/2024)."
    if field.is_state_like:
        return " Please use a 2-letter state code (e.g., CA, NY, TX)."
    if field.type == FieldType.EMAIL:
        return " Please enter an email address (e.g., name@example.com)."
    return " Please enter the value clearly."


def templated_clarification(field: Field) -> str:
    """Deterministic fallback when no LLM clarification is available"""
    return f"I'm not sure I caught that. Could you provide the **{field.description}**?{clarification_hint(field)}"
