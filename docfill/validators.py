# docfill/validators.py
"""
Type-specific validation and normalization of extracted values
"""

import math
import re
from datetime import date
from typing import Optional

from docfill.models import Field, FieldType, ValidationResult

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC",
})

DATE_FORMAT = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
MINIMUM_INVESTMENT = 1000
MIN_TEXT_LENGTH = 2


def _parse_number(raw: str) -> Optional[float]:
    try:
        number = float(raw.replace(",", "").replace("$", "").strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _parse_date(raw: str) -> Optional[date]:
    match = DATE_FORMAT.match(raw)
    if not match:
        return None
    month, day, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _is_investment_amount(field: Field) -> bool:
    return "AMOUNT" in field.name


def _invalid(feedback: str, needs_confirmation: bool = False) -> ValidationResult:
    return ValidationResult(valid=False, feedback=feedback, needs_confirmation=needs_confirmation)


def validate_value(raw_value: str, field: Field) -> ValidationResult:
    """
    Check raw_value against the rules for field's type

    Returns:
        ValidationResult; feedback is a user-facing sentence when invalid
    """
    value = (raw_value or "").strip()

    if field.type == FieldType.NUMBER:
        number = _parse_number(value)
        if number is None:
            return _invalid("That does not look like a valid number. Please enter digits only (e.g., 500000).")
        if number <= 0:
            return _invalid("The amount should be greater than zero. Please enter a valid amount.")
        if _is_investment_amount(field) and number < MINIMUM_INVESTMENT:
            return _invalid(
                "That seems quite low for an investment amount. "
                "Did you mean to enter a larger number? (e.g., 50000)",
                needs_confirmation=True,
            )
        return ValidationResult(valid=True)

    if field.type == FieldType.DATE:
        if not DATE_FORMAT.match(value):
            return _invalid("Please use MM/DD/YYYY format for the date (e.g., 12/31/2024).")
        if _parse_date(value) is None:
            return _invalid("That does not look like a valid date. Please use MM/DD/YYYY format.")
        return ValidationResult(valid=True)

    if field.type in (FieldType.TEXT, FieldType.STATE):
        # Full state names are accepted as typed; only 2-letter codes are checked
        if field.is_state_like and len(value) == 2 and value.upper() not in US_STATE_CODES:
            return _invalid(
                f'"{value}" is not a valid US state code. '
                "Please enter a valid 2-letter state code (e.g., CA, NY, TX)."
            )
        if len(value) < MIN_TEXT_LENGTH:
            return _invalid("That seems too short. Could you provide a complete answer?")

    return ValidationResult(valid=True)


def format_number(number: float) -> str:
    """2000000 -> 2,000,000 and 1234.5 -> 1,234.5 (at most two decimals)"""
    text = f"{number:,.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def format_value(raw_value: str, field: Field) -> str:
    """Normalize an already-validated value for insertion into the document"""
    value = (raw_value or "").strip()

    if field.type == FieldType.NUMBER:
        number = _parse_number(value)
        return format_number(number) if number is not None else value

    if field.type == FieldType.DATE:
        parsed = _parse_date(value)
        return parsed.strftime("%m/%d/%Y") if parsed else value

    if field.type in (FieldType.TEXT, FieldType.STATE) and field.is_state_like and len(value) == 2:
        return value.upper()

    return value
