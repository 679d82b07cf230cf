# docfill/pattern_extractor.py
"""
Deterministic value extraction from a user message (first extraction tier)

Each field type has its own small set of regular expressions. Nothing here
touches the network, so this tier always runs and always answers quickly.
"""

import re
from datetime import date, datetime
from typing import Callable, Optional

from docfill.models import Field, FieldType

DOLLAR_PATTERN = re.compile(r"\$\s*(\d[\d,]*(?:\.\d{2})?)")
NUMBER_PATTERN = re.compile(r"\b(\d[\d,]*(?:\.\d+)?)\b")

SLASH_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
DASH_DATE = re.compile(r"\b(\d{1,2})-(\d{1,2})-(\d{4})\b")
TEXT_DATE = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b")

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

FILLER_PREFIX = re.compile(
    r"^(company name is|investor name is|name is|will be|should be|it'?s|the|my|our|is|are)\s+",
    re.IGNORECASE,
)
TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
QUOTED = re.compile(r"\"([^\"]+)\"|“([^”]+)”|(?<!\w)'([^']+)'(?!\w)")
CAPITALIZED_NAME = re.compile(
    r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*(?:,?\s+(?:Inc|LLC|Corp|Ltd)\.?)?)"
)
STATE_CODE = re.compile(r"\b([A-Z]{2})\b")
# "State" and "Of" are never part of the name: "the State of Delaware" -> Delaware
STATE_NAME = re.compile(r"\b(?!(?:State|Of)\b)([A-Z][a-z]+(?:\s+(?!(?:State|Of)\b)[A-Z][a-z]+)?)\b")

NAME_MAX_LENGTH = 100
TEXT_MAX_LENGTH = 200


def extract_number(message: str) -> Optional[str]:
    """$500,000 -> 500000; a currency-marked amount beats a bare one"""
    match = DOLLAR_PATTERN.search(message) or NUMBER_PATTERN.search(message)
    if not match:
        return None
    raw = match.group(1).replace(",", "")
    return raw or None


def _numeric_date(match: "re.Match") -> Optional[date]:
    month, day, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _textual_date(match: "re.Match") -> Optional[date]:
    month_text, day, year = match.groups()
    month_text = month_text[:3] if month_text.lower().startswith("sept") else month_text
    for fmt in ("%B %d %Y", "%b %d %Y"):
        try:
            return datetime.strptime(f"{month_text} {day} {year}", fmt).date()
        except ValueError:
            continue
    return None


DATE_PARSERS = [
    (SLASH_DATE, _numeric_date),
    (DASH_DATE, _numeric_date),
    (TEXT_DATE, _textual_date),
]


def extract_date(message: str) -> Optional[str]:
    """Find the first real calendar date and render it as MM/DD/YYYY"""
    for pattern, parse in DATE_PARSERS:
        for match in pattern.finditer(message):
            parsed = parse(match)
            if parsed:
                return parsed.strftime("%m/%d/%Y")
    return None


def extract_email(message: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(message)
    return match.group(0) if match else None


def clean_text(message: str) -> str:
    """Drop leading filler ("it's", "the company name is", ...) and end punctuation"""
    cleaned = message.strip()
    while True:
        stripped = FILLER_PREFIX.sub("", cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped.strip()
    return TRAILING_PUNCTUATION.sub("", cleaned).strip()


def _quoted(cleaned: str) -> Optional[str]:
    match = QUOTED.search(cleaned)
    if not match:
        return None
    value = next(g for g in match.groups() if g is not None).strip()
    return value or None


def extract_text(message: str, field: Field) -> Optional[str]:
    cleaned = clean_text(message)

    quoted = _quoted(cleaned)
    if quoted:
        return quoted

    if field.is_name_like:
        match = CAPITALIZED_NAME.search(cleaned)
        if match:
            return match.group(1)
        if 0 < len(cleaned) < NAME_MAX_LENGTH:
            return cleaned

    if field.is_state_like:
        match = STATE_CODE.search(cleaned) or STATE_NAME.search(cleaned)
        if match:
            return match.group(1)

    if 0 < len(cleaned) < TEXT_MAX_LENGTH:
        return cleaned
    return None


EXTRACTORS = {
    FieldType.NUMBER: lambda message, field: extract_number(message),
    FieldType.DATE: lambda message, field: extract_date(message),
    FieldType.EMAIL: lambda message, field: extract_email(message),
    FieldType.TEXT: extract_text,
    FieldType.STATE: extract_text,
}


def extract_with_patterns(message: str, field: Field) -> Optional[str]:
    """
    Pull a raw value for field out of message

    Returns:
        The raw value, or None when no pattern for the field's type matched
    """
    if not message or not message.strip():
        return None
    extractor: Callable[[str, Field], Optional[str]] = EXTRACTORS[field.type]
    return extractor(message.strip(), field)
