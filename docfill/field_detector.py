# docfill/field_detector.py
"""
Field detection for [Bracketed] markers

Two authoring conventions are recognised:
  [Company Name]  named field, identity comes from the literal text
  [_____]         blank field, identity is inferred from the surrounding words

Both keyword cascades below are ordered tables evaluated first-match-wins.
A blank whose context matches no rule is left alone rather than guessed.
"""

import logging
import re
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional

from docfill.models import Field, FieldType

logger = logging.getLogger(__name__)

# A marker never spans a paragraph break
MARKER_PATTERN = re.compile(r"\[([^\]\n]+)\]")
BLANK_CONTENT = re.compile(r"^[_\s]+$")

CONTEXT_BEFORE = 80
CONTEXT_AFTER = 20


class FieldIdentity(NamedTuple):
    name: str
    description: str
    type: FieldType


class Rule(NamedTuple):
    label: str
    matches: Callable[[str], bool]
    outcome: Callable[[str], FieldIdentity]


class MarkerMatch(NamedTuple):
    """One [..] occurrence in document text, resolved or not"""
    start: int
    end: int
    literal: str
    is_blank: bool
    identity: Optional[FieldIdentity]


def _contains_any(*keywords: str) -> Callable[[str], bool]:
    return lambda haystack: any(k in haystack for k in keywords)


def title_case(name: str) -> str:
    """COMPANY_NAME -> Company Name"""
    return " ".join(w[:1] + w[1:].lower() for w in name.split("_") if w)


def normalize_name(content: str) -> str:
    """
    Turn literal marker text into a stable identifier

    "Company Name" -> COMPANY_NAME, "  date of safe " -> DATE_OF_SAFE
    """
    name = re.sub(r"[^A-Z0-9]+", "_", content.upper())
    return name.strip("_")


# Named fields: keyword in the normalized name -> type / description
NAMED_FIELD_RULES: List[Rule] = [
    Rule("date", _contains_any("date", "deadline"),
         lambda name: FieldIdentity(name, "Date", FieldType.DATE)),
    Rule("email", _contains_any("email", "mail"),
         lambda name: FieldIdentity(name, "Email address", FieldType.EMAIL)),
    Rule("number", _contains_any("amount", "price", "valuation", "cap", "value", "cost"),
         lambda name: FieldIdentity(name, title_case(name), FieldType.NUMBER)),
    Rule("state", _contains_any("state"),
         lambda name: FieldIdentity(name, "State", FieldType.TEXT)),
]

# Blank fields: keyword in the lower-cased context window -> identity
CONTEXT_RULES: List[Rule] = [
    Rule("company name",
         lambda ctx: "company" in ctx and ("name" in ctx or "corporation" in ctx),
         lambda ctx: FieldIdentity("COMPANY_NAME", "Company name", FieldType.TEXT)),
    Rule("investor name",
         lambda ctx: "investor" in ctx and "name" in ctx,
         lambda ctx: FieldIdentity("INVESTOR_NAME", "Investor name", FieldType.TEXT)),
    Rule("purchase amount", _contains_any("$", "purchase amount", "investment"),
         lambda ctx: FieldIdentity("PURCHASE_AMOUNT", "Investment amount", FieldType.NUMBER)),
    Rule("date", _contains_any("date", "day of"),
         lambda ctx: FieldIdentity("DATE", "Date", FieldType.DATE)),
    Rule("valuation cap", _contains_any("valuation cap", "post-money"),
         lambda ctx: FieldIdentity("VALUATION_CAP", "Valuation cap", FieldType.NUMBER)),
    Rule("state", _contains_any("state of", "incorporated in"),
         lambda ctx: FieldIdentity("STATE", "State", FieldType.STATE)),
]


def classify_named(name: str) -> FieldIdentity:
    """Type and description for a normalized named-field identifier"""
    lower = name.lower()
    for rule in NAMED_FIELD_RULES:
        if rule.matches(lower):
            return rule.outcome(name)
    return FieldIdentity(name, title_case(name), FieldType.TEXT)


def infer_from_context(context: str) -> Optional[FieldIdentity]:
    """Guess what a blank [____] stands for from its surrounding text"""
    lower = context.lower()
    for rule in CONTEXT_RULES:
        if rule.matches(lower):
            logger.debug("Blank field inferred by rule '%s'", rule.label)
            return rule.outcome(lower)
    return None


def context_window(text: str, start: int, end: int) -> str:
    return text[max(0, start - CONTEXT_BEFORE):min(len(text), end + CONTEXT_AFTER)].lower()


def scan_markers(text: str) -> Iterator[MarkerMatch]:
    """
    Yield every usable marker in text, left to right

    Markers with empty content, named markers that normalize to nothing and
    blanks with no recognisable context are yielded with identity=None.
    """
    seen_positions = set()

    for match in MARKER_PATTERN.finditer(text):
        if match.start() in seen_positions:
            continue
        seen_positions.add(match.start())

        literal = match.group(1)
        content = literal.strip()
        if not content:
            continue

        if BLANK_CONTENT.match(content):
            identity = infer_from_context(context_window(text, match.start(), match.end()))
            yield MarkerMatch(match.start(), match.end(), literal, True, identity)
            continue

        name = normalize_name(content)
        identity = classify_named(name) if name else None
        yield MarkerMatch(match.start(), match.end(), literal, False, identity)


def detect_fields(text: str) -> List[Field]:
    """
    Find all fields in document text

    Args:
        text: Plain document text

    Returns:
        Fields in first-occurrence order, one per distinct name
    """
    fields: Dict[str, Field] = {}
    skipped = 0

    for marker in scan_markers(text or ""):
        if marker.identity is None:
            skipped += 1
            continue

        identity = marker.identity
        # First writer wins: keep the earliest literal text and description
        if identity.name not in fields:
            fields[identity.name] = Field(
                name=identity.name,
                original_text=marker.literal,
                type=identity.type,
                description=identity.description,
            )

    logger.debug("Detected %d fields (%d markers skipped)", len(fields), skipped)
    return list(fields.values())
