# docfill/document_handler.py
"""
Document processing module using python-docx

The original .docx is edited in place: only the runs that hold a marker are
touched, so styles, headers, footers and every other part of the package
are carried over from the upload.
"""

import io
import logging
import zipfile
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table
from docx.text.paragraph import Paragraph
from lxml.etree import XMLSyntaxError

from docfill.errors import DocumentCorruptError, InputRejectedError, RenderError
from docfill.field_detector import (
    MARKER_PATTERN,
    BLANK_CONTENT,
    context_window,
    detect_fields,
    infer_from_context,
    normalize_name,
    scan_markers,
)
from docfill.models import Field

logger = logging.getLogger(__name__)


def paragraph_text(paragraph: Paragraph) -> str:
    """Text exactly as the runs hold it, so offsets map back onto runs"""
    return "".join(run.text for run in paragraph.runs)


def _table_paragraphs(table: Table, seen: set) -> Iterator[Paragraph]:
    for row in table.rows:
        for cell in row.cells:
            # Merged cells are returned once per grid column they span
            if cell._tc in seen:
                continue
            seen.add(cell._tc)
            yield from cell.paragraphs
            for nested in cell.tables:
                yield from _table_paragraphs(nested, seen)


class DocumentPackage:
    """A .docx opened for text extraction and marker substitution"""

    def __init__(self, document):
        self.document = document

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocumentPackage":
        if not data:
            raise DocumentCorruptError("Document package is empty")
        try:
            return cls(Document(io.BytesIO(data)))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, XMLSyntaxError) as e:
            raise DocumentCorruptError(f"Cannot read document package: {e}") from e

    def body_paragraphs(self) -> Iterator[Paragraph]:
        """Body paragraphs, then table cell paragraphs"""
        yield from self.document.paragraphs
        seen: set = set()
        for table in self.document.tables:
            yield from _table_paragraphs(table, seen)

    def header_footer_paragraphs(self) -> Iterator[Paragraph]:
        for section in self.document.sections:
            parts = (
                section.header, section.first_page_header, section.even_page_header,
                section.footer, section.first_page_footer, section.even_page_footer,
            )
            for part in parts:
                if part.is_linked_to_previous:
                    continue
                yield from part.paragraphs
                seen: set = set()
                for table in part.tables:
                    yield from _table_paragraphs(table, seen)

    def indexed_paragraphs(self) -> Tuple[str, List[Tuple[Paragraph, int]]]:
        """
        Joined body text plus each non-empty paragraph's offset in it

        Returns:
            (text, [(paragraph, offset), ...])
        """
        parts: List[str] = []
        index: List[Tuple[Paragraph, int]] = []
        offset = 0
        for paragraph in self.body_paragraphs():
            text = paragraph_text(paragraph)
            if not text.strip():
                continue
            index.append((paragraph, offset))
            parts.append(text)
            offset += len(text) + 1
        return "\n".join(parts), index

    def text(self) -> str:
        return self.indexed_paragraphs()[0]

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.document.save(buffer)
        return buffer.getvalue()


def extract_document_text(data: bytes) -> str:
    """
    Extract plain text from .docx bytes

    Args:
        data: Raw .docx file content

    Returns:
        Plain text from body paragraphs and tables
    """
    return DocumentPackage.from_bytes(data).text()


def load_document_fields(data: bytes) -> Tuple[str, List[Field]]:
    """
    Open an uploaded document and detect its fields

    Raises:
        InputRejectedError: unreadable, empty, unbalanced [ ] in a
            paragraph, or no fields found
    """
    try:
        package = DocumentPackage.from_bytes(data)
    except DocumentCorruptError as e:
        raise InputRejectedError(
            "Failed to extract text from document. Please ensure it is a valid .docx file."
        ) from e

    text, index = package.indexed_paragraphs()
    if not text.strip():
        raise InputRejectedError("Document appears to be empty")

    # Anything regenerate_document() would refuse is refused here instead
    paragraphs = [paragraph for paragraph, _ in index]
    paragraphs.extend(package.header_footer_paragraphs())
    for paragraph in paragraphs:
        try:
            check_delimiters(paragraph_text(paragraph))
        except RenderError as e:
            raise InputRejectedError(
                f"Unbalanced [ ] brackets in the paragraph {e.paragraph_text[:60]!r}. "
                "Every placeholder must open and close within one paragraph."
            ) from e

    fields = detect_fields(text)
    if not fields:
        raise InputRejectedError(
            "No fields found in document. Please ensure your document contains "
            "placeholders in the format [PLACEHOLDER_NAME] or [____]."
        )
    return text, fields


def check_delimiters(text: str) -> None:
    """Raise RenderError if [ and ] do not pair up within a paragraph"""
    open_at: Optional[int] = None
    for i, char in enumerate(text):
        if char == "[":
            if open_at is not None:
                raise RenderError(f"Unclosed marker starting at offset {open_at}", text)
            open_at = i
        elif char == "]":
            if open_at is None:
                raise RenderError(f"Closing ']' without opening '[' at offset {i}", text)
            open_at = None
    if open_at is not None:
        raise RenderError(f"Unclosed marker starting at offset {open_at}", text)


def replace_span(paragraph: Paragraph, start: int, end: int, value: str) -> None:
    """
    Replace characters [start, end) of the paragraph's run text with value

    The value goes into the first run the span touches; the rest of the span
    is cut out of the following runs, which keep their formatting.
    """
    position = 0
    placed = False
    for run in paragraph.runs:
        text = run.text
        run_start, run_end = position, position + len(text)
        position = run_end
        if run_end <= start or run_start >= end:
            continue
        local_start = max(start, run_start) - run_start
        local_end = min(end, run_end) - run_start
        if not placed:
            run.text = text[:local_start] + value + text[local_end:]
            placed = True
        else:
            run.text = text[:local_start] + text[local_end:]


class _Substitutions:
    """Lookup tables for filled fields, keyed by literal text and by name"""

    def __init__(self, fields: Sequence[Field]):
        filled = [f for f in fields if f.value is not None]
        self.by_literal: Dict[str, str] = {}
        self.by_name: Dict[str, str] = {}
        for field in filled:
            self.by_literal.setdefault(field.original_text, field.value)
            self.by_name[field.name] = field.value
        self.replaced: Dict[str, int] = {f.name: 0 for f in filled}

    def for_named(self, literal: str) -> Optional[str]:
        name = normalize_name(literal)
        value = self.by_literal.get(literal)
        if value is None:
            value = self.by_name.get(name)
        if value is not None and name in self.replaced:
            self.replaced[name] += 1
        return value

    def for_blank(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        value = self.by_name.get(name)
        if value is not None:
            self.replaced[name] += 1
        return value


def _substitute_paragraph(
    paragraph: Paragraph,
    substitutions: _Substitutions,
    blank_names: Optional[Dict[int, Optional[str]]] = None,
    offset: int = 0,
) -> None:
    text = paragraph_text(paragraph)
    if "[" not in text and "]" not in text:
        return
    check_delimiters(text)

    # Right to left so earlier offsets stay valid
    for match in reversed(list(MARKER_PATTERN.finditer(text))):
        content = match.group(1).strip()
        if not content:
            continue
        if BLANK_CONTENT.match(content):
            if blank_names is not None:
                name = blank_names.get(offset + match.start())
            else:
                identity = infer_from_context(context_window(text, match.start(), match.end()))
                name = identity.name if identity else None
            value = substitutions.for_blank(name)
        else:
            value = substitutions.for_named(match.group(1))

        if value is not None:
            replace_span(paragraph, match.start(), match.end(), value)


def regenerate_document(original: bytes, fields: Sequence[Field]) -> bytes:
    """
    Replace [Marker]s with field values in a copy of the original .docx

    Args:
        original: Bytes of the uploaded .docx
        fields: Field list; only fields with a value are substituted

    Returns:
        Bytes of the completed .docx

    Raises:
        DocumentCorruptError: the package cannot be read
        RenderError: a paragraph has unbalanced marker delimiters
    """
    package = DocumentPackage.from_bytes(original)
    substitutions = _Substitutions(fields)

    text, index = package.indexed_paragraphs()
    # Blank markers resolve the same way detection resolved them
    blank_names = {
        marker.start: (marker.identity.name if marker.identity else None)
        for marker in scan_markers(text)
        if marker.is_blank
    }

    for paragraph, offset in index:
        _substitute_paragraph(paragraph, substitutions, blank_names, offset)
    for paragraph in package.header_footer_paragraphs():
        _substitute_paragraph(paragraph, substitutions)

    for name, count in substitutions.replaced.items():
        logger.info("  [%s]: %s", name, f"replaced x{count}" if count else "NOT FOUND")
    if substitutions.replaced and not any(substitutions.replaced.values()):
        logger.warning("No markers were replaced; check that field texts match the document")

    return package.to_bytes()
