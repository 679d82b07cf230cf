"""Shared test fixtures for the docfill test suite."""

import asyncio
import io
import os

# Tests never talk to a real model
os.environ["OPENAI_API_KEY"] = ""

import pytest
from docx import Document
from langchain_core.messages import AIMessage

from docfill.models import Field, FieldType


SAFE_TEXT = """SAFE
(Simple Agreement for Future Equity)

THIS CERTIFIES THAT in exchange for the payment by [Investor Name] (the "Investor")
of $[Purchase Amount] (the "Purchase Amount") on or about [Date of Safe],
[Company Name], a [State of Incorporation] corporation (the "Company"),
issues to the Investor the right to certain shares of the Company's Capital Stock.

The "Post-Money Valuation Cap" is $[Post-Money Valuation Cap].
"""


class FakeChatModel:
    """Stands in for ChatOpenAI: records calls and answers from a script"""

    def __init__(self, replies=None, error=None, delay=0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.replies.pop(0) if self.replies else "UNCLEAR")


def build_docx(paragraphs, table_rows=None, header_text=None) -> bytes:
    """
    Build a .docx in memory

    Each paragraph is a string, or a list of run texts; the second run of a
    multi-run paragraph is bold so formatting survival can be checked.
    """
    document = Document()
    for paragraph in paragraphs:
        if isinstance(paragraph, str):
            document.add_paragraph(paragraph)
            continue
        p = document.add_paragraph()
        for i, text in enumerate(paragraph):
            run = p.add_run(text)
            run.bold = i == 1

    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, text in enumerate(row):
                table.cell(r, c).text = text

    if header_text is not None:
        document.sections[0].header.paragraphs[0].text = header_text

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_field(name, type=FieldType.TEXT, description=None, original_text=None, value=None) -> Field:
    return Field(
        name=name,
        original_text=original_text or name,
        type=type,
        description=description or name.replace("_", " ").title(),
        value=value,
    )


@pytest.fixture
def safe_text():
    return SAFE_TEXT


@pytest.fixture
def fake_llm():
    return FakeChatModel


@pytest.fixture
def safe_docx():
    return build_docx([
        "SAFE (Simple Agreement for Future Equity)",
        "THIS CERTIFIES THAT in exchange for the payment by [Investor Name] (the Investor)",
        "of $[Purchase Amount], [Company Name] issues to the Investor certain shares.",
    ])
