"""Shared fixtures for core unit tests"""

import pytest

from knowitall.core.models import (
    Bold, BulletList, CodeBlock, Document, Heading, ListItem, Paragraph, TextRun,
)


def para(*texts, **kwargs) -> Paragraph:
    """Paragraph with one plain run per text."""
    return Paragraph(content=tuple(TextRun(text=t) for t in texts), **kwargs)


@pytest.fixture(name="doc")
def doc_fixture():
    """Three text blocks: 'Hello world', a heading, and a code block; plus a bullet list."""
    return Document(content=(
        para("Hello world"),
        Heading(level=2, content=(TextRun(text="Title", marks=(Bold(),)),)),
        CodeBlock(language="python", content=(TextRun(text="x = 1"),)),
        BulletList(items=(ListItem(content=(para("item"),)),)),
    ))


@pytest.fixture(name="paragraphs")
def paragraphs_fixture():
    return Document(content=(para("first"), para("second"), para("third")))
