"""Markdown import: frontmatter extraction and markdown-it token to Document mapping"""

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from markdown_it import MarkdownIt

from knowitall.core.models import (
    Blockquote, Bold, BulletList, CodeBlock, Document, Heading, Highlight, HorizontalRule,
    Image, Italic, Link, ListItem, OrderedList, Paragraph, Strike, Subscript, Superscript,
    Table, TableCell, TableHeader, TableRow, TaskItem, TaskList, TextRun, Underline,
)
from knowitall.core.utils.text import normalize_runs, plain_text, split_runs


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
HTML_MARK_RE = re.compile(r'^<(/?)(u|mark|sub|sup)\s*>$', re.IGNORECASE)
TASK_RE = re.compile(r'^\[([ xX])\] ')

HTML_MARKS = {"u": Underline, "mark": Highlight, "sub": Subscript, "sup": Superscript}
TOKEN_MARKS = {"strong": Bold, "em": Italic, "s": Strike}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


# --- inline ---

def _inline(token) -> tuple[tuple[TextRun, ...], list[Image]]:
    """Map an inline token's children to text runs; images are collected separately."""
    runs: list[TextRun] = []
    images: list[Image] = []
    active: list = []

    def _close(mark_type: str) -> None:
        for i in range(len(active) - 1, -1, -1):
            if active[i].type == mark_type:
                del active[i]
                return

    for child in token.children or []:
        kind = child.type
        if kind in ("text", "code_inline") and child.content:
            runs.append(TextRun(text=child.content, marks=tuple(active)))
        elif kind in ("softbreak", "hardbreak"):
            runs.append(TextRun(text=" " if kind == "softbreak" else "\n", marks=tuple(active)))
        elif kind.endswith("_open") and kind[:-5] in TOKEN_MARKS:
            active.append(TOKEN_MARKS[kind[:-5]]())
        elif kind.endswith("_close") and kind[:-6] in TOKEN_MARKS:
            _close(TOKEN_MARKS[kind[:-6]]().type)
        elif kind == "link_open":
            if href := child.attrGet("href"):
                active.append(Link(href=href))
        elif kind == "link_close":
            _close("link")
        elif kind == "html_inline":
            if m := HTML_MARK_RE.match(child.content.strip()):
                mark = HTML_MARKS[m.group(2).lower()]()
                if m.group(1):
                    _close(mark.type)
                else:
                    active.append(mark)
        elif kind == "image":
            if src := child.attrGet("src"):
                images.append(Image(src=src, alt=child.content or None, title=child.attrGet("title") or None))
    return normalize_runs(runs), images


# --- blocks ---

def _ensure_paragraph(content: list) -> tuple:
    """List items must open with a paragraph."""
    if not content or not isinstance(content[0], Paragraph):
        return (Paragraph(),) + tuple(content)
    return tuple(content)


def _task_state(paragraph: Paragraph) -> Optional[bool]:
    """True/False for a '[x] ' / '[ ] ' prefix, None if the paragraph is not a task."""
    m = TASK_RE.match(plain_text(paragraph.content))
    return None if m is None else m.group(1) in "xX"


def _make_list(kind: str, contents: list[tuple], start: int):
    contents = [_ensure_paragraph(c) for c in contents]
    if kind == "bullet_list_open" and all(_task_state(c[0]) is not None for c in contents):
        items = []
        for c in contents:
            _, rest = split_runs(c[0].content, 4)
            first = c[0].model_copy(update={"content": rest})
            items.append(TaskItem(checked=_task_state(c[0]), content=(first,) + c[1:]))
        return TaskList(items=tuple(items))
    items = tuple(ListItem(content=c) for c in contents)
    if kind == "ordered_list_open":
        return OrderedList(start=start, items=items)
    return BulletList(items=items)


def _parse_items(tokens: list, i: int, close_type: str) -> tuple[list[tuple], int]:
    contents = []
    while tokens[i].type != close_type:
        if tokens[i].type == "list_item_open":
            content, i = _parse_blocks(tokens, i + 1, "list_item_close")
            contents.append(content)
        else:
            i += 1
    return contents, i + 1


def _parse_table(tokens: list, i: int) -> tuple[Table, int]:
    rows, cells = [], []
    while tokens[i].type != "table_close":
        kind = tokens[i].type
        if kind == "tr_open":
            cells = []
        elif kind in ("th_open", "td_open"):
            runs, _ = _inline(tokens[i + 1])
            cell = TableHeader if kind == "th_open" else TableCell
            cells.append(cell(content=(Paragraph(content=runs),)))
        elif kind == "tr_close":
            rows.append(TableRow(cells=tuple(cells)))
        i += 1
    return Table(rows=tuple(rows)), i + 1


def _parse_blocks(tokens: list, i: int, close_type: Optional[str] = None) -> tuple[list, int]:
    """Consume block tokens from i until close_type (or the end); return (blocks, next index)."""
    blocks = []
    while i < len(tokens):
        tok = tokens[i]
        kind = tok.type
        if kind == close_type:
            return blocks, i + 1
        if kind in ("paragraph_open", "heading_open"):
            runs, images = _inline(tokens[i + 1])
            if kind == "heading_open":
                blocks.append(Heading(level=min(int(tok.tag[1:]), 3), content=runs))
            elif runs or not images:
                blocks.append(Paragraph(content=runs))
            blocks.extend(images)
            i += 3
        elif kind in ("fence", "code_block"):
            language = tok.info.strip().split()[0] if tok.info.strip() else None
            code = tok.content.rstrip("\n")
            blocks.append(CodeBlock(language=language, content=(TextRun(text=code),) if code else ()))
            i += 1
        elif kind == "hr":
            blocks.append(HorizontalRule())
            i += 1
        elif kind == "blockquote_open":
            inner, i = _parse_blocks(tokens, i + 1, "blockquote_close")
            blocks.append(Blockquote(content=tuple(inner) or (Paragraph(),)))
        elif kind in ("bullet_list_open", "ordered_list_open"):
            start = int(tok.attrGet("start") or 1)
            contents, i = _parse_items(tokens, i + 1, kind.replace("_open", "_close"))
            blocks.append(_make_list(kind, contents, start))
        elif kind == "table_open":
            table, i = _parse_table(tokens, i + 1)
            blocks.append(table)
        else:
            i += 1
    return blocks, i


def parse_markdown(text: str, parser_config: str = "gfm-like") -> tuple[dict[str, Any], Document]:
    """Split frontmatter and map the Markdown body to a Document.

    Headings deeper than level 3 are clamped to 3; images become block images.
    """
    frontmatter, body = _strip_frontmatter(text)
    tokens = _make_parser(parser_config).parse(body)
    blocks, _ = _parse_blocks(tokens, 0)
    return frontmatter, Document(content=tuple(blocks))


def parse_file(path: Path, parser_config: str = "gfm-like") -> tuple[dict[str, Any], Document]:
    """Parse a single Markdown draft file."""
    return parse_markdown(path.read_text(encoding="utf-8"), parser_config)
