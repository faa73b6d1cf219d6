"""Editor commands: pure functions from a Document to a new Document.

Every command either returns a well-formed tree or raises an InvalidCommand
subclass; the input document is never modified (nodes are frozen).
Positions inside text use Point/Range over text blocks in document order;
block insertions take a top-level index (None appends).
"""

from contextlib import contextmanager
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from knowitall.core.errors import InvalidAttrs, InvalidCommand, InvalidDimensions, InvalidRange
from knowitall.core.models import (
    LIST_TYPES,
    Alignment, Blockquote, BulletList, CodeBlock, Document, Heading, HorizontalRule,
    Image, ListItem, ListType, Link, Node, OrderedList, Paragraph, Point, Range,
    Table, TableCell, TableHeader, TableRow, TaskItem, TaskList, TextRun,
)
from knowitall.core.utils.text import normalize_runs, slice_runs, split_runs, text_length
from knowitall.core.utils.tree import NodePath, ancestors, replace, textblocks


BLOCK_TYPES = ("paragraph", "heading", "code_block")
HEADING_LEVELS = (1, 2, 3)


@contextmanager
def _schema_guard(action: str):
    """Turn schema violations raised while rebuilding the tree into InvalidCommand."""
    try:
        yield
    except ValidationError as e:
        raise InvalidCommand(f"Cannot {action}: {e.errors()[0]['msg']}") from e


def _rewrite(doc: Document, updates: list[tuple[NodePath, Node]], action: str) -> Document:
    with _schema_guard(action):
        for path, node in updates:
            doc = replace(doc, path, node)
    logger.debug("{}: {} node(s) rewritten", action, len(updates))
    return doc


# --- addressing ---

def _locate(doc: Document, point: Point) -> tuple[NodePath, Node]:
    blocks = textblocks(doc)
    if point.block >= len(blocks):
        raise InvalidRange(f"Block {point.block} does not exist ({len(blocks)} text blocks)")
    path, block = blocks[point.block]
    if point.offset > text_length(block.content):
        raise InvalidRange(f"Offset {point.offset} is past the end of block {point.block}")
    return path, block


def _spans(doc: Document, rng: Range) -> list[tuple[NodePath, Node, int, int]]:
    """(path, block, start, end) for every text block the range touches."""
    s, e = rng.start, rng.end
    if (s.block, s.offset) > (e.block, e.offset):
        raise InvalidRange("Range start is after its end")
    _locate(doc, s)
    _locate(doc, e)
    blocks = textblocks(doc)
    spans = []
    for i in range(s.block, e.block + 1):
        path, block = blocks[i]
        start = s.offset if i == s.block else 0
        end = e.offset if i == e.block else text_length(block.content)
        spans.append((path, block, start, end))
    return spans


def _top_level_span(doc: Document, rng: Range) -> tuple[int, int]:
    spans = _spans(doc, rng)
    return spans[0][0][0], spans[-1][0][0]


def _insert(doc: Document, node: Node, at: Optional[int]) -> Document:
    size = len(doc.content)
    at = size if at is None else at
    if not 0 <= at <= size:
        raise InvalidRange(f"Insertion index {at} is outside a document of {size} blocks")
    return doc.with_children(doc.content[:at] + (node,) + doc.content[at:])


# --- marks ---

def _add_mark(run: TextRun, mark) -> TextRun:
    return TextRun(text=run.text, marks=tuple(m for m in run.marks if m.type != mark.type) + (mark,))


def _remove_mark(run: TextRun, mark_type: str) -> TextRun:
    return TextRun(text=run.text, marks=tuple(m for m in run.marks if m.type != mark_type))


def _markable_spans(doc: Document, rng: Range) -> list[tuple[NodePath, Node, int, int]]:
    return [span for span in _spans(doc, rng) if not isinstance(span[1], CodeBlock)]


def _map_runs(doc: Document, spans: list, fn: Callable[[TextRun], TextRun], action: str) -> Document:
    updates = []
    for path, block, start, end in spans:
        before, middle, after = slice_runs(block.content, start, end)
        if not middle:
            continue
        content = normalize_runs(before + tuple(fn(r) for r in middle) + after)
        updates.append((path, block.model_copy(update={"content": content})))
    return _rewrite(doc, updates, action)


def toggle_mark(doc: Document, mark, rng: Range) -> Document:
    """Add `mark` across the range unless every selected run already has it, else remove it."""
    if rng.empty:
        return doc
    spans = _markable_spans(doc, rng)
    selected = [r for _, block, s, e in spans for r in slice_runs(block.content, s, e)[1]]
    if not selected:
        return doc
    if all(r.has_mark(mark.type) for r in selected):
        return _map_runs(doc, spans, lambda r: _remove_mark(r, mark.type), f"remove {mark.type}")
    return _map_runs(doc, spans, lambda r: _add_mark(r, mark), f"add {mark.type}")


def set_link(doc: Document, href: str, rng: Range) -> Document:
    """Link the selected text. Any non-empty href is accepted."""
    if not href:
        raise InvalidAttrs("Link href must be non-empty")
    if rng.empty:
        return doc
    spans = _markable_spans(doc, rng)
    link = Link(href=href)
    return _map_runs(doc, spans, lambda r: _add_mark(r, link), "set link")


def unset_link(doc: Document, rng: Range) -> Document:
    if rng.empty:
        return doc
    spans = _markable_spans(doc, rng)
    return _map_runs(doc, spans, lambda r: _remove_mark(r, "link"), "unset link")


# --- block attributes ---

def _convert(block: Node, block_type: str, attrs: dict[str, Any]) -> Node:
    align = getattr(block, "align", None)
    if block_type == "paragraph":
        return Paragraph(content=block.content, align=align)
    if block_type == "heading":
        return Heading(level=attrs["level"], content=block.content, align=align)
    plain = normalize_runs(TextRun(text=r.text) for r in block.content)
    return CodeBlock(language=attrs.get("language", getattr(block, "language", None)), content=plain)


def set_block_type(doc: Document, block_type: str, attrs: Optional[dict[str, Any]], rng: Range) -> Document:
    """Convert every text block the range touches into a paragraph, heading, or code block."""
    attrs = dict(attrs or {})
    if block_type not in BLOCK_TYPES:
        raise InvalidAttrs(f"Unknown block type {block_type!r}; expected one of {', '.join(BLOCK_TYPES)}")
    if block_type == "heading":
        level = attrs.get("level")
        if isinstance(level, bool) or level not in HEADING_LEVELS:
            raise InvalidAttrs(f"Heading level must be 1, 2 or 3, got {level!r}")
    updates = [(path, _convert(block, block_type, attrs)) for path, block, _, _ in _spans(doc, rng)]
    return _rewrite(doc, updates, f"convert to {block_type}")


def set_alignment(doc: Document, alignment: Optional[str], rng: Range) -> Document:
    """Align the touched blocks that support alignment; `None` clears it."""
    try:
        value = Alignment(alignment) if alignment is not None else None
    except ValueError as e:
        raise InvalidAttrs(f"Alignment must be left, center or right, got {alignment!r}") from e
    updates = [
        (path, block.model_copy(update={"align": value}))
        for path, block, _, _ in _spans(doc, rng)
        if block.supports_alignment
    ]
    return _rewrite(doc, updates, "set alignment")


# --- wrapping ---

def _make_item(content: tuple, list_type: ListType, checked: bool = False) -> Node:
    if list_type == ListType.task:
        return TaskItem(checked=checked, content=content)
    return ListItem(content=content)


def toggle_list(doc: Document, list_type: str, rng: Range) -> Document:
    """Wrap the touched top-level blocks in a list, or unwrap them if already that list type.

    Lists of another type inside the range are merged into the new list.
    """
    try:
        list_type = ListType(list_type)
    except ValueError as e:
        raise InvalidAttrs(f"Unknown list type {list_type!r}") from e
    target = LIST_TYPES[list_type]
    lo, hi = _top_level_span(doc, rng)
    touched = doc.content[lo:hi + 1]

    with _schema_guard(f"toggle {list_type.value} list"):
        if all(isinstance(b, target) for b in touched):
            replacement = tuple(blk for lst in touched for item in lst.items for blk in item.content)
        else:
            items = []
            for block in touched:
                if isinstance(block, (BulletList, OrderedList, TaskList)):
                    items.extend(
                        _make_item(item.content, list_type, getattr(item, "checked", False))
                        for item in block.items
                    )
                elif isinstance(block, Paragraph):
                    items.append(_make_item((block,), list_type))
                else:
                    raise InvalidCommand(f"Cannot wrap a {block.type} in a list")
            replacement = (target(items=tuple(items)),)
        doc = doc.with_children(doc.content[:lo] + replacement + doc.content[hi + 1:])
    logger.debug("toggle {} list over blocks {}..{}", list_type.value, lo, hi)
    return doc


def toggle_blockquote(doc: Document, rng: Range) -> Document:
    lo, hi = _top_level_span(doc, rng)
    touched = doc.content[lo:hi + 1]
    with _schema_guard("toggle blockquote"):
        if all(isinstance(b, Blockquote) for b in touched):
            replacement = tuple(child for quote in touched for child in quote.content)
        else:
            replacement = (Blockquote(content=touched),)
        return doc.with_children(doc.content[:lo] + replacement + doc.content[hi + 1:])


def _task_item_at(doc: Document, point: Point) -> tuple[NodePath, TaskItem]:
    path, _ = _locate(doc, point)
    for item_path, node in reversed(ancestors(doc, path)):
        if isinstance(node, TaskItem):
            return item_path, node
    raise InvalidCommand(f"Block {point.block} is not inside a task item")


def set_task_checked(doc: Document, point: Point, checked: bool) -> Document:
    """Set `checked` on the innermost task item containing the point."""
    path, item = _task_item_at(doc, point)
    return _rewrite(doc, [(path, item.model_copy(update={"checked": checked}))], "check task")


def toggle_task_item(doc: Document, point: Point) -> Document:
    path, item = _task_item_at(doc, point)
    return _rewrite(doc, [(path, item.model_copy(update={"checked": not item.checked}))], "toggle task")


# --- insert / delete ---

def insert_table(
    doc: Document,
    rows: int,
    cols: int,
    at: Optional[int] = None,
    with_header_row: bool = False,
    ) -> Document:
    """Insert a rows x cols grid of empty cells."""
    if not all(isinstance(n, int) and not isinstance(n, bool) for n in (rows, cols)) or rows < 1 or cols < 1:
        raise InvalidDimensions(f"Table needs at least 1 row and 1 column, got {rows!r}x{cols!r}")

    def _row(header: bool) -> TableRow:
        cell = TableHeader if header else TableCell
        return TableRow(cells=tuple(cell() for _ in range(cols)))

    table = Table(rows=tuple(_row(with_header_row and i == 0) for i in range(rows)))
    return _insert(doc, table, at)


def insert_image(
    doc: Document,
    src: str,
    alt: Optional[str] = None,
    at: Optional[int] = None,
    node_id: Optional[str] = None,
    ) -> Document:
    """Insert an image block; `src` may be a data-URI placeholder awaiting upload."""
    if not src:
        raise InvalidAttrs("Image src must be non-empty")
    image = Image(src=src, alt=alt) if node_id is None else Image(id=node_id, src=src, alt=alt)
    return _insert(doc, image, at)


def insert_paragraph(doc: Document, text: str = "", at: Optional[int] = None) -> Document:
    return _insert(doc, Paragraph(content=(TextRun(text=text),) if text else ()), at)


def insert_horizontal_rule(doc: Document, at: Optional[int] = None) -> Document:
    return _insert(doc, HorizontalRule(), at)


def insert_text(doc: Document, point: Point, text: str) -> Document:
    """Insert text at a point, continuing the marks of the preceding run (links excepted)."""
    path, block = _locate(doc, point)
    if not text:
        return doc
    before, after = split_runs(block.content, point.offset)
    marks = ()
    if before and not isinstance(block, CodeBlock):
        marks = tuple(m for m in before[-1].marks if m.type != "link")
    content = normalize_runs(before + (TextRun(text=text, marks=marks),) + after)
    return _rewrite(doc, [(path, block.model_copy(update={"content": content}))], "insert text")


def delete_text(doc: Document, rng: Range) -> Document:
    """Delete text inside a single text block."""
    spans = _spans(doc, rng)
    if len(spans) > 1:
        raise InvalidRange("Deleting text across blocks is not supported")
    path, block, start, end = spans[0]
    if start == end:
        return doc
    before, _, after = slice_runs(block.content, start, end)
    return _rewrite(doc, [(path, block.model_copy(update={"content": normalize_runs(before + after)}))], "delete text")


def delete_block(doc: Document, index: int) -> Document:
    if not 0 <= index < len(doc.content):
        raise InvalidRange(f"Block {index} does not exist ({len(doc.content)} blocks)")
    return doc.with_children(doc.content[:index] + doc.content[index + 1:])
