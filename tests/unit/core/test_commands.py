"""Unit tests for core/commands.py"""

import pytest

from knowitall.core.commands import (
    delete_block, delete_text, insert_horizontal_rule, insert_image, insert_paragraph,
    insert_table, insert_text, set_alignment, set_block_type, set_link, set_task_checked,
    toggle_blockquote, toggle_list, toggle_mark, toggle_task_item, unset_link,
)
from knowitall.core.errors import InvalidAttrs, InvalidCommand, InvalidDimensions, InvalidRange
from knowitall.core.models import (
    Alignment, Blockquote, Bold, BulletList, CodeBlock, Document, Heading, HorizontalRule,
    Image, Italic, Link, OrderedList, Paragraph, Point, Range, Subscript, Superscript,
    Table, TableHeader, TaskItem, TaskList, TextRun,
)
from knowitall.core.utils.text import plain_text


def _runs(block) -> list[tuple[str, list[str]]]:
    return [(r.text, [m.type for m in r.marks]) for r in block.content]


# --- marks ---

def test_toggle_mark_adds_then_removes(doc):
    rng = Range.within(0, 0, 5)
    bold = toggle_mark(doc, Bold(), rng)
    assert _runs(bold.content[0]) == [("Hello", ["bold"]), (" world", [])]
    assert toggle_mark(bold, Bold(), rng) == doc


def test_toggle_mark_partial_selection_adds(doc):
    """A range only partly bold becomes fully bold."""
    partly = toggle_mark(doc, Bold(), Range.within(0, 0, 3))
    full = toggle_mark(partly, Bold(), Range.within(0, 0, 5))
    assert _runs(full.content[0]) == [("Hello", ["bold"]), (" world", [])]


def test_toggle_mark_empty_range_is_noop(doc):
    assert toggle_mark(doc, Italic(), Range.collapsed(0, 2)) is doc


def test_empty_range_on_empty_document_is_noop():
    doc = Document()
    rng = Range.collapsed(0)
    assert toggle_mark(doc, Bold(), rng) is doc
    assert set_link(doc, "https://example.com", rng) is doc
    assert unset_link(doc, rng) is doc


def test_toggle_mark_skips_code_blocks(doc):
    rng = Range(start=Point(block=0, offset=0), end=Point(block=2, offset=5))
    out = toggle_mark(doc, Italic(), rng)
    assert out.content[2] == doc.content[2]
    assert all(r.has_mark("italic") for r in out.content[0].content)
    assert all(r.has_mark("italic") for r in out.content[1].content)


def test_toggle_superscript_twice_keeps_subscript():
    doc = Document(content=(Paragraph(content=(
        TextRun(text="H"), TextRun(text="2", marks=(Subscript(),)), TextRun(text="O"),
    )),))
    rng = Range.within(0, 1, 2)
    once = toggle_mark(doc, Superscript(), rng)
    assert _runs(once.content[0])[1] == ("2", ["subscript", "superscript"])
    assert toggle_mark(once, Superscript(), rng) == doc


def test_toggle_mark_rejects_bad_range(doc):
    with pytest.raises(InvalidRange):
        toggle_mark(doc, Bold(), Range.within(0, 0, 99))
    with pytest.raises(InvalidRange):
        toggle_mark(doc, Bold(), Range.within(9, 0, 1))


def test_set_and_unset_link(doc):
    rng = Range.within(0, 6, 11)
    linked = set_link(doc, "https://example.com", rng)
    assert linked.content[0].content[1].marks == (Link(href="https://example.com"),)
    assert unset_link(linked, rng) == doc


def test_set_link_accepts_any_nonempty_href(doc):
    linked = set_link(doc, "javascript:void(0)", Range.within(0, 0, 5))
    assert linked.content[0].content[0].marks[0].href == "javascript:void(0)"
    with pytest.raises(InvalidAttrs):
        set_link(doc, "", Range.within(0, 0, 5))


# --- block attributes ---

def test_set_block_type_heading(doc):
    out = set_block_type(doc, "heading", {"level": 3}, Range.collapsed(0))
    assert isinstance(out.content[0], Heading)
    assert out.content[0].level == 3
    assert plain_text(out.content[0].content) == "Hello world"


@pytest.mark.parametrize("attrs", [{"level": 4}, {"level": 0}, {}, {"level": True}])
def test_set_block_type_bad_level(doc, attrs):
    with pytest.raises(InvalidAttrs):
        set_block_type(doc, "heading", attrs, Range.collapsed(0))


def test_set_block_type_unknown_type(doc):
    with pytest.raises(InvalidAttrs):
        set_block_type(doc, "table", None, Range.collapsed(0))


def test_set_block_type_code_strips_marks(doc):
    out = set_block_type(doc, "code_block", {"language": "text"}, Range.collapsed(1))
    assert out.content[1] == CodeBlock(language="text", content=(TextRun(text="Title"),))


def test_set_alignment(doc):
    rng = Range(start=Point(block=0), end=Point(block=2))
    out = set_alignment(doc, "center", rng)
    assert out.content[0].align == Alignment.center
    assert out.content[1].align == Alignment.center
    assert out.content[2] == doc.content[2]
    assert set_alignment(out, None, rng) == doc


def test_set_alignment_rejects_unknown(doc):
    with pytest.raises(InvalidAttrs):
        set_alignment(doc, "justify", Range.collapsed(0))


# --- lists ---

def test_toggle_list_wraps_and_unwraps(paragraphs):
    rng = Range(start=Point(block=0), end=Point(block=1))
    wrapped = toggle_list(paragraphs, "bullet", rng)
    assert isinstance(wrapped.content[0], BulletList)
    assert len(wrapped.content[0].items) == 2
    assert wrapped.content[1] == paragraphs.content[2]
    assert toggle_list(wrapped, "bullet", rng) == paragraphs


def test_toggle_list_converts_type(paragraphs):
    rng = Range(start=Point(block=0), end=Point(block=2))
    bullets = toggle_list(paragraphs, "bullet", rng)
    ordered = toggle_list(bullets, "ordered", rng)
    assert isinstance(ordered.content[0], OrderedList)
    assert len(ordered.content[0].items) == 3


def test_toggle_list_rejects_non_paragraph(doc):
    with pytest.raises(InvalidCommand):
        toggle_list(doc, "bullet", Range.collapsed(1))
    with pytest.raises(InvalidAttrs):
        toggle_list(doc, "numbered", Range.collapsed(0))


def test_task_items(paragraphs):
    tasks = toggle_list(paragraphs, "task", Range.collapsed(0))
    assert isinstance(tasks.content[0], TaskList)
    checked = toggle_task_item(tasks, Point(block=0))
    assert checked.content[0].items[0].checked is True
    assert set_task_checked(checked, Point(block=0), False) == tasks


def test_toggle_task_item_outside_task_list(paragraphs):
    with pytest.raises(InvalidCommand):
        toggle_task_item(paragraphs, Point(block=0))


def test_toggle_list_keeps_checked_state_within_tasks(paragraphs):
    tasks = toggle_list(paragraphs, "task", Range(start=Point(block=0), end=Point(block=1)))
    tasks = toggle_task_item(tasks, Point(block=1))
    assert [i.checked for i in tasks.content[0].items] == [False, True]
    assert isinstance(tasks.content[0].items[1], TaskItem)


def test_toggle_blockquote(paragraphs):
    rng = Range(start=Point(block=1), end=Point(block=2))
    quoted = toggle_blockquote(paragraphs, rng)
    assert len(quoted.content) == 2
    assert isinstance(quoted.content[1], Blockquote)
    assert toggle_blockquote(quoted, rng) == paragraphs


# --- insert / delete ---

def test_insert_table_on_empty_document():
    out = insert_table(Document(), 3, 3)
    table = out.content[0]
    assert isinstance(table, Table)
    assert len(table.rows) == 3
    assert all(len(row.cells) == 3 for row in table.rows)


def test_insert_table_header_row():
    table = insert_table(Document(), 2, 2, with_header_row=True).content[0]
    assert all(isinstance(c, TableHeader) for c in table.rows[0].cells)
    assert not any(isinstance(c, TableHeader) for c in table.rows[1].cells)


@pytest.mark.parametrize("rows, cols", [(0, 3), (3, 0), (-1, 2), (2.5, 2), (True, 2)])
def test_insert_table_bad_dimensions(rows, cols):
    doc = Document()
    with pytest.raises(InvalidDimensions):
        insert_table(doc, rows, cols)


def test_insert_image_and_rule_positions(paragraphs):
    out = insert_image(paragraphs, "https://x/y.png", alt="y", at=1)
    assert isinstance(out.content[1], Image)
    out = insert_horizontal_rule(out)
    assert isinstance(out.content[-1], HorizontalRule)
    with pytest.raises(InvalidRange):
        insert_paragraph(paragraphs, "x", at=10)


def test_insert_image_with_node_id(paragraphs):
    out = insert_image(paragraphs, "data:image/png;base64,AA==", node_id="abc", at=0)
    assert out.content[0].id == "abc"


def test_insert_text_continues_marks_except_link(doc):
    out = insert_text(doc, Point(block=1, offset=5), "!")
    assert _runs(out.content[1]) == [("Title!", ["bold"])]
    linked = set_link(doc, "/x", Range.within(0, 0, 5))
    out = insert_text(linked, Point(block=0, offset=5), "!")
    assert _runs(out.content[0])[1] == ("! world", [])


def test_insert_text_into_empty_paragraph():
    doc = Document(content=(Paragraph(),))
    out = insert_text(doc, Point(block=0), "hi")
    assert plain_text(out.content[0].content) == "hi"


def test_delete_text(doc):
    out = delete_text(doc, Range.within(0, 5, 11))
    assert plain_text(out.content[0].content) == "Hello"
    with pytest.raises(InvalidRange):
        delete_text(doc, Range(start=Point(block=0), end=Point(block=1)))


def test_delete_block(paragraphs):
    out = delete_block(paragraphs, 1)
    assert [plain_text(b.content) for b in out.content] == ["first", "third"]
    with pytest.raises(InvalidRange):
        delete_block(paragraphs, 3)


def test_failed_command_leaves_input_unchanged(doc):
    before = doc.model_dump()
    with pytest.raises(InvalidCommand):
        set_block_type(doc, "heading", {"level": 9}, Range.collapsed(0))
    assert doc.model_dump() == before
