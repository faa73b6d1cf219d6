"""Document schema: frozen node and mark variants discriminated on `type`"""

from enum import Enum
from typing import Annotated, ClassVar, Literal, Optional, Union
from urllib.parse import urlparse
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Alignment(str, Enum):
    left = "left"
    center = "center"
    right = "right"


class ListType(str, Enum):
    bullet = "bullet"
    ordered = "ordered"
    task = "task"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


def is_resolved_url(src: str) -> bool:
    """True for absolute http(s) URLs; data-URIs and local paths are still pending."""
    parsed = urlparse(src)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# --- marks ---

class Bold(_Frozen):
    type: Literal["bold"] = "bold"


class Italic(_Frozen):
    type: Literal["italic"] = "italic"


class Underline(_Frozen):
    type: Literal["underline"] = "underline"


class Strike(_Frozen):
    type: Literal["strike"] = "strike"


class Highlight(_Frozen):
    type: Literal["highlight"] = "highlight"
    color: Optional[str] = None


class Subscript(_Frozen):
    type: Literal["subscript"] = "subscript"


class Superscript(_Frozen):
    type: Literal["superscript"] = "superscript"


class Link(_Frozen):
    type: Literal["link"] = "link"
    href: str = Field(min_length=1)


Mark = Annotated[
    Union[Bold, Italic, Underline, Strike, Highlight, Subscript, Superscript, Link],
    Field(discriminator="type"),
]

# Serialization nesting order, outermost first.
MARK_ORDER = ("link", "bold", "italic", "underline", "strike", "highlight", "subscript", "superscript")


class TextRun(_Frozen):
    """A span of text sharing one mark set."""
    type: Literal["text"] = "text"
    text: str = Field(min_length=1)
    marks: tuple[Mark, ...] = ()

    @field_validator("marks")
    @classmethod
    def _canonical_marks(cls, marks: tuple) -> tuple:
        # one mark per type, last wins; stable order so equal sets compare equal
        by_type = {m.type: m for m in marks}
        return tuple(sorted(by_type.values(), key=lambda m: MARK_ORDER.index(m.type)))

    def has_mark(self, mark_type: str) -> bool:
        return any(m.type == mark_type for m in self.marks)


# --- nodes ---

class Node(_Frozen):
    """Base for block nodes. Containers name the field holding their children."""
    children_field:     ClassVar[Optional[str]] = None
    supports_alignment: ClassVar[bool] = False
    is_textblock:       ClassVar[bool] = False

    @property
    def children(self) -> tuple:
        return getattr(self, self.children_field) if self.children_field else ()

    def with_children(self, children) -> "Node":
        """Return a copy holding `children`, re-running schema validation."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data[self.children_field] = tuple(children)
        return type(self)(**data)


class Paragraph(Node):
    type: Literal["paragraph"] = "paragraph"
    content: tuple[TextRun, ...] = ()
    align: Optional[Alignment] = None
    supports_alignment: ClassVar[bool] = True
    is_textblock:       ClassVar[bool] = True


class Heading(Node):
    type: Literal["heading"] = "heading"
    level: int = Field(default=1, ge=1, le=3)
    content: tuple[TextRun, ...] = ()
    align: Optional[Alignment] = None
    supports_alignment: ClassVar[bool] = True
    is_textblock:       ClassVar[bool] = True


class CodeBlock(Node):
    type: Literal["code_block"] = "code_block"
    language: Optional[str] = None
    content: tuple[TextRun, ...] = ()
    is_textblock: ClassVar[bool] = True

    @field_validator("content")
    @classmethod
    def _no_marks(cls, content: tuple) -> tuple:
        if any(run.marks for run in content):
            raise ValueError("code blocks do not accept marks")
        return content


class Image(Node):
    type: Literal["image"] = "image"
    id: str = Field(default_factory=lambda: uuid4().hex)
    src: str = Field(min_length=1)
    alt: Optional[str] = None
    title: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return is_resolved_url(self.src)


class HorizontalRule(Node):
    type: Literal["horizontal_rule"] = "horizontal_rule"


def _starts_with_paragraph(content: tuple) -> tuple:
    if not isinstance(content[0], Paragraph):
        raise ValueError(f"list items must start with a paragraph, not {content[0].type}")
    return content


class ListItem(Node):
    type: Literal["list_item"] = "list_item"
    content: tuple["Block", ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "content"

    @field_validator("content")
    @classmethod
    def _first_paragraph(cls, content: tuple) -> tuple:
        return _starts_with_paragraph(content)


class TaskItem(Node):
    type: Literal["task_item"] = "task_item"
    checked: bool = False
    content: tuple["Block", ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "content"

    @field_validator("content")
    @classmethod
    def _first_paragraph(cls, content: tuple) -> tuple:
        return _starts_with_paragraph(content)


class BulletList(Node):
    type: Literal["bullet_list"] = "bullet_list"
    items: tuple[ListItem, ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "items"


class OrderedList(Node):
    type: Literal["ordered_list"] = "ordered_list"
    start: int = Field(default=1, ge=0)
    items: tuple[ListItem, ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "items"


class TaskList(Node):
    type: Literal["task_list"] = "task_list"
    items: tuple[TaskItem, ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "items"


class Blockquote(Node):
    type: Literal["blockquote"] = "blockquote"
    content: tuple["Block", ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "content"


class TableCell(Node):
    type: Literal["table_cell"] = "table_cell"
    content: tuple[Paragraph, ...] = Field(default=(Paragraph(),), min_length=1)
    children_field: ClassVar[Optional[str]] = "content"


class TableHeader(Node):
    type: Literal["table_header"] = "table_header"
    content: tuple[Paragraph, ...] = Field(default=(Paragraph(),), min_length=1)
    children_field: ClassVar[Optional[str]] = "content"


Cell = Annotated[Union[TableCell, TableHeader], Field(discriminator="type")]


class TableRow(Node):
    type: Literal["table_row"] = "table_row"
    cells: tuple[Cell, ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "cells"


class Table(Node):
    type: Literal["table"] = "table"
    rows: tuple[TableRow, ...] = Field(min_length=1)
    children_field: ClassVar[Optional[str]] = "rows"

    @field_validator("rows")
    @classmethod
    def _uniform_width(cls, rows: tuple) -> tuple:
        widths = {len(row.cells) for row in rows}
        if len(widths) > 1:
            raise ValueError(f"table rows must have the same number of cells, got {sorted(widths)}")
        return rows

    @property
    def width(self) -> int:
        return len(self.rows[0].cells)


Block = Annotated[
    Union[
        Paragraph, Heading, CodeBlock, Image, HorizontalRule,
        BulletList, OrderedList, TaskList, Blockquote, Table,
    ],
    Field(discriminator="type"),
]

TextBlock = Union[Paragraph, Heading, CodeBlock]
LIST_TYPES = {ListType.bullet: BulletList, ListType.ordered: OrderedList, ListType.task: TaskList}


class Document(Node):
    """Root of the tree; an empty document has no blocks."""
    type: Literal["doc"] = "doc"
    content: tuple[Block, ...] = ()
    children_field: ClassVar[Optional[str]] = "content"


for _model in (ListItem, TaskItem, Blockquote, BulletList, OrderedList, TaskList, Document):
    _model.model_rebuild()


# --- addressing ---

class Point(_Frozen):
    """Character `offset` inside the `block`-th text block in document order."""
    block: int = Field(ge=0)
    offset: int = Field(default=0, ge=0)


class Range(_Frozen):
    start: Point
    end: Point

    @classmethod
    def within(cls, block: int, start: int, end: int) -> "Range":
        return cls(start=Point(block=block, offset=start), end=Point(block=block, offset=end))

    @classmethod
    def collapsed(cls, block: int, offset: int = 0) -> "Range":
        return cls.within(block, offset, offset)

    @property
    def empty(self) -> bool:
        return self.start == self.end


class InsertionPoint(_Frozen):
    """Where an asynchronous upload lands, captured when it starts.

    `node_id` names a placeholder image; without one the image is inserted at
    top-level `index`.
    """
    node_id: Optional[str] = None
    index: int = Field(default=0, ge=0)
