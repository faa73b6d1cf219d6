"""Serialization: HTML markup for publishing, plain text/excerpt, and Markdown export"""

from html import escape
from pathlib import Path

import yaml

from knowitall.core.models import (
    Blockquote, BulletList, CodeBlock, Document, Heading, HorizontalRule, Image,
    ListItem, Node, OrderedList, Paragraph, Table, TableCell, TableHeader, TableRow,
    TaskItem, TaskList, TextRun,
)
from knowitall.core.utils.slug import slugify
from knowitall.core.utils.text import plain_text
from knowitall.core.utils.tree import textblocks
from knowitall.crud.models import Post


_HTML_TAGS = {
    "bold": "strong", "italic": "em", "underline": "u", "strike": "s",
    "highlight": "mark", "subscript": "sub", "superscript": "sup",
}
_MD_WRAPS = {
    "bold": ("**", "**"), "italic": ("*", "*"), "strike": ("~~", "~~"),
    "underline": ("<u>", "</u>"), "highlight": ("<mark>", "</mark>"),
    "subscript": ("<sub>", "</sub>"), "superscript": ("<sup>", "</sup>"),
}


# --- HTML ---

def _open_tag(mark) -> str:
    if mark.type == "link":
        return f'<a href="{escape(mark.href)}" target="_blank" rel="noopener noreferrer nofollow">'
    if mark.type == "highlight" and mark.color:
        return f'<mark data-color="{escape(mark.color)}" style="background-color: {escape(mark.color)}">'
    return f"<{_HTML_TAGS[mark.type]}>"


def _close_tag(mark) -> str:
    return "</a>" if mark.type == "link" else f"</{_HTML_TAGS[mark.type]}>"


def _inline_html(runs: tuple[TextRun, ...]) -> str:
    out = []
    for run in runs:
        text = escape(run.text, quote=False)
        for mark in reversed(run.marks):
            text = _open_tag(mark) + text + _close_tag(mark)
        out.append(text)
    return "".join(out)


def _align(node: Node) -> str:
    align = getattr(node, "align", None)
    return f' style="text-align: {align.value}"' if align else ""


def _children_html(node: Node) -> str:
    return "".join(_html(child) for child in node.children)


def _html(node: Node) -> str:
    if isinstance(node, Paragraph):
        return f"<p{_align(node)}>{_inline_html(node.content)}</p>"
    if isinstance(node, Heading):
        return f"<h{node.level}{_align(node)}>{_inline_html(node.content)}</h{node.level}>"
    if isinstance(node, CodeBlock):
        lang = f' class="language-{escape(node.language)}"' if node.language else ""
        return f"<pre><code{lang}>{escape(plain_text(node.content), quote=False)}</code></pre>"
    if isinstance(node, Image):
        alt = f' alt="{escape(node.alt)}"' if node.alt else ""
        title = f' title="{escape(node.title)}"' if node.title else ""
        return f'<img src="{escape(node.src)}"{alt}{title}>'
    if isinstance(node, HorizontalRule):
        return "<hr>"
    if isinstance(node, BulletList):
        return f"<ul>{_children_html(node)}</ul>"
    if isinstance(node, OrderedList):
        start = f' start="{node.start}"' if node.start != 1 else ""
        return f"<ol{start}>{_children_html(node)}</ol>"
    if isinstance(node, TaskList):
        return f'<ul data-type="taskList">{_children_html(node)}</ul>'
    if isinstance(node, ListItem):
        return f"<li>{_children_html(node)}</li>"
    if isinstance(node, TaskItem):
        checked = " checked" if node.checked else ""
        return (
            f'<li data-type="taskItem" data-checked="{str(node.checked).lower()}">'
            f'<label><input type="checkbox"{checked}></label><div>{_children_html(node)}</div></li>'
        )
    if isinstance(node, Blockquote):
        return f"<blockquote>{_children_html(node)}</blockquote>"
    if isinstance(node, Table):
        return f"<table><tbody>{_children_html(node)}</tbody></table>"
    if isinstance(node, TableRow):
        return f"<tr>{_children_html(node)}</tr>"
    if isinstance(node, TableHeader):
        return f"<th>{_children_html(node)}</th>"
    if isinstance(node, TableCell):
        return f"<td>{_children_html(node)}</td>"
    if isinstance(node, Document):
        return _children_html(node)
    raise TypeError(f"Cannot serialize node type {node.type!r}")


def to_html(doc: Document) -> str:
    """Flat HTML markup of the document, as stored on publish."""
    return _html(doc)


# --- text ---

def to_text(doc: Document) -> str:
    """Plain text of every text block, separated by blank lines."""
    return "\n\n".join(plain_text(block.content) for _, block in textblocks(doc))


def excerpt(doc: Document, length: int = 200) -> str:
    return to_text(doc)[:length] + "..."


# --- Markdown ---

def _inline_md(runs: tuple[TextRun, ...]) -> str:
    out = []
    for run in runs:
        text = run.text
        for mark in reversed(run.marks):
            if mark.type == "link":
                text = f"[{text}]({mark.href})"
            else:
                opener, closer = _MD_WRAPS[mark.type]
                text = f"{opener}{text}{closer}"
        out.append(text)
    return "".join(out)


def _item_md(marker: str, item: Node) -> str:
    """Render a list item, indenting continuation lines under the marker."""
    parts = []
    for i, block in enumerate(item.content):
        if i:
            parts.append("\n" if isinstance(block, (BulletList, OrderedList, TaskList)) else "\n\n")
        parts.append(_md(block))
    lines = "".join(parts).split("\n")
    pad = " " * len(marker)
    return marker + lines[0] + "".join("\n" + (pad + line if line else "") for line in lines[1:])


def _cell_md(cell: Node) -> str:
    return "<br>".join(_inline_md(p.content) for p in cell.content).replace("|", "\\|")


def _md(node: Node) -> str:
    if isinstance(node, Paragraph):
        return _inline_md(node.content)
    if isinstance(node, Heading):
        return f"{'#' * node.level} {_inline_md(node.content)}"
    if isinstance(node, CodeBlock):
        return f"```{node.language or ''}\n{plain_text(node.content)}\n```"
    if isinstance(node, Image):
        title = f' "{node.title}"' if node.title else ""
        return f"![{node.alt or ''}]({node.src}{title})"
    if isinstance(node, HorizontalRule):
        return "---"
    if isinstance(node, BulletList):
        return "\n".join(_item_md("- ", item) for item in node.items)
    if isinstance(node, OrderedList):
        return "\n".join(_item_md(f"{node.start + i}. ", item) for i, item in enumerate(node.items))
    if isinstance(node, TaskList):
        return "\n".join(_item_md(f"- [{'x' if item.checked else ' '}] ", item) for item in node.items)
    if isinstance(node, Blockquote):
        body = "\n\n".join(_md(child) for child in node.content)
        return "\n".join(f"> {line}" if line else ">" for line in body.split("\n"))
    if isinstance(node, Table):
        rows = ["| " + " | ".join(_cell_md(c) for c in row.cells) + " |" for row in node.rows]
        rows.insert(1, "| " + " | ".join("---" for _ in range(node.width)) + " |")
        return "\n".join(rows)
    if isinstance(node, Document):
        return "\n\n".join(_md(child) for child in node.content)
    raise TypeError(f"Cannot serialize node type {node.type!r} to Markdown")


def to_markdown(doc: Document) -> str:
    return _md(doc)


def build_markdown(doc: Document, frontmatter: dict | None = None) -> str:
    """Return the Markdown body with a YAML frontmatter block prepended when given."""
    body = to_markdown(doc)
    if not frontmatter:
        return f"{body}\n"
    header = yaml.dump(frontmatter, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{header}---\n\n{body}\n"


def write_post(post: Post, output_dir: Path, fmt: str = "html") -> Path:
    """Write a stored post as HTML (stored markup) or Markdown (rebuilt from its tree).

    Output path: output_dir / <title-slug>-<id prefix>.{html|md}
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{slugify(post.title) or 'post'}-{str(post.id)[:8]}"
    if fmt == "html":
        path = output_dir / f"{stem}.html"
        path.write_text(post.content, encoding="utf-8")
        return path
    fm = {
        "title": post.title,
        "author_id": post.author_id,
        "tags": list(post.tags or []),
        "cover_image": post.cover_image,
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }
    path = output_dir / f"{stem}.md"
    path.write_text(build_markdown(Document.model_validate(post.document), fm), encoding="utf-8")
    return path
