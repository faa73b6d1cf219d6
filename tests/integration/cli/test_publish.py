"""Integration tests for the publish, list, and export commands"""

import pytest
from typer.testing import CliRunner

from knowitall.cli.cli import app


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

DRAFT = """\
---
title: From Frontmatter
tags: [python]
---

# Hello

Some **bold** text.

![diagram](img/diagram.png)
"""


@pytest.fixture(name="workspace")
def workspace_fixture(tmp_path, monkeypatch):
    """A draft with one local image, run from a temp cwd with its own db and object store."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KNOWITALL_DB_URL", f"sqlite:///{tmp_path}/test.db")
    monkeypatch.setenv("KNOWITALL_PUBLIC_BASE_URL", "https://cdn.example.com/public")
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "diagram.png").write_bytes(PNG)
    (tmp_path / "cover.png").write_bytes(PNG)
    (tmp_path / "post.md").write_text(DRAFT)
    return tmp_path


def _invoke(*args):
    return CliRunner().invoke(app, list(args))


def _publish(*extra):
    result = _invoke("publish", "post.md", *extra)
    assert result.exit_code == 0, result.output
    line = next(l for l in result.output.splitlines() if l.startswith("Published "))
    return line.split()[1].rstrip(":")


def test_publish_uploads_images_and_lists_post(workspace):
    post_id = _publish("--cover", "cover.png", "--tag", "editors", "--author", "me")
    stored = list((workspace / ".knowitall" / "storage" / "blog-images").iterdir())
    assert len(stored) == 1
    assert stored[0].name.startswith("me-")
    assert len(list((workspace / ".knowitall" / "storage" / "blog-covers").iterdir())) == 1

    result = _invoke("list")
    assert result.exit_code == 0, result.output
    assert post_id in result.output
    assert "From Frontmatter" in result.output
    assert "[editors]" in result.output


def test_publish_title_option_and_tag_filter(workspace):
    _publish("--title", "Explicit Title")
    assert "Explicit Title" in _invoke("list", "--tag", "python").output
    result = _invoke("list", "--tag", "nothing")
    assert result.exit_code == 1


def test_publish_blocked_by_missing_image(workspace):
    (workspace / "img" / "diagram.png").unlink()
    result = _invoke("publish", "post.md")
    assert result.exit_code == 1
    assert "failed: img/diagram.png" in result.output
    assert "Error: Publish failed" in result.output


def test_publish_rejects_unsupported_cover(workspace):
    (workspace / "cover.svg").write_text("<svg/>")
    result = _invoke("publish", "post.md", "--cover", "cover.svg")
    assert result.exit_code == 1
    assert "Unsupported image type" in result.output


def test_publish_missing_draft(workspace):
    result = _invoke("publish", "nope.md")
    assert result.exit_code == 1
    assert "Draft not found" in result.output


def test_export_html_and_markdown(workspace):
    post_id = _publish()
    result = _invoke("export", post_id, "--out-dir", "dist")
    assert result.exit_code == 0, result.output
    (html,) = (workspace / "dist").glob("*.html")
    assert html.name.startswith("from-frontmatter-")
    assert "<strong>bold</strong>" in html.read_text()
    assert 'src="https://cdn.example.com/public/blog-images/' in html.read_text()

    result = _invoke("export", post_id, "--format", "md", "--out-dir", "dist")
    assert result.exit_code == 0, result.output
    (md,) = (workspace / "dist").glob("*.md")
    text = md.read_text()
    assert "title: From Frontmatter" in text
    assert "Some **bold** text." in text


def test_export_errors(workspace):
    assert "Invalid post id" in _invoke("export", "not-a-uuid").output
    assert "Post not found" in _invoke("export", "12345678-1234-5678-1234-567812345678").output
    assert "Unknown format" in _invoke("export", "x", "--format", "pdf").output


def test_init_reset(workspace):
    _publish()
    result = _invoke("init", "--reset")
    assert result.exit_code == 0, result.output
    assert "Existing data cleared." in result.output
    assert _invoke("list").exit_code == 1
