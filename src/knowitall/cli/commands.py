"""CLI command implementations"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional
from uuid import UUID

import typer
from sqlmodel import Session

from knowitall.config import Settings, load_config
from knowitall.core.errors import EditorError
from knowitall.core.export import write_post
from knowitall.core.models import Image
from knowitall.core.parse import parse_file
from knowitall.core.session import EditorSession
from knowitall.core.utils.tree import iter_nodes
from knowitall.crud.database import init_db, make_engine, reset_db
from knowitall.crud.models import Post
from knowitall.crud.posts import get_post, list_posts
from knowitall.crud.store import SQLPostStore
from knowitall.uploads.coordinator import UploadCoordinator
from knowitall.uploads.models import ImageTarget, PendingUpload
from knowitall.uploads.storage import LocalObjectStorage


EXPORT_FORMATS = ("html", "md")


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _session(settings: Settings, document=None) -> EditorSession:
    """Wire an editing session to the local object store and the configured database."""
    engine = make_engine(settings.db_url)
    init_db(engine)
    storage = LocalObjectStorage(Path(settings.storage_dir), settings.public_base_url)
    coordinator = UploadCoordinator.from_settings(storage, settings)
    return EditorSession(coordinator, SQLPostStore(engine), settings, document)


async def _upload_local(session: EditorSession, node_id: str, path: Path) -> Optional[str]:
    return await session.upload_image_node(node_id, PendingUpload.from_path(path))


async def _upload_all(session: EditorSession, base_dir: Path, cover: Optional[Path]) -> list[tuple[str, object]]:
    """Upload every draft-relative image concurrently, then the cover. Returns (src, url or error) pairs."""
    local = [(n.id, n.src) for _, n in iter_nodes(session.document) if isinstance(n, Image) and not n.resolved]
    results = await asyncio.gather(
        *(_upload_local(session, node_id, base_dir / src) for node_id, src in local),
        return_exceptions=True,
    )
    if cover is not None:
        await session.set_cover_image(PendingUpload.from_path(cover, ImageTarget.cover))
    return [(src, result) for (_, src), result in zip(local, results)]


def _echo_post(post: Post) -> None:
    tags = f"  [{', '.join(post.tags)}]" if post.tags else ""
    typer.echo(f"{post.id}  {post.created_at:%Y-%m-%d}  {post.title}{tags}")


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize database schema. Use --reset to clear existing posts."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing data cleared.")
    else:
        init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def publish_cmd(
    draft: Annotated[Path, typer.Argument(help="Markdown draft to publish")],
    title: Annotated[Optional[str], typer.Option("--title", help="Post title (defaults to frontmatter 'title')")] = None,
    tags: Annotated[Optional[list[str]], typer.Option("--tag", help="Tag to attach; repeatable")] = None,
    cover: Annotated[Optional[Path], typer.Option("--cover", help="Cover image file")] = None,
    author: Annotated[Optional[str], typer.Option("--author", help="Author id recorded on the post")] = None,
    ):
    """Import a Markdown draft, upload its local images and cover, and publish it."""
    settings = _settings(overrides={"author_id": author})
    if not draft.is_file():
        _fail(f"Draft not found: {draft}")
    try:
        frontmatter, document = parse_file(draft, settings.parser_config)
    except ValueError as e:
        _fail(f"Could not parse {draft}", e)

    session = _session(settings, document)
    session.title = title or str(frontmatter.get("title") or "")
    default_tags = frontmatter.get("tags") or []
    if isinstance(default_tags, str):
        default_tags = [default_tags]
    for tag in tags or default_tags:
        session.add_tag(str(tag))

    # --- uploads ---
    try:
        uploaded = asyncio.run(_upload_all(session, draft.parent, cover))
    except (EditorError, OSError) as e:
        _fail("Cover upload failed", e)
    for src, result in uploaded:
        if isinstance(result, Exception):
            typer.echo(f"  failed: {src} ({result})", err=True)
        else:
            typer.echo(f"  {src} -> {result}")

    # --- publish ---
    try:
        post = asyncio.run(session.publish())
    except EditorError as e:
        _fail("Publish failed", e)
    typer.echo(f"Published {post.id}: {post.title}")


def list_cmd(
    tag: Annotated[Optional[str], typer.Option("--tag", help="Only posts carrying this tag")] = None,
    ):
    """List published posts, newest first."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        posts = list_posts(session, tag=tag)
    if not posts:
        typer.echo("No posts found in database.")
        raise typer.Exit(1)
    for post in posts:
        _echo_post(post)


def export_cmd(
    post_id: Annotated[str, typer.Argument(help="Id of the post to export")],
    fmt: Annotated[str, typer.Option("--format", help="html (stored markup) or md (rebuilt from the tree)")] = "html",
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    ):
    """Write a published post to the output directory."""
    settings = _settings(overrides={"output_dir": out})
    if fmt not in EXPORT_FORMATS:
        _fail(f"Unknown format {fmt!r}; expected one of {', '.join(EXPORT_FORMATS)}")
    try:
        key = UUID(post_id)
    except ValueError:
        _fail(f"Invalid post id: {post_id}")
    engine = make_engine(settings.db_url)
    init_db(engine)

    with Session(engine) as session:
        post = get_post(session, key)
    if post is None:
        _fail(f"Post not found: {post_id}")
    try:
        path = write_post(post, Path(settings.output_dir), fmt)
    except (OSError, ValueError) as e:
        _fail("Export failed", e)
    typer.echo(f"  {post.title} -> {path}")
