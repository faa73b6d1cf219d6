"""Post persistence: create, lookup, and listing queries"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from knowitall.crud.models import Post


class PostDraft(BaseModel):
    """Everything a publish writes: markup, metadata, and the source tree."""
    title: str
    content: str
    excerpt: str
    author_id: str
    tags: list[str] = Field(default_factory=list)
    cover_image: Optional[str] = None
    document: dict[str, Any] = Field(default_factory=dict)


def create_post(session: Session, draft: PostDraft) -> Post:
    """Insert a Post from a draft. Flushes but does not commit; caller controls the transaction."""
    post = Post(**draft.model_dump())
    session.add(post)
    session.flush()
    return post


def get_post(session: Session, post_id: UUID) -> Post | None:
    """Return the Post with the given id, or None if not found."""
    return session.get(Post, post_id)


def list_posts(session: Session, tag: str | None = None, author_id: str | None = None) -> list[Post]:
    """Return posts newest first, optionally filtered by author and by exact tag match."""
    stmt = select(Post).order_by(Post.created_at.desc())
    # tags live in a JSON column; filter them in memory
    if author_id:
        stmt = stmt.where(Post.author_id == author_id)
    posts = session.exec(stmt).all()
    return [p for p in posts if tag is None or tag in (p.tags or [])]
