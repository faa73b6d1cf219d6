"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from knowitall.crud import models  # noqa: F401
from knowitall.crud.posts import PostDraft


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created; one connection shared across threads."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="draft")
def draft_fixture():
    return PostDraft(
        title="Hello",
        content="<p>Hello world</p>",
        excerpt="Hello world...",
        author_id="author-1",
        tags=["python", "editors"],
        cover_image="https://cdn.example.com/blog-covers/c.png",
        document={"type": "doc", "content": []},
    )
