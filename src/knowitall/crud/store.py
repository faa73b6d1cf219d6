"""Post stores: the persistence collaborator a publishing session writes to"""

from abc import ABC, abstractmethod

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from knowitall.core.errors import PersistenceFailed
from knowitall.crud.models import Post
from knowitall.crud.posts import PostDraft, create_post


class PostStore(ABC):
    @abstractmethod
    def save(self, draft: PostDraft) -> Post:
        """Persist a draft and return the stored Post. Raises PersistenceFailed."""
        raise NotImplementedError


class SQLPostStore(PostStore):
    def __init__(self, engine: Engine):
        self.engine = engine

    def save(self, draft: PostDraft) -> Post:
        try:
            with Session(self.engine) as session:
                post = create_post(session, draft)
                session.commit()
                session.refresh(post)
        except SQLAlchemyError as e:
            logger.error("Error creating blog post: {}", e)
            raise PersistenceFailed(f"Failed to create blog post: {e}") from e
        return post


class MemoryPostStore(PostStore):
    def __init__(self):
        self.posts: list[Post] = []

    def save(self, draft: PostDraft) -> Post:
        post = Post(**draft.model_dump())
        self.posts.append(post)
        return post
