"""Database table definitions for published posts"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel


class Post(SQLModel, table=True):
    """A published blog post: serialized markup plus the editor tree it came from"""
    __tablename__ = "posts"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(..., sa_column=Column(Text, nullable=False))
    content: str = Field(..., sa_column=Column(Text, nullable=False), description="HTML markup of the post body")
    excerpt: str = Field(..., sa_column=Column(Text, nullable=False))
    author_id: str = Field(..., index=True, nullable=False)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    cover_image: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    document: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False),
                                     description="Editor document tree, for re-export")
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
