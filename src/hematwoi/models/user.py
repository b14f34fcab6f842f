"""User model used for row ownership."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..utils.normalize import utcnow


class User(SQLModel, table=True):
    """Application user. Authentication lives outside this package."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(nullable=False, unique=True, index=True, max_length=64)
    role: str = Field(default="user", nullable=False, max_length=16)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
