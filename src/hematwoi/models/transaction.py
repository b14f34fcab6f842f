"""SQLModel definitions for cash-flow transactions."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..utils.normalize import utcnow


class Transaction(SQLModel, table=True):
    """A single cash-flow entry.

    Rows mirroring a debt payment are never hard-deleted by the ledger; they
    are soft-deleted by stamping ``deleted_at``.
    """

    __tablename__: ClassVar[str] = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    type: str = Field(default="expense", nullable=False, max_length=16)
    amount: float = Field(nullable=False, description="Always positive; direction comes from type")
    occurred_at: datetime = Field(nullable=False, index=True)
    account_id: Optional[int] = Field(default=None, foreign_key="account.id")
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")
    title: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
