"""Debt and receivable entities with their payments."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..utils.normalize import utcnow

DEBT_TYPES = ("debt", "receivable")
DEBT_STATUSES = ("ongoing", "paid", "overdue")


class Debt(SQLModel, table=True):
    """One obligation: money the user owes (debt) or is owed (receivable).

    ``paid_total`` caches the sum of the debt's payments and is rewritten on
    every payment mutation. ``status_source`` records whether ``status`` was
    derived or forced by an explicit instruction.
    """

    __tablename__: ClassVar[str] = "debt"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    type: str = Field(default="debt", nullable=False, max_length=16, index=True)
    party_name: str = Field(default="", nullable=False, max_length=120)
    title: str = Field(default="", nullable=False, max_length=160)
    notes: Optional[str] = Field(default=None)
    occurred_at: datetime = Field(nullable=False, index=True)
    due_date: Optional[datetime] = Field(default=None, index=True)
    amount: float = Field(nullable=False)
    rate_percent: Optional[float] = Field(default=None)
    paid_total: float = Field(default=0.0, nullable=False)
    status: str = Field(default="ongoing", nullable=False, max_length=16, index=True)
    status_source: str = Field(default="automatic", nullable=False, max_length=16)
    paid_at: Optional[datetime] = Field(default=None)
    tenor_months: int = Field(default=1, nullable=False)
    tenor_sequence: int = Field(default=1, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class DebtPayment(SQLModel, table=True):
    """A payment recorded against a debt, optionally mirrored by a transaction."""

    __tablename__: ClassVar[str] = "debt_payment"
    __table_args__ = (
        UniqueConstraint("user_id", "client_ref", name="uq_debt_payment_user_client_ref"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    debt_id: int = Field(foreign_key="debt.id", nullable=False, index=True)
    amount: float = Field(nullable=False)
    occurred_at: datetime = Field(nullable=False, index=True)
    account_id: Optional[int] = Field(default=None, foreign_key="account.id")
    account_name: Optional[str] = Field(default=None, max_length=128)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")
    transaction_id: Optional[int] = Field(
        default=None, foreign_key="transaction.id", unique=True
    )
    notes: Optional[str] = Field(default=None)
    # Offline draft id; makes replaying a queued payment idempotent.
    client_ref: Optional[str] = Field(default=None, max_length=64, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
