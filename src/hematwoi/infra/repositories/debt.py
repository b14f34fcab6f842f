"""SQLModel implementation of the debt repository."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlmodel import select

from ...models.debt import Debt
from ..database import SessionFactory

SORT_KEYS = ("newest", "oldest", "due_soon", "amount")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user search text matches literally."""

    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLModelDebtRepository:
    """SQLModel-based debt repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(
        self, debt_id: int, *, user_id: int, for_update: bool = False
    ) -> Optional[Debt]:
        """Retrieve a debt by ID, optionally locking the row."""
        with self.session_factory() as session:
            statement = select(Debt).where(Debt.id == debt_id, Debt.user_id == user_id)
            if for_update:
                statement = statement.with_for_update()
            return session.exec(statement).first()

    def list_all(self, *, user_id: int) -> list[Debt]:
        """List every debt the user owns."""
        with self.session_factory() as session:
            statement = (
                select(Debt)
                .where(Debt.user_id == user_id)
                .order_by(Debt.created_at.desc(), Debt.id.desc())  # type: ignore
            )
            return list(session.exec(statement).all())

    def search(
        self,
        *,
        user_id: int,
        text: Optional[str] = None,
        debt_type: Optional[str] = None,
        date_field: str = "created_at",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sort: str = "newest",
    ) -> list[Debt]:
        """Filtered listing used by the debts overview."""
        with self.session_factory() as session:
            statement = select(Debt).where(Debt.user_id == user_id)

            if debt_type:
                statement = statement.where(Debt.type == debt_type)
            if text:
                pattern = f"%{escape_like(text)}%"
                statement = statement.where(
                    or_(
                        Debt.party_name.ilike(pattern, escape="\\"),  # type: ignore
                        Debt.title.ilike(pattern, escape="\\"),  # type: ignore
                        Debt.notes.ilike(pattern, escape="\\"),  # type: ignore
                    )
                )

            column = Debt.due_date if date_field == "due_date" else Debt.created_at
            if start:
                statement = statement.where(column >= start)  # type: ignore
            if end:
                statement = statement.where(column <= end)  # type: ignore

            if sort == "oldest":
                statement = statement.order_by(Debt.created_at.asc(), Debt.id.asc())  # type: ignore
            elif sort == "due_soon":
                statement = statement.order_by(
                    Debt.due_date.is_(None),  # type: ignore
                    Debt.due_date.asc(),  # type: ignore
                    Debt.created_at.desc(),  # type: ignore
                )
            elif sort == "amount":
                statement = statement.order_by(Debt.amount.desc(), Debt.created_at.desc())  # type: ignore
            else:
                statement = statement.order_by(Debt.created_at.desc(), Debt.id.desc())  # type: ignore

            return list(session.exec(statement).all())

    def create_many(self, debts: Iterable[Debt], *, user_id: int) -> list[Debt]:
        """Insert a batch of debts (installment siblings) in one flush."""
        with self.session_factory() as session:
            created = []
            for debt in debts:
                debt.user_id = user_id
                session.add(debt)
                created.append(debt)
            session.flush()
            for debt in created:
                session.refresh(debt)
            return created

    def update(self, debt: Debt, *, user_id: int) -> Debt:
        """Persist changes to an existing debt."""
        with self.session_factory() as session:
            debt.user_id = user_id
            session.add(debt)
            session.flush()
            session.refresh(debt)
            return debt

    def delete(self, debt_id: int, *, user_id: int) -> bool:
        """Delete a debt by ID; returns False when nothing matched."""
        with self.session_factory() as session:
            debt = session.exec(
                select(Debt).where(Debt.id == debt_id, Debt.user_id == user_id)
            ).first()
            if debt is None:
                return False
            session.delete(debt)
            session.flush()
            return True
