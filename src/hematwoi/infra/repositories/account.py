"""SQLModel implementation of the account repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.account import Account
from ..database import SessionFactory


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: int, *, user_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            return session.exec(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).first()

    def list_by_ids(self, account_ids: set[int], *, user_id: int) -> dict[int, Account]:
        """Resolve several accounts at once, keyed by id."""
        if not account_ids:
            return {}
        with self.session_factory() as session:
            rows = session.exec(
                select(Account).where(
                    Account.user_id == user_id,
                    Account.id.in_(account_ids),  # type: ignore
                )
            ).all()
            return {row.id: row for row in rows if row.id is not None}
