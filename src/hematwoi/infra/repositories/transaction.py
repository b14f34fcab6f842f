"""SQLModel implementation of the transaction repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import select

from ...models.transaction import Transaction
from ...utils.normalize import utcnow
from ..database import SessionFactory


class SQLModelTransactionRepository:
    """SQLModel-based transaction repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(
        self, transaction_id: int, *, user_id: int, include_deleted: bool = False
    ) -> Optional[Transaction]:
        """Retrieve a transaction by ID; soft-deleted rows are hidden by default."""
        with self.session_factory() as session:
            statement = select(Transaction).where(
                Transaction.id == transaction_id, Transaction.user_id == user_id
            )
            if not include_deleted:
                statement = statement.where(Transaction.deleted_at.is_(None))  # type: ignore
            return session.exec(statement).first()

    def list_by_ids(self, transaction_ids: set[int], *, user_id: int) -> dict[int, Transaction]:
        """Resolve several transactions at once, soft-deleted rows included."""
        if not transaction_ids:
            return {}
        with self.session_factory() as session:
            rows = session.exec(
                select(Transaction).where(
                    Transaction.user_id == user_id,
                    Transaction.id.in_(transaction_ids),  # type: ignore
                )
            ).all()
            return {row.id: row for row in rows if row.id is not None}

    def create(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Create a new transaction."""
        with self.session_factory() as session:
            transaction.user_id = user_id
            session.add(transaction)
            session.flush()
            session.refresh(transaction)
            return transaction

    def update(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Update an existing transaction."""
        with self.session_factory() as session:
            transaction.user_id = user_id
            transaction.updated_at = utcnow()
            session.add(transaction)
            session.flush()
            session.refresh(transaction)
            return transaction

    def soft_delete(
        self, transaction_id: int, *, user_id: int, at: Optional[datetime] = None
    ) -> bool:
        """Stamp ``deleted_at`` on a transaction, keeping the row for history."""
        with self.session_factory() as session:
            transaction = session.exec(
                select(Transaction).where(
                    Transaction.id == transaction_id, Transaction.user_id == user_id
                )
            ).first()
            if transaction is None:
                return False
            if transaction.deleted_at is None:
                transaction.deleted_at = at or utcnow()
                transaction.updated_at = transaction.deleted_at
                session.add(transaction)
                session.flush()
            return True
