"""SQLModel implementation of the debt payment repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlmodel import select

from ...models.debt import DebtPayment
from ..database import SessionFactory


class SQLModelDebtPaymentRepository:
    """SQLModel-based debt payment repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, payment_id: int, *, user_id: int) -> Optional[DebtPayment]:
        """Retrieve a payment by ID."""
        with self.session_factory() as session:
            return session.exec(
                select(DebtPayment).where(
                    DebtPayment.id == payment_id, DebtPayment.user_id == user_id
                )
            ).first()

    def get_by_client_ref(self, client_ref: str, *, user_id: int) -> Optional[DebtPayment]:
        """Find a payment previously submitted from an offline draft."""
        with self.session_factory() as session:
            return session.exec(
                select(DebtPayment).where(
                    DebtPayment.client_ref == client_ref, DebtPayment.user_id == user_id
                )
            ).first()

    def list_by_debt(self, debt_id: int, *, user_id: int) -> list[DebtPayment]:
        """Payments for a debt, newest payment date first."""
        with self.session_factory() as session:
            statement = (
                select(DebtPayment)
                .where(DebtPayment.debt_id == debt_id, DebtPayment.user_id == user_id)
                .order_by(
                    DebtPayment.occurred_at.desc(),  # type: ignore
                    DebtPayment.created_at.desc(),  # type: ignore
                    DebtPayment.id.desc(),  # type: ignore
                )
            )
            return list(session.exec(statement).all())

    def list_between(
        self, start: datetime, end: datetime, *, user_id: int
    ) -> list[DebtPayment]:
        """Payments dated within ``[start, end)``."""
        with self.session_factory() as session:
            statement = (
                select(DebtPayment)
                .where(DebtPayment.user_id == user_id)
                .where(DebtPayment.occurred_at >= start)
                .where(DebtPayment.occurred_at < end)  # Exclusive end boundary
            )
            return list(session.exec(statement).all())

    def total_for_debt(self, debt_id: int, *, user_id: int) -> float:
        """Authoritative sum of the payment amounts recorded for a debt."""
        with self.session_factory() as session:
            total = session.exec(
                select(func.coalesce(func.sum(DebtPayment.amount), 0.0)).where(
                    DebtPayment.debt_id == debt_id, DebtPayment.user_id == user_id
                )
            ).one()
            return float(total or 0.0)

    def latest_date_for_debt(self, debt_id: int, *, user_id: int) -> Optional[datetime]:
        with self.session_factory() as session:
            return session.exec(
                select(func.max(DebtPayment.occurred_at)).where(
                    DebtPayment.debt_id == debt_id, DebtPayment.user_id == user_id
                )
            ).one()

    def create(self, payment: DebtPayment, *, user_id: int) -> DebtPayment:
        """Insert a payment."""
        with self.session_factory() as session:
            payment.user_id = user_id
            session.add(payment)
            session.flush()
            session.refresh(payment)
            return payment

    def update(self, payment: DebtPayment, *, user_id: int) -> DebtPayment:
        """Persist changes to an existing payment."""
        with self.session_factory() as session:
            payment.user_id = user_id
            session.add(payment)
            session.flush()
            session.refresh(payment)
            return payment

    def delete(self, payment_id: int, *, user_id: int) -> bool:
        """Delete a payment by ID; returns False when nothing matched."""
        with self.session_factory() as session:
            payment = session.exec(
                select(DebtPayment).where(
                    DebtPayment.id == payment_id, DebtPayment.user_id == user_id
                )
            ).first()
            if payment is None:
                return False
            session.delete(payment)
            session.flush()
            return True
