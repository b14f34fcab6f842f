"""Debt entity shapes, status evaluation and row normalization."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ..models.debt import DEBT_STATUSES, Debt, DebtPayment
from ..models.transaction import Transaction
from ..utils.normalize import (
    clamp,
    clean_text,
    coerce_datetime,
    round_money,
    safe_number,
    utcnow,
)

PAID_EPSILON = 0.0001
MAX_TENOR_MONTHS = 36


def evaluate_status(
    amount: float,
    paid_total: float,
    due_date: Optional[datetime],
    *,
    now: Optional[datetime] = None,
    epsilon: float = PAID_EPSILON,
) -> str:
    """Classify a debt as ``paid``, ``overdue`` or ``ongoing``.

    ``epsilon`` absorbs float drift so a balance paid to the last cent counts
    as settled.
    """

    if paid_total + epsilon >= amount:
        return "paid"
    current = now or utcnow()
    if due_date is not None and due_date < current:
        return "overdue"
    return "ongoing"


@dataclass(frozen=True, slots=True)
class StatusDecision:
    """A resolved status plus where it came from.

    ``automatic`` decisions are re-derived whenever amount, payments or due
    date change. ``manual`` decisions come from an explicit instruction
    (mark as paid/unpaid) and are kept until the next automatic recalculation.
    """

    status: str
    source: str
    paid_at: Optional[datetime] = None
    reason: Optional[str] = None

    @classmethod
    def automatic(
        cls,
        amount: float,
        paid_total: float,
        due_date: Optional[datetime],
        *,
        now: Optional[datetime] = None,
        epsilon: float = PAID_EPSILON,
    ) -> "StatusDecision":
        status = evaluate_status(amount, paid_total, due_date, now=now, epsilon=epsilon)
        return cls(status=status, source="automatic")

    @classmethod
    def manual(
        cls, status: str, *, paid_at: Optional[datetime] = None, reason: Optional[str] = None
    ) -> "StatusDecision":
        if status not in DEBT_STATUSES:
            raise ValueError(f"Unknown debt status: {status}")
        return cls(
            status=status,
            source="manual",
            paid_at=paid_at if status == "paid" else None,
            reason=reason,
        )


def resolve_payment_status(
    *,
    amount: float,
    paid_total: float,
    due_date: Optional[datetime],
    paid_on: datetime,
    mark_as_paid: Optional[bool],
    now: Optional[datetime] = None,
    epsilon: float = PAID_EPSILON,
) -> StatusDecision:
    """Decide the debt status after a payment was created or edited.

    Once the balance is fully covered the caller's ``mark_as_paid``
    instruction wins (defaulting to True); an explicit False keeps the debt
    open. A balance left within ``epsilon`` falls through to the automatic
    rules.
    """

    remaining_after = amount - paid_total
    if remaining_after <= 0:
        if mark_as_paid is False:
            return StatusDecision.manual("ongoing", reason="kept open after settlement")
        return StatusDecision.manual("paid", paid_at=paid_on, reason="settled by payment")
    return StatusDecision.automatic(amount, paid_total, due_date, now=now, epsilon=epsilon)


def apply_status(debt: Debt, decision: StatusDecision, *, fallback_paid_at: Optional[datetime]) -> None:
    """Write a decision onto a debt row, keeping ``paid_at`` coherent."""

    debt.status = decision.status
    debt.status_source = decision.source
    if decision.status != "paid":
        debt.paid_at = None
    elif decision.paid_at is not None:
        debt.paid_at = decision.paid_at
    elif debt.paid_at is None:
        debt.paid_at = fallback_paid_at


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _read(row: Any, *keys: str, default: Any = None) -> Any:
    """Read the first present key from an ORM row or a raw mapping."""

    for key in keys:
        if isinstance(row, Mapping):
            if key in row and row[key] is not None:
                return row[key]
        else:
            value = getattr(row, key, None)
            if value is not None:
                return value
    return default


@dataclass(slots=True)
class DebtRecord:
    """Normalized debt as handed to presentation code."""

    id: int
    user_id: int
    type: str
    party_name: str
    title: str
    date: datetime
    due_date: Optional[datetime]
    amount: float
    rate_percent: Optional[float]
    paid_total: float
    remaining: float
    status: str
    status_source: str
    paid_at: Optional[datetime]
    notes: Optional[str]
    tenor_months: int
    tenor_sequence: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("date", "due_date", "paid_at", "created_at", "updated_at"):
            data[key] = _iso(data[key])
        return data


@dataclass(slots=True)
class PaymentTransactionInfo:
    """Summary of the cash-flow entry mirroring a payment."""

    id: int
    date: datetime
    amount: float
    title: Optional[str]
    type: str
    deleted_at: Optional[datetime]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": _iso(self.date),
            "amount": self.amount,
            "title": self.title,
            "type": self.type,
            "deleted_at": _iso(self.deleted_at),
        }


@dataclass(slots=True)
class DebtPaymentRecord:
    """Normalized debt payment."""

    id: int
    debt_id: int
    user_id: int
    amount: float
    date: datetime
    account_id: Optional[int]
    account_name: Optional[str]
    category_id: Optional[int]
    transaction_id: Optional[int]
    notes: Optional[str]
    client_ref: Optional[str]
    created_at: datetime
    updated_at: datetime
    transaction: Optional[PaymentTransactionInfo] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "user_id": self.user_id,
            "amount": self.amount,
            "date": _iso(self.date),
            "account_id": self.account_id,
            "account_name": self.account_name,
            "category_id": self.category_id,
            "transaction_id": self.transaction_id,
            "notes": self.notes,
            "client_ref": self.client_ref,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "transaction": self.transaction.to_dict() if self.transaction else None,
        }


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_debt_row(
    row: Debt | Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    epsilon: float = PAID_EPSILON,
    max_tenor: int = MAX_TENOR_MONTHS,
) -> DebtRecord:
    """Convert a stored debt row into a :class:`DebtRecord`.

    Rows whose status is automatic get it re-derived against ``now`` so an
    overdue debt is reported as such even if nothing rewrote the row since its
    due date passed.
    """

    current = now or utcnow()
    amount = safe_number(_read(row, "amount"))
    paid_total = safe_number(_read(row, "paid_total"))
    rate = _read(row, "rate_percent")
    due_date = coerce_datetime(_read(row, "due_date"))
    created_at = coerce_datetime(_read(row, "created_at")) or current
    opened = coerce_datetime(_read(row, "occurred_at", "date")) or created_at

    tenor_months = int(clamp(int(safe_number(_read(row, "tenor_months", default=1))), 1, max_tenor))
    tenor_sequence = int(
        clamp(int(safe_number(_read(row, "tenor_sequence", default=1))), 1, tenor_months)
    )

    status_source = _read(row, "status_source", default="automatic")
    status = _read(row, "status", default="ongoing")
    if status_source != "manual" or status not in DEBT_STATUSES:
        status_source = "automatic"
        status = evaluate_status(amount, paid_total, due_date, now=current, epsilon=epsilon)

    return DebtRecord(
        id=int(_read(row, "id")),
        user_id=int(_read(row, "user_id")),
        type=_read(row, "type", default="debt"),
        party_name=clean_text(_read(row, "party_name")) or "",
        title=clean_text(_read(row, "title")) or "",
        date=opened,
        due_date=due_date,
        amount=amount,
        rate_percent=safe_number(rate) if rate is not None else None,
        paid_total=round_money(paid_total),
        remaining=round_money(max(amount - paid_total, 0.0)),
        status=status,
        status_source=status_source,
        paid_at=coerce_datetime(_read(row, "paid_at")) if status == "paid" else None,
        notes=clean_text(_read(row, "notes")),
        tenor_months=tenor_months,
        tenor_sequence=tenor_sequence,
        created_at=created_at,
        updated_at=coerce_datetime(_read(row, "updated_at")) or created_at,
    )


def map_transaction_info(row: Transaction | Mapping[str, Any]) -> PaymentTransactionInfo:
    created_at = coerce_datetime(_read(row, "created_at")) or utcnow()
    return PaymentTransactionInfo(
        id=int(_read(row, "id")),
        date=coerce_datetime(_read(row, "occurred_at", "date")) or created_at,
        amount=safe_number(_read(row, "amount")),
        title=clean_text(_read(row, "title")),
        type=_read(row, "type", default="expense"),
        deleted_at=coerce_datetime(_read(row, "deleted_at")),
    )


def map_payment_row(
    row: DebtPayment | Mapping[str, Any],
    *,
    account_name: Optional[str] = None,
    transaction: Transaction | Mapping[str, Any] | None = None,
) -> DebtPaymentRecord:
    """Convert a stored payment row into a :class:`DebtPaymentRecord`."""

    created_at = coerce_datetime(_read(row, "created_at")) or utcnow()
    return DebtPaymentRecord(
        id=int(_read(row, "id")),
        debt_id=int(_read(row, "debt_id")),
        user_id=int(_read(row, "user_id")),
        amount=safe_number(_read(row, "amount")),
        date=coerce_datetime(_read(row, "occurred_at", "date")) or created_at,
        account_id=_optional_int(_read(row, "account_id")),
        account_name=clean_text(account_name or _read(row, "account_name")),
        category_id=_optional_int(_read(row, "category_id")),
        transaction_id=_optional_int(_read(row, "transaction_id")),
        notes=clean_text(_read(row, "notes")),
        client_ref=clean_text(_read(row, "client_ref")),
        created_at=created_at,
        updated_at=coerce_datetime(_read(row, "updated_at")) or created_at,
        transaction=map_transaction_info(transaction) if transaction is not None else None,
    )
