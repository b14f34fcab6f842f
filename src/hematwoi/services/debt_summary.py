"""Read-time rollups across all of a user's debts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from ..utils.normalize import month_start, round_money
from .debts import DebtPaymentRecord, DebtRecord


@dataclass(slots=True)
class DebtSummary:
    """Aggregate figures for the debts dashboard cards."""

    total_debt: float = 0.0
    debt_due_this_month: float = 0.0
    debt_due_next_month: float = 0.0
    total_receivable: float = 0.0
    total_paid_this_month: float = 0.0
    due_soon: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "totalDebt": self.total_debt,
            "debtDueThisMonth": self.debt_due_this_month,
            "debtDueNextMonth": self.debt_due_next_month,
            "totalReceivable": self.total_receivable,
            "totalPaidThisMonth": self.total_paid_this_month,
            "dueSoon": self.due_soon,
        }


def build_summary(
    debts: Iterable[DebtRecord],
    payments: Iterable[DebtPaymentRecord],
    *,
    now: datetime,
    due_soon_days: int = 7,
) -> DebtSummary:
    """Compute the summary with a full scan of the supplied rows.

    Month windows are UTC calendar months ``[start, next_start)``. ``due_soon``
    counts every unpaid row due on or before ``now + due_soon_days``, so
    overdue balances are included.
    """

    this_month = month_start(now)
    next_month = month_start(now, 1)
    month_after = month_start(now, 2)
    soon_threshold = now + timedelta(days=due_soon_days)

    summary = DebtSummary()
    for debt in debts:
        remaining = max(debt.remaining, 0.0)
        if debt.type == "debt":
            summary.total_debt += remaining
        elif debt.type == "receivable":
            summary.total_receivable += remaining

        if debt.status == "paid" or debt.due_date is None:
            continue
        if debt.type == "debt":
            if this_month <= debt.due_date < next_month:
                summary.debt_due_this_month += remaining
            elif next_month <= debt.due_date < month_after:
                summary.debt_due_next_month += remaining
        if debt.due_date <= soon_threshold:
            summary.due_soon += remaining

    for payment in payments:
        if this_month <= payment.date < next_month:
            summary.total_paid_this_month += payment.amount

    summary.total_debt = round_money(summary.total_debt)
    summary.debt_due_this_month = round_money(summary.debt_due_this_month)
    summary.debt_due_next_month = round_money(summary.debt_due_next_month)
    summary.total_receivable = round_money(summary.total_receivable)
    summary.total_paid_this_month = round_money(summary.total_paid_this_month)
    summary.due_soon = round_money(summary.due_soon)
    return summary
