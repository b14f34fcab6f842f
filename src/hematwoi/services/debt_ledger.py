"""Debt ledger: debts, payments and their mirrored cash-flow transactions.

Each public operation runs as one unit of work on a single session, so a
payment and its linked transaction are written atomically and a failure
anywhere rolls the whole operation back. Linked transactions are never
hard-deleted here; removal stamps ``deleted_at``.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import BaseConfig
from ..domain.errors import (
    DependencyError,
    HematWoiError,
    InvalidAmount,
    MissingAccount,
    NotFoundError,
    OverpayRejected,
    ValidationError,
)
from ..infra.database import SessionFactory, bind_session
from ..infra.repositories import (
    SQLModelAccountRepository,
    SQLModelDebtPaymentRepository,
    SQLModelDebtRepository,
    SQLModelTransactionRepository,
)
from ..infra.repositories.debt import SORT_KEYS
from ..logging_config import get_logger
from ..models.account import Account
from ..models.debt import DEBT_STATUSES, DEBT_TYPES, Debt, DebtPayment
from ..models.transaction import Transaction
from ..utils.normalize import (
    add_months,
    clamp,
    clamp_tenor,
    clean_text,
    coerce_datetime,
    coerce_datetime_end,
    month_start,
    round_money,
    to_number,
    truncate_to_day,
    utcnow,
)
from .debt_summary import DebtSummary, build_summary
from .debts import (
    DebtPaymentRecord,
    DebtRecord,
    StatusDecision,
    apply_status,
    evaluate_status,
    map_debt_row,
    map_payment_row,
    resolve_payment_status,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class DebtInput:
    """Fields accepted when creating a debt (or an installment plan)."""

    type: str
    amount: Any
    party_name: str = ""
    title: str = ""
    date: Any = None
    due_date: Any = None
    rate_percent: Any = None
    notes: Optional[str] = None
    tenor_months: Any = 1


@dataclass
class PaymentInput:
    """Fields accepted when recording a payment.

    ``record_transaction`` defaults to True and then requires ``account_id``.
    ``mark_as_paid`` only matters when the payment settles the balance.
    """

    amount: Any
    date: Any = None
    notes: Optional[str] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    title: Optional[str] = None
    record_transaction: Optional[bool] = None
    mark_as_paid: Optional[bool] = None
    allow_overpay: bool = False
    client_ref: Optional[str] = None


@dataclass
class DebtFilters:
    """Filters applied to debt listings."""

    q: Optional[str] = None
    type: str = "all"
    status: str = "all"
    date_field: str = "created_at"  # created_at | due_date
    date_from: Any = None
    date_to: Any = None
    sort: str = "newest"  # newest | oldest | due_soon | amount


@dataclass
class ListDebtsResult:
    items: list[DebtRecord] = field(default_factory=list)
    summary: DebtSummary = field(default_factory=DebtSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "summary": self.summary.to_dict(),
        }


@dataclass
class _Repositories:
    """Repositories sharing one session for the duration of an operation."""

    session: Session
    debts: SQLModelDebtRepository
    payments: SQLModelDebtPaymentRepository
    transactions: SQLModelTransactionRepository
    accounts: SQLModelAccountRepository

    @classmethod
    def bound_to(cls, session: Session) -> "_Repositories":
        factory = bind_session(session)
        return cls(
            session=session,
            debts=SQLModelDebtRepository(factory),
            payments=SQLModelDebtPaymentRepository(factory),
            transactions=SQLModelTransactionRepository(factory),
            accounts=SQLModelAccountRepository(factory),
        )


def _ledger_operation(fallback: str):
    """Log failures with operation context and hide store errors from callers."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self: "DebtLedger", *args, **kwargs):
            entity_id = args[0] if args and isinstance(args[0], (int, str)) else None
            context = {
                "operation": func.__name__,
                "entity_id": entity_id,
                "user_id": kwargs.get("user_id"),
            }
            try:
                return func(self, *args, **kwargs)
            except HematWoiError as exc:
                logger.info(
                    "Ledger operation rejected: %s",
                    exc.code,
                    extra={**context, "error_code": exc.code},
                )
                raise
            except SQLAlchemyError as exc:
                logger.error(
                    "Ledger operation failed in the store",
                    extra=context,
                    exc_info=self.config.DEV_MODE,
                )
                raise DependencyError(fallback) from exc

        return wrapper

    return decorator


def _optional_id(value: Any, *, field_name: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Referensi tidak valid.", field=field_name) from None


def _parse_when(value: Any, *, field_name: str) -> Optional[datetime]:
    """Parse an optional date; present-but-unparsable input is rejected."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = coerce_datetime(value)
    if parsed is None:
        raise ValidationError("Tanggal tidak valid.", field=field_name)
    return parsed


def mirror_title(debt: Debt) -> str:
    """Default title for the transaction mirroring a payment on ``debt``."""

    title = clean_text(debt.title)
    if title:
        return title
    label = "Pelunasan piutang" if debt.type == "receivable" else "Pembayaran hutang"
    party = clean_text(debt.party_name)
    return f"{label} - {party}" if party else label


def mirror_type(debt: Debt) -> str:
    return "income" if debt.type == "receivable" else "expense"


class DebtLedger:
    """Reconciles debts, their payments and the linked cash-flow entries.

    The caller's identity is passed explicitly as ``user_id`` on every call
    and scopes every read and write.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        config: Optional[BaseConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.session_factory = session_factory
        self.config = config or BaseConfig()
        self.clock = clock or utcnow

    @contextmanager
    def _unit_of_work(self) -> Iterator[_Repositories]:
        with self.session_factory() as session:
            yield _Repositories.bound_to(session)

    # ------------------------------------------------------------------
    # Mapping helpers
    # ------------------------------------------------------------------

    def _map_debt(self, debt: Debt) -> DebtRecord:
        return map_debt_row(
            debt,
            now=self.clock(),
            epsilon=self.config.PAID_EPSILON,
            max_tenor=self.config.MAX_TENOR_MONTHS,
        )

    def _map_payments(
        self, repos: _Repositories, payments: list[DebtPayment], *, user_id: int
    ) -> list[DebtPaymentRecord]:
        accounts = repos.accounts.list_by_ids(
            {p.account_id for p in payments if p.account_id is not None}, user_id=user_id
        )
        transactions = repos.transactions.list_by_ids(
            {p.transaction_id for p in payments if p.transaction_id is not None},
            user_id=user_id,
        )
        records = []
        for payment in payments:
            account = accounts.get(payment.account_id) if payment.account_id else None
            records.append(
                map_payment_row(
                    payment,
                    account_name=account.name if account else None,
                    transaction=transactions.get(payment.transaction_id)
                    if payment.transaction_id
                    else None,
                )
            )
        return records

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_amount(value: Any, message: str = "Nominal pembayaran tidak valid.") -> float:
        amount = to_number(value)
        if amount is None or amount <= 0:
            raise InvalidAmount(message, field="amount")
        return amount

    def _guard_overpay(
        self, debt: Debt, *, paid_before: float, payment_amount: float, allow_overpay: bool
    ) -> None:
        after = debt.amount - (paid_before + payment_amount)
        if after < -self.config.OVERPAY_TOLERANCE and not allow_overpay:
            raise OverpayRejected(
                remaining=round_money(max(debt.amount - paid_before, 0.0)),
                excess=round_money(-after),
            )

    @staticmethod
    def _resolve_account(
        repos: _Repositories, account_id: Optional[int], *, required: bool, user_id: int
    ) -> Optional[Account]:
        if account_id is None:
            if required:
                raise MissingAccount(field="account_id")
            return None
        account = repos.accounts.get_by_id(account_id, user_id=user_id)
        if account is None:
            raise NotFoundError("Akun tidak ditemukan.", account_id=account_id)
        return account

    @staticmethod
    def _require_debt(repos: _Repositories, debt_id: int, *, user_id: int) -> Debt:
        debt = repos.debts.get_by_id(debt_id, user_id=user_id, for_update=True)
        if debt is None:
            raise NotFoundError("Hutang tidak ditemukan.", debt_id=debt_id)
        return debt

    @staticmethod
    def _require_payment(repos: _Repositories, payment_id: int, *, user_id: int) -> DebtPayment:
        payment = repos.payments.get_by_id(payment_id, user_id=user_id)
        if payment is None:
            raise NotFoundError("Pembayaran tidak ditemukan.", payment_id=payment_id)
        return payment

    # ------------------------------------------------------------------
    # Reconciliation core
    # ------------------------------------------------------------------

    def _recalculate(
        self,
        repos: _Repositories,
        debt: Debt,
        *,
        user_id: int,
        paid_on: Optional[datetime] = None,
        mark_as_paid: Optional[bool] = None,
        keep_manual: bool = False,
    ) -> Debt:
        """Rewrite ``paid_total`` and status from the payment rows.

        ``paid_on`` marks a payment-driven recalculation, where the settlement
        override applies. Without it the status is derived automatically,
        unless ``keep_manual`` preserves an earlier manual decision.
        """

        now = self.clock()
        paid_total = repos.payments.total_for_debt(debt.id, user_id=user_id)
        if paid_on is not None:
            decision = resolve_payment_status(
                amount=debt.amount,
                paid_total=paid_total,
                due_date=debt.due_date,
                paid_on=paid_on,
                mark_as_paid=mark_as_paid,
                now=now,
                epsilon=self.config.PAID_EPSILON,
            )
        elif keep_manual and debt.status_source == "manual" and debt.status in DEBT_STATUSES:
            decision = StatusDecision(status=debt.status, source="manual", paid_at=debt.paid_at)
        else:
            decision = StatusDecision.automatic(
                debt.amount,
                paid_total,
                debt.due_date,
                now=now,
                epsilon=self.config.PAID_EPSILON,
            )

        debt.paid_total = round_money(paid_total)
        fallback_paid_at = repos.payments.latest_date_for_debt(debt.id, user_id=user_id) or now
        apply_status(debt, decision, fallback_paid_at=fallback_paid_at)
        debt.updated_at = now
        return repos.debts.update(debt, user_id=user_id)

    def _create_mirror(
        self,
        repos: _Repositories,
        debt: Debt,
        *,
        amount: float,
        paid_on: datetime,
        account_id: Optional[int],
        category_id: Optional[int],
        notes: Optional[str],
        title: Optional[str],
        user_id: int,
    ) -> Transaction:
        now = self.clock()
        transaction = Transaction(
            type=mirror_type(debt),
            amount=amount,
            occurred_at=truncate_to_day(paid_on),
            account_id=account_id,
            category_id=category_id,
            title=clean_text(title) or mirror_title(debt),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        return repos.transactions.create(transaction, user_id=user_id)

    def _release_mirror(self, repos: _Repositories, transaction_id: int, *, user_id: int) -> None:
        """Soft-delete a linked transaction without letting a failure block the caller."""

        try:
            with repos.session.begin_nested():
                repos.transactions.soft_delete(transaction_id, user_id=user_id, at=self.clock())
        except SQLAlchemyError:
            logger.warning(
                "Linked transaction cleanup failed",
                extra={"transaction_id": transaction_id, "user_id": user_id},
                exc_info=self.config.DEV_MODE,
            )

    # ------------------------------------------------------------------
    # Debts
    # ------------------------------------------------------------------

    @_ledger_operation("Gagal memuat hutang")
    def list_debts(self, filters: Optional[DebtFilters] = None, *, user_id: int) -> ListDebtsResult:
        """Filtered debts plus a summary computed from every debt the user has."""

        filters = filters or DebtFilters()
        debt_type = None if filters.type in (None, "", "all") else filters.type
        if debt_type is not None and debt_type not in DEBT_TYPES:
            raise ValidationError("Jenis hutang tidak dikenal.", field="type")
        status = None if filters.status in (None, "", "all") else filters.status
        if status is not None and status not in DEBT_STATUSES:
            raise ValidationError("Status hutang tidak dikenal.", field="status")

        with self._unit_of_work() as repos:
            rows = repos.debts.search(
                user_id=user_id,
                text=clean_text(filters.q),
                debt_type=debt_type,
                date_field="due_date" if filters.date_field == "due_date" else "created_at",
                start=coerce_datetime(filters.date_from),
                end=coerce_datetime_end(filters.date_to),
                sort=filters.sort if filters.sort in SORT_KEYS else "newest",
            )
            items = [self._map_debt(row) for row in rows]
            if status is not None:
                # Status is re-derived on read, so filter after mapping.
                items = [item for item in items if item.status == status]
            summary = self._summary(repos, user_id=user_id)
        return ListDebtsResult(items=items, summary=summary)

    def _summary(self, repos: _Repositories, *, user_id: int) -> DebtSummary:
        now = self.clock()
        debts = [self._map_debt(row) for row in repos.debts.list_all(user_id=user_id)]
        payments = [
            map_payment_row(row)
            for row in repos.payments.list_between(
                month_start(now), month_start(now, 1), user_id=user_id
            )
        ]
        return build_summary(debts, payments, now=now, due_soon_days=self.config.DUE_SOON_DAYS)

    @_ledger_operation("Gagal memuat ringkasan hutang")
    def summary(self, *, user_id: int) -> DebtSummary:
        with self._unit_of_work() as repos:
            return self._summary(repos, user_id=user_id)

    @_ledger_operation("Gagal memuat detail hutang")
    def get_debt(
        self, debt_id: int, *, user_id: int
    ) -> tuple[Optional[DebtRecord], list[DebtPaymentRecord]]:
        """Return the debt (or None) and its payments, newest first."""

        with self._unit_of_work() as repos:
            debt = repos.debts.get_by_id(debt_id, user_id=user_id)
            if debt is None:
                return None, []
            payments = repos.payments.list_by_debt(debt_id, user_id=user_id)
            return self._map_debt(debt), self._map_payments(repos, payments, user_id=user_id)

    @_ledger_operation("Gagal memuat pembayaran hutang")
    def list_payments(self, debt_id: int, *, user_id: int) -> list[DebtPaymentRecord]:
        with self._unit_of_work() as repos:
            payments = repos.payments.list_by_debt(debt_id, user_id=user_id)
            return self._map_payments(repos, payments, user_id=user_id)

    @_ledger_operation("Gagal menambahkan hutang")
    def create_debt(self, payload: DebtInput, *, user_id: int) -> DebtRecord:
        """Create a debt; a tenor above one creates one row per monthly installment.

        Siblings share party, title, amount and rate; their dates and due dates
        advance by one calendar month each. The first installment is returned.
        """

        amount = self._validate_amount(payload.amount, "Nominal hutang tidak valid.")
        if payload.type not in DEBT_TYPES:
            raise ValidationError("Jenis hutang tidak dikenal.", field="type")
        tenor = clamp_tenor(payload.tenor_months, maximum=self.config.MAX_TENOR_MONTHS)
        if tenor is None:
            raise ValidationError("Tenor tidak valid.", field="tenor_months")

        now = self.clock()
        opened = _parse_when(payload.date, field_name="date") or now
        due = _parse_when(payload.due_date, field_name="due_date")
        rate = to_number(payload.rate_percent)
        if rate is not None:
            rate = round_money(clamp(rate, 0.0, 100.0))

        rows = []
        for index in range(tenor):
            due_at = add_months(due, index) if due is not None else None
            rows.append(
                Debt(
                    type=payload.type,
                    party_name=clean_text(payload.party_name) or "",
                    title=clean_text(payload.title) or "",
                    notes=clean_text(payload.notes),
                    occurred_at=add_months(opened, index),
                    due_date=due_at,
                    amount=amount,
                    rate_percent=rate,
                    paid_total=0.0,
                    status=evaluate_status(
                        amount, 0.0, due_at, now=now, epsilon=self.config.PAID_EPSILON
                    ),
                    status_source="automatic",
                    tenor_months=tenor,
                    tenor_sequence=index + 1,
                    created_at=now,
                    updated_at=now,
                )
            )

        with self._unit_of_work() as repos:
            created = repos.debts.create_many(rows, user_id=user_id)
            first = self._map_debt(created[0])
        logger.info(
            "Debt created",
            extra={"debt_id": first.id, "user_id": user_id, "tenor_months": tenor},
        )
        return first

    @_ledger_operation("Gagal memperbarui hutang")
    def update_debt(self, debt_id: int, patch: Mapping[str, Any], *, user_id: int) -> DebtRecord:
        """Apply a partial update.

        An explicit ``status`` is recorded as a manual decision. Otherwise a
        change to amount or due date re-derives the status. The type cannot
        change once the debt has payments.
        """

        updates: dict[str, Any] = {}
        if patch.get("type"):
            if patch["type"] not in DEBT_TYPES:
                raise ValidationError("Jenis hutang tidak dikenal.", field="type")
            updates["type"] = patch["type"]
        if patch.get("party_name") is not None:
            updates["party_name"] = clean_text(patch["party_name"]) or ""
        if patch.get("title") is not None:
            updates["title"] = clean_text(patch["title"]) or ""
        if patch.get("date"):
            updates["occurred_at"] = _parse_when(patch["date"], field_name="date")
        if "due_date" in patch:
            updates["due_date"] = _parse_when(patch["due_date"], field_name="due_date")
        if "amount" in patch and patch["amount"] not in (None, ""):
            updates["amount"] = self._validate_amount(patch["amount"], "Nominal hutang tidak valid.")
        if "rate_percent" in patch:
            raw_rate = patch["rate_percent"]
            rate = to_number(raw_rate)
            if rate is None and raw_rate not in (None, ""):
                raise ValidationError("Bunga tidak valid.", field="rate_percent")
            updates["rate_percent"] = round_money(clamp(rate, 0.0, 100.0)) if rate is not None else None
        if "notes" in patch:
            updates["notes"] = clean_text(patch["notes"])
        status = patch.get("status") or None
        if status is not None and status not in DEBT_STATUSES:
            raise ValidationError("Status hutang tidak dikenal.", field="status")

        with self._unit_of_work() as repos:
            debt = self._require_debt(repos, debt_id, user_id=user_id)
            if not updates and status is None:
                return self._map_debt(debt)
            if updates.get("type", debt.type) != debt.type and repos.payments.list_by_debt(
                debt.id, user_id=user_id
            ):
                raise ValidationError(
                    "Jenis hutang tidak bisa diubah setelah ada pembayaran.", field="type"
                )

            for key, value in updates.items():
                setattr(debt, key, value)

            now = self.clock()
            if status is not None:
                decision = StatusDecision.manual(
                    status, paid_at=debt.paid_at or now, reason="set explicitly"
                )
                apply_status(debt, decision, fallback_paid_at=now)
                debt.updated_at = now
                debt = repos.debts.update(debt, user_id=user_id)
            elif "amount" in updates or "due_date" in updates:
                debt = self._recalculate(repos, debt, user_id=user_id)
            else:
                debt.updated_at = now
                debt = repos.debts.update(debt, user_id=user_id)
            return self._map_debt(debt)

    @_ledger_operation("Gagal menghapus hutang")
    def delete_debt(self, debt_id: int, *, user_id: int) -> None:
        """Delete a debt with its payments; their mirrors are soft-deleted."""

        with self._unit_of_work() as repos:
            self._require_debt(repos, debt_id, user_id=user_id)
            now = self.clock()
            for payment in repos.payments.list_by_debt(debt_id, user_id=user_id):
                if payment.transaction_id is not None:
                    repos.transactions.soft_delete(payment.transaction_id, user_id=user_id, at=now)
                repos.payments.delete(payment.id, user_id=user_id)
            repos.debts.delete(debt_id, user_id=user_id)
        logger.info("Debt deleted", extra={"debt_id": debt_id, "user_id": user_id})

    @_ledger_operation("Gagal menghitung ulang hutang")
    def recalculate(self, debt_id: int, *, user_id: int) -> DebtRecord:
        """Rebuild cached aggregates for one debt, keeping manual statuses."""

        with self._unit_of_work() as repos:
            debt = self._require_debt(repos, debt_id, user_id=user_id)
            return self._map_debt(self._recalculate(repos, debt, user_id=user_id, keep_manual=True))

    @_ledger_operation("Gagal menghitung ulang hutang")
    def recalculate_all(self, *, user_id: int) -> list[DebtRecord]:
        with self._unit_of_work() as repos:
            return [
                self._map_debt(
                    self._recalculate(repos, debt, user_id=user_id, keep_manual=True)
                )
                for debt in repos.debts.list_all(user_id=user_id)
            ]

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    @_ledger_operation("Gagal menambahkan pembayaran")
    def create_payment(
        self, debt_id: int, payload: PaymentInput, *, user_id: int
    ) -> tuple[DebtRecord, DebtPaymentRecord]:
        """Record a payment and reconcile the debt.

        Everything is validated before the first write. Replaying a payment
        with a known ``client_ref`` returns the stored payment unchanged; reusing
        it for a different debt is rejected.
        """

        amount = self._validate_amount(payload.amount)
        paid_on = _parse_when(payload.date, field_name="date") or self.clock()
        notes = clean_text(payload.notes)
        account_id = _optional_id(payload.account_id, field_name="account_id")
        category_id = _optional_id(payload.category_id, field_name="category_id")
        record_transaction = payload.record_transaction is not False
        client_ref = clean_text(payload.client_ref)

        with self._unit_of_work() as repos:
            if client_ref:
                existing = repos.payments.get_by_client_ref(client_ref, user_id=user_id)
                if existing is not None:
                    if existing.debt_id != debt_id:
                        raise ValidationError(
                            "Referensi pembayaran sudah dipakai untuk hutang lain.",
                            field="client_ref",
                        )
                    debt = self._require_debt(repos, existing.debt_id, user_id=user_id)
                    return (
                        self._map_debt(debt),
                        self._map_payments(repos, [existing], user_id=user_id)[0],
                    )

            debt = self._require_debt(repos, debt_id, user_id=user_id)
            paid_before = repos.payments.total_for_debt(debt.id, user_id=user_id)
            self._guard_overpay(
                debt,
                paid_before=paid_before,
                payment_amount=amount,
                allow_overpay=payload.allow_overpay is True,
            )
            account = self._resolve_account(
                repos, account_id, required=record_transaction, user_id=user_id
            )

            transaction = None
            if record_transaction:
                transaction = self._create_mirror(
                    repos,
                    debt,
                    amount=amount,
                    paid_on=paid_on,
                    account_id=account_id,
                    category_id=category_id,
                    notes=notes,
                    title=payload.title,
                    user_id=user_id,
                )

            now = self.clock()
            payment = repos.payments.create(
                DebtPayment(
                    debt_id=debt.id,
                    amount=amount,
                    occurred_at=paid_on,
                    account_id=account_id,
                    account_name=account.name if account else None,
                    category_id=category_id,
                    transaction_id=transaction.id if transaction else None,
                    notes=notes,
                    client_ref=client_ref,
                    created_at=now,
                    updated_at=now,
                ),
                user_id=user_id,
            )
            debt = self._recalculate(
                repos,
                debt,
                user_id=user_id,
                paid_on=paid_on,
                mark_as_paid=payload.mark_as_paid,
            )
            record = self._map_debt(debt)
            payment_record = map_payment_row(
                payment,
                account_name=account.name if account else None,
                transaction=transaction,
            )

        logger.info(
            "Debt payment recorded",
            extra={
                "debt_id": record.id,
                "payment_id": payment_record.id,
                "transaction_id": payment_record.transaction_id,
                "user_id": user_id,
            },
        )
        return record, payment_record

    @_ledger_operation("Gagal memperbarui pembayaran")
    def update_payment(
        self, payment_id: int, patch: Mapping[str, Any], *, user_id: int
    ) -> tuple[DebtRecord, DebtPaymentRecord]:
        """Edit a payment and keep its mirror and the debt in step.

        The overpay baseline excludes the payment's original amount. Omitting
        ``record_transaction`` keeps the current linkage; False removes the
        mirror.
        """

        with self._unit_of_work() as repos:
            payment = self._require_payment(repos, payment_id, user_id=user_id)
            debt = self._require_debt(repos, payment.debt_id, user_id=user_id)

            amount = (
                self._validate_amount(patch["amount"]) if "amount" in patch else payment.amount
            )
            paid_on = _parse_when(patch.get("date"), field_name="date") or payment.occurred_at
            notes = clean_text(patch["notes"]) if "notes" in patch else payment.notes
            account_id = (
                _optional_id(patch["account_id"], field_name="account_id")
                if "account_id" in patch
                else payment.account_id
            )
            category_id = (
                _optional_id(patch["category_id"], field_name="category_id")
                if "category_id" in patch
                else payment.category_id
            )
            requested = patch.get("record_transaction")
            wants_mirror = (
                requested is not False if requested is not None else payment.transaction_id is not None
            )

            paid_total = repos.payments.total_for_debt(debt.id, user_id=user_id)
            self._guard_overpay(
                debt,
                paid_before=paid_total - payment.amount,
                payment_amount=amount,
                allow_overpay=patch.get("allow_overpay") is True,
            )
            account = self._resolve_account(
                repos, account_id, required=wants_mirror, user_id=user_id
            )

            existing = (
                repos.transactions.get_by_id(payment.transaction_id, user_id=user_id)
                if payment.transaction_id is not None
                else None
            )
            transaction: Optional[Transaction] = None
            if wants_mirror and existing is not None:
                existing.type = mirror_type(debt)
                existing.amount = amount
                existing.occurred_at = truncate_to_day(paid_on)
                existing.account_id = account_id
                existing.notes = notes
                if "category_id" in patch:
                    existing.category_id = category_id
                if clean_text(patch.get("title")):
                    existing.title = clean_text(patch["title"])
                transaction = repos.transactions.update(existing, user_id=user_id)
            elif wants_mirror:
                transaction = self._create_mirror(
                    repos,
                    debt,
                    amount=amount,
                    paid_on=paid_on,
                    account_id=account_id,
                    category_id=category_id,
                    notes=notes,
                    title=patch.get("title"),
                    user_id=user_id,
                )
            elif payment.transaction_id is not None:
                repos.transactions.soft_delete(
                    payment.transaction_id, user_id=user_id, at=self.clock()
                )

            payment.amount = amount
            payment.occurred_at = paid_on
            payment.notes = notes
            payment.account_id = account_id
            payment.account_name = account.name if account else None
            payment.category_id = category_id
            payment.transaction_id = transaction.id if transaction else None
            payment.updated_at = self.clock()
            payment = repos.payments.update(payment, user_id=user_id)

            debt = self._recalculate(
                repos,
                debt,
                user_id=user_id,
                paid_on=paid_on,
                mark_as_paid=patch.get("mark_as_paid"),
            )
            return (
                self._map_debt(debt),
                map_payment_row(
                    payment,
                    account_name=account.name if account else None,
                    transaction=transaction,
                ),
            )

    @_ledger_operation("Gagal menghapus pembayaran")
    def delete_payment(
        self, payment_id: int, *, user_id: int, with_rollback: bool = True
    ) -> Optional[DebtRecord]:
        """Delete a payment and recalculate its debt automatically.

        With ``with_rollback`` the linked transaction is soft-deleted on a
        best-effort basis; otherwise it stays as a standalone cash-flow entry.
        """

        with self._unit_of_work() as repos:
            payment = self._require_payment(repos, payment_id, user_id=user_id)
            debt_id = payment.debt_id
            transaction_id = payment.transaction_id
            repos.payments.delete(payment_id, user_id=user_id)
            if with_rollback and transaction_id is not None:
                self._release_mirror(repos, transaction_id, user_id=user_id)

            debt = repos.debts.get_by_id(debt_id, user_id=user_id, for_update=True)
            if debt is None:
                return None
            return self._map_debt(self._recalculate(repos, debt, user_id=user_id))
