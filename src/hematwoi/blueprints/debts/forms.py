"""Request payload parsing for the debts API.

Clients send either snake_case or camelCase keys; both are folded into the
snake_case names the ledger accepts. Value validation stays in the ledger.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from ...domain.errors import ValidationError
from ...services.debt_ledger import DebtFilters, DebtInput, PaymentInput

_KEY_ALIASES = {
    "partyName": "party_name",
    "dueDate": "due_date",
    "ratePercent": "rate_percent",
    "rate": "rate_percent",
    "tenorMonths": "tenor_months",
    "tenor": "tenor_months",
    "accountId": "account_id",
    "categoryId": "category_id",
    "recordTransaction": "record_transaction",
    "markAsPaid": "mark_as_paid",
    "allowOverpay": "allow_overpay",
    "clientRef": "client_ref",
    "withRollback": "with_rollback",
    "paidAt": "date",
    "paid_at": "date",
    "note": "notes",
    "dateField": "date_field",
    "dateFrom": "date_from",
    "dateTo": "date_to",
}

_DEBT_FIELDS = (
    "type",
    "party_name",
    "title",
    "date",
    "due_date",
    "amount",
    "rate_percent",
    "notes",
    "tenor_months",
    "status",
)
_PAYMENT_FIELDS = (
    "amount",
    "date",
    "notes",
    "account_id",
    "category_id",
    "title",
    "record_transaction",
    "mark_as_paid",
    "allow_overpay",
    "client_ref",
)
_FLAG_FIELDS = {"record_transaction", "mark_as_paid", "allow_overpay", "with_rollback"}


def parse_flag(value: Any) -> Optional[bool]:
    """Interpret JSON/query flag values; None means "not given"."""

    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValidationError("Nilai pilihan tidak valid.")


def normalize_payload(data: Any) -> dict[str, Any]:
    """Fold camelCase aliases into snake_case keys; flags become booleans."""

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValidationError("Format data tidak valid.")
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        name = _KEY_ALIASES.get(key, key)
        normalized[name] = parse_flag(value) if name in _FLAG_FIELDS else value
    return normalized


def debt_input_from(data: Any) -> DebtInput:
    payload = normalize_payload(data)
    return DebtInput(
        type=payload.get("type") or "",
        amount=payload.get("amount"),
        party_name=payload.get("party_name") or "",
        title=payload.get("title") or "",
        date=payload.get("date"),
        due_date=payload.get("due_date"),
        rate_percent=payload.get("rate_percent"),
        notes=payload.get("notes"),
        tenor_months=payload.get("tenor_months", 1),
    )


def debt_patch_from(data: Any) -> dict[str, Any]:
    """Keep only debt fields that were actually sent."""

    payload = normalize_payload(data)
    return {key: payload[key] for key in _DEBT_FIELDS if key in payload}


def payment_input_from(data: Any) -> PaymentInput:
    payload = normalize_payload(data)
    return PaymentInput(
        amount=payload.get("amount"),
        date=payload.get("date"),
        notes=payload.get("notes"),
        account_id=payload.get("account_id"),
        category_id=payload.get("category_id"),
        title=payload.get("title"),
        record_transaction=payload.get("record_transaction"),
        mark_as_paid=payload.get("mark_as_paid"),
        allow_overpay=payload.get("allow_overpay") is True,
        client_ref=payload.get("client_ref"),
    )


def payment_patch_from(data: Any) -> dict[str, Any]:
    payload = normalize_payload(data)
    return {key: payload[key] for key in _PAYMENT_FIELDS if key in payload}


def filters_from(args: Mapping[str, Any]) -> DebtFilters:
    """Build listing filters from query-string arguments."""

    payload = normalize_payload(dict(args))
    return DebtFilters(
        q=payload.get("q"),
        type=payload.get("type") or "all",
        status=payload.get("status") or "all",
        date_field=payload.get("date_field") or "created_at",
        date_from=payload.get("date_from"),
        date_to=payload.get("date_to"),
        sort=payload.get("sort") or "newest",
    )
