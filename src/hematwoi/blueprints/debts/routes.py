"""Debts JSON routes."""

from __future__ import annotations

from flask import jsonify, request

from ...domain.errors import AuthenticationRequired, HematWoiError, NotFoundError
from ...extensions import get_state
from . import bp
from .forms import (
    debt_input_from,
    debt_patch_from,
    filters_from,
    parse_flag,
    payment_input_from,
    payment_patch_from,
)


def _current_user_id() -> int:
    user_id = get_state().user_resolver(request)
    if user_id is None:
        raise AuthenticationRequired()
    return user_id


def _json_body():
    return request.get_json(silent=True) or {}


@bp.errorhandler(HematWoiError)
def handle_ledger_error(exc: HematWoiError):
    return jsonify(exc.to_dict()), exc.status_code


@bp.get("/")
def list_debts():
    """List debts with the dashboard summary."""

    user_id = _current_user_id()
    result = get_state().ledger.list_debts(filters_from(request.args), user_id=user_id)
    return jsonify(result.to_dict())


@bp.post("/")
def create_debt():
    user_id = _current_user_id()
    record = get_state().ledger.create_debt(debt_input_from(_json_body()), user_id=user_id)
    return jsonify({"debt": record.to_dict()}), 201


@bp.get("/<int:debt_id>")
def get_debt(debt_id: int):
    user_id = _current_user_id()
    record, payments = get_state().ledger.get_debt(debt_id, user_id=user_id)
    if record is None:
        raise NotFoundError("Hutang tidak ditemukan.")
    return jsonify(
        {"debt": record.to_dict(), "payments": [payment.to_dict() for payment in payments]}
    )


@bp.patch("/<int:debt_id>")
def update_debt(debt_id: int):
    user_id = _current_user_id()
    record = get_state().ledger.update_debt(
        debt_id, debt_patch_from(_json_body()), user_id=user_id
    )
    return jsonify({"debt": record.to_dict()})


@bp.delete("/<int:debt_id>")
def delete_debt(debt_id: int):
    user_id = _current_user_id()
    get_state().ledger.delete_debt(debt_id, user_id=user_id)
    return "", 204


@bp.get("/<int:debt_id>/payments")
def list_payments(debt_id: int):
    user_id = _current_user_id()
    payments = get_state().ledger.list_payments(debt_id, user_id=user_id)
    return jsonify({"items": [payment.to_dict() for payment in payments]})


@bp.post("/<int:debt_id>/payments")
def create_payment(debt_id: int):
    user_id = _current_user_id()
    record, payment = get_state().ledger.create_payment(
        debt_id, payment_input_from(_json_body()), user_id=user_id
    )
    return jsonify({"debt": record.to_dict(), "payment": payment.to_dict()}), 201


@bp.patch("/payments/<int:payment_id>")
def update_payment(payment_id: int):
    user_id = _current_user_id()
    record, payment = get_state().ledger.update_payment(
        payment_id, payment_patch_from(_json_body()), user_id=user_id
    )
    return jsonify({"debt": record.to_dict(), "payment": payment.to_dict()})


@bp.delete("/payments/<int:payment_id>")
def delete_payment(payment_id: int):
    """Delete a payment; ``?rollback=0`` keeps its cash-flow entry."""

    user_id = _current_user_id()
    raw = request.args.get("rollback", request.args.get("withRollback"))
    with_rollback = parse_flag(raw)
    record = get_state().ledger.delete_payment(
        payment_id,
        user_id=user_id,
        with_rollback=with_rollback is not False,
    )
    return jsonify({"debt": record.to_dict() if record else None})
