"""Ledger error taxonomy.

Every error carries a user-facing (Indonesian) message and a stable ``code``
the HTTP layer maps to a status. Store failures never expose the underlying
driver message.
"""

from __future__ import annotations

from typing import Any, Optional


class HematWoiError(Exception):
    """Base class for errors surfaced to callers of the ledger."""

    code = "error"
    status_code = 400
    default_message = "Terjadi kesalahan."

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ValidationError(HematWoiError):
    """Input rejected before any write took place."""

    code = "validation_error"
    status_code = 422
    default_message = "Data tidak valid."

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None, **context: Any):
        super().__init__(message, **context)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class InvalidAmount(ValidationError):
    code = "invalid_amount"
    default_message = "Nominal tidak valid."


class MissingAccount(ValidationError):
    code = "missing_account"
    default_message = "Akun sumber wajib dipilih."


class NotFoundError(HematWoiError):
    code = "not_found"
    status_code = 404
    default_message = "Data tidak ditemukan."


class OverpayRejected(HematWoiError):
    """Payment would exceed the remaining balance beyond the rounding tolerance."""

    code = "overpay_rejected"
    status_code = 409
    default_message = "Nominal pembayaran melebihi sisa tagihan."

    def __init__(self, message: Optional[str] = None, *, remaining: float = 0.0, excess: float = 0.0):
        super().__init__(message, remaining=remaining, excess=excess)
        self.remaining = remaining
        self.excess = excess

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"remaining": self.remaining, "excess": self.excess})
        return payload


class DependencyError(HematWoiError):
    """The persistence layer failed; the message is a generic fallback."""

    code = "dependency_error"
    status_code = 503
    default_message = "Layanan penyimpanan sedang bermasalah. Coba lagi nanti."


class AuthenticationRequired(HematWoiError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Pengguna tidak ditemukan. Silakan masuk kembali."


__all__ = [
    "AuthenticationRequired",
    "DependencyError",
    "HematWoiError",
    "InvalidAmount",
    "MissingAccount",
    "NotFoundError",
    "OverpayRejected",
    "ValidationError",
]
