"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .debt import SQLModelDebtRepository
from .debt_payment import SQLModelDebtPaymentRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelDebtPaymentRepository",
    "SQLModelDebtRepository",
    "SQLModelTransactionRepository",
]
