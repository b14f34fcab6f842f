"""SQLModel table exports."""

from .account import Account
from .category import Category
from .debt import Debt, DebtPayment
from .transaction import Transaction
from .user import User

__all__ = [
    "Account",
    "Category",
    "Debt",
    "DebtPayment",
    "Transaction",
    "User",
]
