"""Pytest configuration and shared fixtures for HematWoi tests.

This module provides database fixtures, test data factories, and helper utilities
for testing the debt ledger without touching the real app database.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlmodel import select

from hematwoi.config import BaseConfig
from hematwoi.infra.database import create_db_engine, create_session_factory, init_database
from hematwoi.models import Account, Category, Debt, DebtPayment, Transaction, User
from hematwoi.services.debt_ledger import DebtLedger

# Mid-month so "this month" and "next month" windows are both meaningful.
FIXED_NOW = datetime(2024, 5, 15, 9, 30)


# =============================================================================
# Configuration and Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def test_config(tmp_path, monkeypatch: pytest.MonkeyPatch) -> BaseConfig:
    """Configuration pointing every file (database, logs, drafts) at tmp_path."""

    monkeypatch.setenv("HEMATWOI_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HEMATWOI_DATABASE_URL", f"sqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setenv("HEMATWOI_DEV_MODE", "true")
    return BaseConfig()


@pytest.fixture(scope="function")
def db_engine(test_config):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: engine with all tables created
    """
    engine = create_db_engine(test_config)
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory with the same commit/rollback semantics as the app."""

    return create_session_factory(db_engine)


@pytest.fixture
def clock():
    """Frozen clock used by the ledger under test."""

    return lambda: FIXED_NOW


@pytest.fixture
def ledger(session_factory, test_config, clock) -> DebtLedger:
    return DebtLedger(session_factory, config=test_config, clock=clock)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(session_factory):
    """Factory for creating users that own ledger rows."""

    def _create_user(username: str = "tester", role: str = "user") -> User:
        with session_factory() as session:
            existing = session.exec(select(User).where(User.username == username)).first()
            if existing is not None:
                return existing
            user = User(username=username, role=role)
            session.add(user)
            session.flush()
            session.refresh(user)
            return user

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Create a default user for scoping data."""

    return user_factory()


@pytest.fixture
def other_user(user_factory) -> User:
    return user_factory("someone-else")


@pytest.fixture
def account_factory(session_factory, user):
    """Factory for creating test accounts.

    Returns:
        Callable: Function that creates and persists Account instances
    """

    def _create_account(
        name: str = "Dompet",
        account_type: str = "cash",
        owner: User | None = None,
    ) -> Account:
        owner = owner or user
        with session_factory() as session:
            account = Account(name=name, type=account_type, user_id=owner.id)
            session.add(account)
            session.flush()
            session.refresh(account)
            return account

    return _create_account


@pytest.fixture
def category_factory(session_factory, user):
    """Factory for creating test categories."""

    def _create_category(
        name: str = "Cicilan",
        category_type: str = "expense",
        owner: User | None = None,
    ) -> Category:
        owner = owner or user
        with session_factory() as session:
            category = Category(name=name, category_type=category_type, user_id=owner.id)
            session.add(category)
            session.flush()
            session.refresh(category)
            return category

    return _create_category


@pytest.fixture
def fetch_rows(session_factory):
    """Read raw rows straight from the store, bypassing the ledger."""

    def _fetch(model):
        with session_factory() as session:
            return list(session.exec(select(model).order_by(model.id)).all())

    return _fetch


@pytest.fixture
def fetch_transactions(fetch_rows):
    return lambda: fetch_rows(Transaction)


@pytest.fixture
def fetch_payments(fetch_rows):
    return lambda: fetch_rows(DebtPayment)


@pytest.fixture
def fetch_debts(fetch_rows):
    return lambda: fetch_rows(Debt)


# =============================================================================
# Helper Utilities
# =============================================================================


def assert_float_equal(actual: float, expected: float, tolerance: float = 0.01) -> None:
    """Assert two money values are equal within a tolerance."""

    assert abs(actual - expected) < tolerance, f"Expected {expected}, got {actual}"
