"""Database and extension wiring for HematWoi."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from flask import Flask, Request, current_app
from sqlalchemy.engine import Engine
from sqlmodel import Session

from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database
from .services.debt_ledger import DebtLedger
from .services.payment_drafts import PaymentDraftStore

EXTENSION_KEY = "hematwoi"
USER_HEADER = "X-HematWoi-User"

UserResolver = Callable[[Request], Optional[int]]


def resolve_user_from_header(request: Request) -> Optional[int]:
    """Default identity hook: a positive user id in the ``X-HematWoi-User`` header."""

    raw = (request.headers.get(USER_HEADER) or "").strip()
    try:
        user_id = int(raw)
    except ValueError:
        return None
    return user_id if user_id > 0 else None


@dataclass
class LedgerState:
    """Per-app objects shared by the blueprints and CLI commands."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    ledger: DebtLedger
    drafts: PaymentDraftStore
    user_resolver: UserResolver


def init_db(app: Flask, *, user_resolver: Optional[UserResolver] = None) -> LedgerState:
    """Initialize the engine, schema and ledger using configuration from the app."""

    config: BaseConfig = app.config["HEMATWOI_CONFIG"]
    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    state = LedgerState(
        config=config,
        engine=engine,
        session_factory=session_factory,
        ledger=DebtLedger(session_factory, config=config),
        drafts=PaymentDraftStore(config.drafts_path),
        user_resolver=user_resolver or resolve_user_from_header,
    )
    app.extensions[EXTENSION_KEY] = state
    return state


def get_state(app: Optional[Flask] = None) -> LedgerState:
    """Return the ledger state registered on ``app`` (or the current app)."""

    target = app or current_app
    state = target.extensions.get(EXTENSION_KEY)
    if state is None:  # pragma: no cover - misconfigured app
        raise RuntimeError("Database engine not initialized")
    return state


@contextmanager
def session_scope(app: Optional[Flask] = None) -> Iterator[Session]:
    """Provide a transactional scope around operations."""

    with get_state(app).session_factory() as session:
        yield session
