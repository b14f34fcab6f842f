"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, ignoring unparsable values."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HematWoi"
    DB_FILENAME = "hematwoi.db"
    DRAFTS_FILENAME = "debt_payment_drafts.json"
    SQLITE_PRAGMAS = {"foreign_keys": "on"}

    # Reconciliation tolerances. These absorb float drift; they are not business rules.
    DEFAULT_PAID_EPSILON = 0.0001
    DEFAULT_OVERPAY_TOLERANCE = 0.009
    DEFAULT_DUE_SOON_DAYS = 7
    DEFAULT_MAX_TENOR_MONTHS = 36

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("HEMATWOI_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HEMATWOI_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("HEMATWOI_DATABASE_URL", self._build_sqlite_url())
        self.PAID_EPSILON = _env_float("HEMATWOI_PAID_EPSILON", self.DEFAULT_PAID_EPSILON)
        self.OVERPAY_TOLERANCE = _env_float(
            "HEMATWOI_OVERPAY_TOLERANCE", self.DEFAULT_OVERPAY_TOLERANCE
        )
        self.DUE_SOON_DAYS = _env_int("HEMATWOI_DUE_SOON_DAYS", self.DEFAULT_DUE_SOON_DAYS)
        self.MAX_TENOR_MONTHS = _env_int(
            "HEMATWOI_MAX_TENOR_MONTHS", self.DEFAULT_MAX_TENOR_MONTHS
        )
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("HEMATWOI_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory holding the SQLite file, logs and drafts."""

        data_root = os.getenv("HEMATWOI_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def drafts_path(self) -> Path:
        """Location of the offline payment draft queue."""

        return Path(self.DATA_DIR) / self.DRAFTS_FILENAME

    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.is_sqlite():
            engine_options["connect_args"] = {"check_same_thread": False}
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False
