"""Configuration tests."""

from __future__ import annotations

import pytest

from hematwoi.config import BaseConfig


def test_defaults(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEMATWOI_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("HEMATWOI_DATABASE_URL", raising=False)
    for name in ("PAID_EPSILON", "OVERPAY_TOLERANCE", "DUE_SOON_DAYS", "MAX_TENOR_MONTHS"):
        monkeypatch.delenv(f"HEMATWOI_{name}", raising=False)

    config = BaseConfig()

    assert config.DATABASE_URL == f"sqlite:///{tmp_path.resolve() / 'hematwoi.db'}"
    assert config.PAID_EPSILON == 0.0001
    assert config.OVERPAY_TOLERANCE == 0.009
    assert config.DUE_SOON_DAYS == 7
    assert config.MAX_TENOR_MONTHS == 36
    assert config.drafts_path.parent == tmp_path.resolve()
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_tolerances_from_environment(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEMATWOI_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HEMATWOI_OVERPAY_TOLERANCE", "0.5")
    monkeypatch.setenv("HEMATWOI_DUE_SOON_DAYS", "14")
    monkeypatch.setenv("HEMATWOI_MAX_TENOR_MONTHS", "not-a-number")

    config = BaseConfig()

    assert config.OVERPAY_TOLERANCE == 0.5
    assert config.DUE_SOON_DAYS == 14
    assert config.MAX_TENOR_MONTHS == 36


def test_non_dev_mode_requires_secret(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEMATWOI_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HEMATWOI_DEV_MODE", "false")
    monkeypatch.delenv("HEMATWOI_SECRET_KEY", raising=False)

    with pytest.raises(ValueError):
        BaseConfig()
