"""Flask CLI command tests."""

from __future__ import annotations

import pytest

from hematwoi import create_app
from hematwoi.extensions import get_state, session_scope
from hematwoi.models import Account, User
from hematwoi.services.debt_ledger import DebtInput
from hematwoi.services.payment_drafts import PaymentDraft


@pytest.fixture()
def cli_app(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEMATWOI_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HEMATWOI_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    app = create_app("development")
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def seeded(cli_app) -> dict[str, int]:
    with cli_app.app_context():
        with session_scope() as session:
            user = User(username="cli-user")
            session.add(user)
            session.flush()
            account = Account(user_id=user.id, name="Kas")
            session.add(account)
            session.flush()
            ids = {"user_id": user.id, "account_id": account.id}
    debt = get_state(cli_app).ledger.create_debt(
        DebtInput(type="debt", amount=500, party_name="Budi"), user_id=ids["user_id"]
    )
    ids["debt_id"] = debt.id
    return ids


def test_recalculate_command(cli_app, seeded):
    runner = cli_app.test_cli_runner()

    result = runner.invoke(args=["hematwoi-recalculate", "--user-id", str(seeded["user_id"])])

    assert result.exit_code == 0
    assert "Recalculated 1 debts" in result.output


def test_flush_drafts_command(cli_app, seeded):
    state = get_state(cli_app)
    state.drafts.save_draft(
        PaymentDraft(
            id="offline-1",
            debt_id=seeded["debt_id"],
            account_id=seeded["account_id"],
            amount=200,
            paid_at="2024-05-10",
        )
    )
    runner = cli_app.test_cli_runner()

    result = runner.invoke(args=["hematwoi-flush-drafts", "--user-id", str(seeded["user_id"])])

    assert result.exit_code == 0
    assert "Submitted 1 drafts." in result.output
    assert state.drafts.list_drafts() == []
    record, payments = state.ledger.get_debt(seeded["debt_id"], user_id=seeded["user_id"])
    assert record.paid_total == 200
    assert [p.client_ref for p in payments] == ["offline-1"]


def test_flush_drafts_command_reports_foreign_drafts(cli_app, seeded):
    state = get_state(cli_app)
    state.drafts.save_draft(
        PaymentDraft(
            id="foreign",
            debt_id=seeded["debt_id"],
            account_id=seeded["account_id"],
            amount=50,
            paid_at="2024-05-10",
            user_id=seeded["user_id"] + 1,
        )
    )
    runner = cli_app.test_cli_runner()

    result = runner.invoke(args=["hematwoi-flush-drafts", "--user-id", str(seeded["user_id"])])

    assert result.exit_code == 0
    assert "Submitted 0 drafts." in result.output
    assert "Skipped 1 drafts owned by other users." in result.output
    assert [d.id for d in state.drafts.list_drafts()] == ["foreign"]
