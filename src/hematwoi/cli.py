"""Flask CLI commands for HematWoi."""

from __future__ import annotations

import click

from .domain.errors import HematWoiError


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("hematwoi-recalculate")
    @click.option("--user-id", type=int, required=True, help="Owner of the debts")
    def hematwoi_recalculate(user_id: int) -> None:
        """Rebuild paid totals and statuses from payment rows."""

        from .extensions import get_state

        try:
            records = get_state(app).ledger.recalculate_all(user_id=user_id)
        except HematWoiError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Recalculated {len(records)} debts for user {user_id}.")

    @app.cli.command("hematwoi-flush-drafts")
    @click.option("--user-id", type=int, required=True, help="Owner of the drafts")
    def hematwoi_flush_drafts(user_id: int) -> None:
        """Submit offline payment drafts."""

        from .extensions import get_state
        from .services.payment_drafts import flush_drafts

        state = get_state(app)
        report = flush_drafts(state.ledger, state.drafts, user_id=user_id)
        click.echo(f"Submitted {len(report.submitted)} drafts.")
        for draft_id, message in report.failed.items():
            click.echo(f"Draft {draft_id} kept: {message}")
        if report.skipped:
            click.echo(f"Skipped {len(report.skipped)} drafts owned by other users.")
