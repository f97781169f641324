"""Health data commands: today, history, authorize."""

from __future__ import annotations

import asyncio

import click

from ..fetcher import HISTORY_DAYS
from ..output import ALERT_MESSAGE, output_json


def open_dashboard(ctx, include_history: bool = False, history_days: int = HISTORY_DAYS):
    """Build a dashboard on the companion store, or exit with a JSON error."""
    from ..app import HealthDashboard
    from ..companion import CompanionHealthStore, CompanionNotAvailableError
    try:
        store = CompanionHealthStore(url=ctx.obj.get("companion_url"), timeout=ctx.obj.get("timeout"))
    except CompanionNotAvailableError as e:
        output_json({"error": str(e)})
        raise SystemExit(1)
    return HealthDashboard(store, include_history=include_history, history_days=history_days)


def _granted_or_exit(dash):
    from ..store import AuthorizationDeniedError
    if dash.view_model.show_alert:
        output_json({"error": ALERT_MESSAGE})
        raise SystemExit(1)
    try:
        dash.require_granted()
    except AuthorizationDeniedError as e:
        output_json({"error": str(e), "authorization": dash.view_model.authorization.value})
        raise SystemExit(1)


@click.group()
def health():
    """Read HealthKit data through the companion app."""
    pass


@health.command()
@click.pass_context
def today(ctx):
    """Get today's steps, active energy, sleep and heart rate."""
    dash = open_dashboard(ctx)
    asyncio.run(dash.mount())
    _granted_or_exit(dash)
    output_json(dash.view_model.to_dict()["today"])


@health.command()
@click.option("--days", default=HISTORY_DAYS, help="Number of days to retrieve")
@click.pass_context
def history(ctx, days: int):
    """Get per-day metrics with bed and wake times, most recent first."""
    dash = open_dashboard(ctx, include_history=True, history_days=days)
    asyncio.run(dash.mount())
    _granted_or_exit(dash)
    output_json(dash.view_model.to_dict()["history"])


@health.command()
@click.pass_context
def authorize(ctx):
    """Request read access (prompts on the iPhone the first time only)."""
    dash = open_dashboard(ctx)
    asyncio.run(dash.request_access())
    _granted_or_exit(dash)
    output_json(dash.view_model.to_dict())
