"""Companion app management: status, ping."""

from __future__ import annotations

import click

from ..output import output_json


@click.group()
def companion():
    """Check companion app connection status."""
    pass


@companion.command()
@click.pass_context
def status(ctx):
    """Show companion app status and health data availability."""
    from ..companion import CompanionHealthStore, CompanionNotAvailableError
    from ..companion.types import to_dict
    try:
        store = CompanionHealthStore(url=ctx.obj.get("companion_url"), timeout=ctx.obj.get("timeout"))
        output_json({"url": store.url, **to_dict(store.status())})
    except CompanionNotAvailableError as e:
        output_json({"error": str(e)})
        raise SystemExit(1)


@companion.command()
@click.pass_context
def ping(ctx):
    """Ping the companion app and measure latency."""
    from ..companion import CompanionHealthStore, CompanionNotAvailableError
    try:
        store = CompanionHealthStore(url=ctx.obj.get("companion_url"), timeout=ctx.obj.get("timeout"))
        output_json(store.ping())
    except CompanionNotAvailableError as e:
        output_json({"error": str(e)})
        raise SystemExit(1)
