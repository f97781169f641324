"""CLI entry point for onehealth.

Usage:
    onehealth dashboard [--history] [--days 30]
    onehealth health today
    onehealth health history [--days 30]
    onehealth health authorize
    onehealth companion status
    onehealth companion ping
    onehealth doctor
    onehealth mock [--port 8200] [--authorized]
    onehealth serve
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.live import Live

from .commands.companion import companion
from .commands.health import health, open_dashboard
from .fetcher import HISTORY_DAYS
from .models import AuthorizationState
from .output import console, output_json, render_dashboard


def _configure_logging(verbose: bool):
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.option("--companion-url", envvar="COMPANION_URL", default=None,
              help="Companion app URL (skips mDNS discovery)")
@click.option("--timeout", envvar="ONEHEALTH_TIMEOUT", default=10.0, type=float,
              help="HTTP timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def main(ctx, companion_url: str | None, timeout: float, verbose: bool):
    """onehealth: steps, energy, sleep and heart rate from HealthKit."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["companion_url"] = companion_url
    ctx.obj["timeout"] = timeout


main.add_command(health)
main.add_command(companion)


# ------------------------------------------------------------------
# Interactive dashboard
# ------------------------------------------------------------------

def _run_live(dash, action):
    """Run one dashboard action, re-rendering on every view-model change."""
    tz = dash.fetcher.tz
    with Live(render_dashboard(dash.view_model, tz), console=console, refresh_per_second=8) as live:
        unsubscribe = dash.view_model.subscribe(lambda vm: live.update(render_dashboard(vm, tz)))
        try:
            asyncio.run(action())
        finally:
            unsubscribe()


@main.command()
@click.option("--history", is_flag=True, help="Include the per-day history table")
@click.option("--days", default=HISTORY_DAYS, help="History window in days")
@click.pass_context
def dashboard(ctx, history: bool, days: int):
    """Show the health dashboard cards."""
    dash = open_dashboard(ctx, include_history=history, history_days=days)
    _run_live(dash, dash.mount)

    vm = dash.view_model
    if vm.authorization is not AuthorizationState.GRANTED and sys.stdin.isatty():
        if click.confirm("Authorize access to your health data?", default=True):
            _run_live(dash, dash.request_access)

    if vm.authorization is not AuthorizationState.GRANTED:
        raise SystemExit(1)


# ------------------------------------------------------------------
# Health check
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def doctor(ctx):
    """Check that the companion app and health data are reachable."""
    from .companion import CompanionHealthStore, CompanionNotAvailableError
    from .models import READ_SCOPES
    from .store import STATUS_UNNECESSARY, HealthStoreError

    checks = {}

    console.print("Checking companion app...", end=" ")
    try:
        store = CompanionHealthStore(url=ctx.obj.get("companion_url"), timeout=ctx.obj.get("timeout"))
        status = store.status()
        console.print("[green]✓[/green]")
        checks["companion"] = {"status": "ok", "url": store.url, "mock": status.mock}
    except CompanionNotAvailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        checks["companion"] = {"status": "error", "error": str(e)}

    if checks["companion"]["status"] == "ok":
        console.print("Checking health data availability...", end=" ")
        if status.health_data_available:
            console.print("[green]✓[/green]")
            checks["health_data"] = {"status": "ok"}
        else:
            console.print("[red]✗ Not available on this device[/red]")
            checks["health_data"] = {"status": "error", "error": "unavailable"}

    if checks.get("health_data", {}).get("status") == "ok":
        console.print("Checking authorization...", end=" ")
        try:
            auth = store.authorization_status(READ_SCOPES)
            if auth == STATUS_UNNECESSARY:
                console.print("[green]✓[/green]")
                checks["authorization"] = {"status": "ok"}
            else:
                console.print("[yellow]✗ Run 'onehealth health authorize'[/yellow]")
                checks["authorization"] = {"status": "error", "error": auth}
        except HealthStoreError as e:
            console.print(f"[red]✗ {e}[/red]")
            checks["authorization"] = {"status": "error", "error": str(e)}

    console.print()
    if all(c.get("status") == "ok" for c in checks.values()):
        console.print("[bold green]All systems operational![/bold green]")
    else:
        console.print("[bold yellow]Some checks failed. See above.[/bold yellow]")

    output_json(checks)


# ------------------------------------------------------------------
# Mock companion server
# ------------------------------------------------------------------

@main.command()
@click.option("--port", default=8200, help="Port to listen on")
@click.option("--no-bonjour", is_flag=True, help="Skip Bonjour/mDNS advertisement")
@click.option("--authorized", is_flag=True, help="Start with read access already granted")
@click.option("--deny", is_flag=True, help="Decline the authorization prompt")
@click.option("--unavailable", is_flag=True, help="Report health data as unavailable")
def mock(port: int, no_bonjour: bool, authorized: bool, deny: bool, unavailable: bool):
    """Run a mock companion server with generated health data."""
    from .mock.server import MockHealthState, serve

    state = MockHealthState(
        available=not unavailable,
        deny=deny,
        decision=True if authorized else None,
    )
    serve(port, bonjour=not no_bonjour, state=state)


# ------------------------------------------------------------------
# MCP Server
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def serve(ctx):
    """Start MCP server exposing the dashboard as tools."""
    Console(stderr=True).print("[bold]Starting onehealth MCP server...[/bold]")
    from .mcp.server import run_server
    run_server(companion_url=ctx.obj["companion_url"], timeout=ctx.obj["timeout"])


if __name__ == "__main__":
    main()
