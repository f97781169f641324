"""Shared output utilities: JSON for agents, rich cards for people."""

from __future__ import annotations

import json
import sys
from datetime import date, tzinfo
from typing import Optional

from rich.columns import Columns
from rich.console import Console, Group, RenderableType
from rich.json import JSON as RichJSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .formatting import (
    format_clock,
    format_date,
    format_energy,
    format_heart_rate,
    format_sleep,
    format_steps,
)
from .models import AuthorizationState, DailyMetrics
from .viewmodel import DashboardViewModel

console = Console()

TITLE = "Health Dashboard"
ALERT_TITLE = "Authorization Error"
ALERT_MESSAGE = "Unable to access HealthKit. Please ensure Health access is enabled in Settings."
PROMPT_TITLE = "Health Data Access Required"
PROMPT_MESSAGE = "Please authorize access to your health data to see your health metrics."


def output_json(data: dict | list):
    """Standard JSON output for agent consumption."""
    if sys.stdout.isatty():
        console.print(RichJSON(json.dumps(data, indent=2, default=str)))
    else:
        print(json.dumps(data, default=str))


# ------------------------------------------------------------------
# Cards
# ------------------------------------------------------------------

def metric_cards(metrics: DailyMetrics | None) -> list[tuple[str, str, str]]:
    """(title, value, icon) for each card. Unfetched metrics show defaults."""
    if metrics is None:
        metrics = DailyMetrics(date=date.today())
    return [
        ("Steps", format_steps(metrics.step_count), ":athletic_shoe:"),
        ("Active Energy", format_energy(metrics.active_energy_kcal), ":fire:"),
        ("Sleep", format_sleep(metrics.sleep_hours), ":bed:"),
        ("Heart Rate", format_heart_rate(metrics.average_heart_rate_bpm), ":red_heart:"),
    ]


def _card(title: str, value: str, icon: str) -> Panel:
    body = Text.assemble((f"{title}\n", "bold"), (value, "bold cyan"))
    return Panel(body, title=icon, title_align="left", width=26, border_style="blue")


def _access_prompt() -> Panel:
    return Panel(
        Text.assemble((f"{PROMPT_TITLE}\n\n", "bold"), (PROMPT_MESSAGE, "dim")),
        subtitle="run: onehealth health authorize",
        border_style="blue",
    )


def render_dashboard(view_model: DashboardViewModel, tz: Optional[tzinfo] = None) -> RenderableType:
    """The authorization prompt, or the four metric cards once access is granted."""
    parts: list[RenderableType] = [Text(TITLE, style="bold")]
    if view_model.show_alert:
        parts.append(Panel(ALERT_MESSAGE, title=ALERT_TITLE, border_style="red"))

    if view_model.authorization is AuthorizationState.GRANTED:
        parts.append(Columns([_card(*c) for c in metric_cards(view_model.today)]))
        if view_model.history:
            parts.append(render_history(view_model.history, tz))
    else:
        parts.append(_access_prompt())
    return Group(*parts)


def render_history(history, tz: Optional[tzinfo] = None) -> Table:
    table = Table(title="History")
    table.add_column("Date")
    table.add_column("Bed")
    table.add_column("Wake")
    table.add_column("Sleep", justify="right")
    table.add_column("Steps", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("Heart Rate", justify="right")
    for day in history:
        table.add_row(
            format_date(day.date),
            format_clock(day.bed_time, tz),
            format_clock(day.wake_time, tz),
            format_sleep(day.sleep_hours),
            format_steps(day.step_count),
            format_energy(day.active_energy_kcal),
            format_heart_rate(day.average_heart_rate_bpm),
        )
    return table
