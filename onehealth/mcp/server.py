"""MCP Server for onehealth.

Exposes the health dashboard as MCP tools so any MCP-compatible agent can
read today's metrics and the per-day history.

Add to your MCP config:
{
  "mcpServers": {
    "onehealth": {
      "command": "onehealth",
      "args": ["serve"]
    }
  }
}
"""

from __future__ import annotations

import json
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from ..app import HealthDashboard
from ..companion import CompanionHealthStore
from ..fetcher import HISTORY_DAYS
from ..output import ALERT_MESSAGE
from ..store import HealthStore, HealthStoreError


def create_server(store: HealthStore) -> Server:
    server = Server("onehealth")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name="health_today",
                description=(
                    "Today's step count, active energy (kcal), sleep hours and average "
                    "heart rate (BPM) from the iPhone's Health app."
                ),
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="health_history",
                description=(
                    "Per-day metrics for recent days, most recent first. Each day has "
                    "bed and wake time, sleep hours, steps, energy and heart rate."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "days": {
                            "type": "integer",
                            "description": "Number of days to retrieve",
                            "default": HISTORY_DAYS,
                        },
                    },
                },
            ),
            Tool(
                name="health_authorize",
                description=(
                    "Request read access to steps, energy, sleep and heart rate. "
                    "Prompts on the iPhone the first time only."
                ),
                inputSchema={"type": "object", "properties": {}},
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        try:
            match name:
                case "health_today":
                    dash = HealthDashboard(store)
                    await dash.mount()
                    _require_access(dash)
                    return _json(dash.view_model.to_dict()["today"])

                case "health_history":
                    dash = HealthDashboard(
                        store,
                        include_history=True,
                        history_days=int(arguments.get("days", HISTORY_DAYS)),
                    )
                    await dash.mount()
                    _require_access(dash)
                    return _json(dash.view_model.to_dict()["history"])

                case "health_authorize":
                    dash = HealthDashboard(store)
                    await dash.request_access()
                    _require_access(dash)
                    return _json(dash.view_model.to_dict())

                case _:
                    return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except HealthStoreError as e:
            return [TextContent(type="text", text=f"Error: {str(e)}")]

    return server


def _require_access(dash: HealthDashboard):
    if dash.view_model.show_alert:
        raise HealthStoreError(ALERT_MESSAGE)
    dash.require_granted()


def _json(data) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


async def _run(store: HealthStore):
    server = create_server(store)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run_server(companion_url: Optional[str] = None, timeout: float = 10.0):
    import asyncio
    store = CompanionHealthStore(url=companion_url, timeout=timeout)
    asyncio.run(_run(store))
