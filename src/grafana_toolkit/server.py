"""
grafana-toolkit MCP Server.

Tools:
  1.  list_datasources         — list all data sources keyed by id
  2.  get_datasource           — fetch one data source by name or id
  3.  create_datasource        — register a new data source
  4.  update_datasource        — merge fields into an existing data source
  5.  delete_datasource        — delete a data source by name or id
  6.  regenerate_template_ids  — renumber dashboard panel ids from 10
  7.  slug                     — dashboard-style slug of a title
  8.  validate_json            — check whether a string is valid JSON

Run:
    python -m grafana_toolkit.server
    # or via the installed script:
    grafana-toolkit
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp import types
from pydantic import ValidationError

from grafana_toolkit.client import GrafanaClient
from grafana_toolkit.config import Settings, get_settings
from grafana_toolkit.datasource import DatasourceClient
from grafana_toolkit.errors import InvalidArgumentError
from grafana_toolkit.models import (
    DashboardInput,
    DatasourceRefInput,
    SlugInput,
    UpdateDatasourceInput,
)
from grafana_toolkit.tools import is_valid_json, regenerate_template_ids, slug

# ---------------------------------------------------------------------------
# Logging setup — structured JSON to stderr, never to stdout (MCP uses stdout)
# ---------------------------------------------------------------------------

_DEBUG = os.environ.get("GRAFANA_DEBUG", "").lower() == "true"
_LEVEL = logging.DEBUG if _DEBUG else logging.INFO

structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(_LEVEL),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer(),
    ],
)

log = structlog.get_logger(__name__)

app = Server("grafana-toolkit")

_REF_SCHEMA = {
    "type": "object",
    "properties": {
        "datasource": {
            "type": ["string", "integer"],
            "description": "Datasource name (string) or numeric id (integer).",
        },
    },
    "required": ["datasource"],
}

# Tools that never touch the network
_OFFLINE_TOOLS = {"regenerate_template_ids", "slug", "validate_json"}
_DATASOURCE_TOOLS = {
    "list_datasources",
    "get_datasource",
    "create_datasource",
    "update_datasource",
    "delete_datasource",
}


@app.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="list_datasources",
            description="List all data sources configured in Grafana, keyed by id.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        types.Tool(
            name="get_datasource",
            description="Fetch a single data source by name or numeric id.",
            inputSchema=_REF_SCHEMA,
        ),
        types.Tool(
            name="create_datasource",
            description=(
                "Create a data source. `type` must be one of grafana, graphite, cloudwatch, "
                "elasticsearch, prometheus, influxdb, mysql, opentsdb, postgres. "
                "Basic auth is enabled when `basic_user` or `basic_password` is given."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "Data source type."},
                    "name": {"type": "string", "description": "Unique data source name."},
                    "database": {"type": "string", "description": "Database name."},
                    "url": {"type": "string", "description": "Backend URL."},
                    "access": {"type": "string", "enum": ["proxy", "direct"], "default": "proxy"},
                    "default": {"type": "boolean", "description": "Make this the default data source.", "default": False},
                    "user": {"type": "string"},
                    "password": {"type": "string"},
                    "basic_user": {"type": "string"},
                    "basic_password": {"type": "string"},
                    "json_data": {"type": "object", "description": "Provider-specific settings."},
                    "json_secure": {"type": "object", "description": "Provider-specific secrets."},
                },
                "required": ["type", "name", "database", "url"],
            },
        ),
        types.Tool(
            name="update_datasource",
            description=(
                "Update a data source by merging `data` into its current configuration. "
                "Fields not named in `data` are left unchanged."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_REF_SCHEMA["properties"],
                    "data": {"type": "object", "description": "Fields to change."},
                },
                "required": ["datasource", "data"],
            },
        ),
        types.Tool(
            name="delete_datasource",
            description="Delete a data source by name or numeric id.",
            inputSchema=_REF_SCHEMA,
        ),
        types.Tool(
            name="regenerate_template_ids",
            description=(
                "Renumber every panel id in a dashboard's rows as 10, 11, 12, … "
                "and return the dashboard JSON."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "dashboard_json": {"type": "string", "description": "Dashboard JSON object."},
                },
                "required": ["dashboard_json"],
            },
        ),
        types.Tool(
            name="slug",
            description="Return the dashboard slug for a title.",
            inputSchema={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        ),
        types.Tool(
            name="validate_json",
            description="Check whether a string parses as JSON.",
            inputSchema={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        ),
    ]


def _ok(data: Any) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


def _err(message: str) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps({"error": message}))]


# ---------------------------------------------------------------------------
# Tool dispatcher
# ---------------------------------------------------------------------------

@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """Dispatch MCP tool calls to the datasource client or template helpers."""
    log.info("tool.called", tool=name)
    arguments = arguments or {}

    try:
        if name in _OFFLINE_TOOLS:
            return _dispatch_offline(name, arguments)
        if name not in _DATASOURCE_TOOLS:
            return _err(f"Unknown tool: {name!r}")

        try:
            settings = get_settings()
        except RuntimeError as e:
            return _err(f"Configuration error: {e}")

        return await asyncio.to_thread(_dispatch_datasource, name, arguments, settings)
    except InvalidArgumentError as e:
        log.warning("tool.invalid_argument", tool=name, error=str(e))
        return _err(str(e))
    except ValidationError as e:
        log.warning("tool.validation_error", tool=name, errors=e.errors())
        return _err(f"Input validation error: {e}")
    except Exception as e:
        log.exception("tool.unexpected_error", tool=name)
        return _err(f"Unexpected error: {type(e).__name__}: {e}")


def _dispatch_offline(name: str, arguments: dict) -> list[types.TextContent]:
    if name == "regenerate_template_ids":
        inp = DashboardInput(**arguments)
        return [types.TextContent(type="text", text=regenerate_template_ids(json.loads(inp.dashboard_json)))]

    if name == "slug":
        inp = SlugInput(**arguments)
        return _ok({"slug": slug(inp.text)})

    # validate_json
    text = arguments.get("text")
    return _ok({"valid": is_valid_json(text, debug=_DEBUG)})


def _dispatch_datasource(name: str, arguments: dict, settings: Settings) -> list[types.TextContent]:
    """Route a datasource tool to the client. Runs in a worker thread."""
    with GrafanaClient(settings) as transport:
        client = DatasourceClient(transport, debug=settings.debug)

        if name == "list_datasources":
            datasources = client.list_datasources()
            return _ok(datasources)

        if name == "get_datasource":
            inp = DatasourceRefInput(**arguments)
            return _ok(client.get_datasource(inp.datasource))

        if name == "create_datasource":
            return _ok(client.create_datasource(arguments))

        if name == "update_datasource":
            inp = UpdateDatasourceInput(**arguments)
            return _ok(client.update_datasource({"datasource": inp.datasource, "data": inp.data}))

        # delete_datasource
        inp = DatasourceRefInput(**arguments)
        return _ok(client.delete_datasource(inp.datasource))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _serve() -> None:
    log.info("server.starting", name="grafana-toolkit")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def main() -> None:
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
