"""MCP server wiring for github-repo-mcp.

Registers the tool catalog for discovery, hands tool calls to the dispatcher
and renders each envelope as a CallToolResult. Transport is stdio; stdout is
reserved for the protocol, so all logging goes to stderr.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

try:
    from mcp.server import Server
    from mcp.types import CallToolResult, Resource, Tool
except ImportError as exc:  # pragma: no cover
    raise ImportError("MCP library not installed. Install with: pip install mcp") from exc

from . import __version__
from .config import log_level_from_env
from .errors import SafeError
from .registry import list_operations, operation_names
from .results import render_result
from .tools import dispatch_tool, initialize_runtime_from_env

logging.basicConfig(
    level=log_level_from_env(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)

server = Server("github-repo-mcp", version=__version__)

_STATUS_URI = "github-repo-mcp://server-status"
_CAPABILITIES_URI = "github-repo-mcp://capabilities"


def _build_tools() -> list[Tool]:
    return [
        Tool(name=op.name, description=op.description, inputSchema=dict(op.input_schema))
        for op in list_operations()
    ]


def _build_resources() -> list[Resource]:
    return [
        Resource(
            uri=_STATUS_URI,
            name="Server Status",
            description="Non-secret server configuration",
            mimeType="application/json",
        ),
        Resource(
            uri=_CAPABILITIES_URI,
            name="Capabilities",
            description="Registered read-only operations and their parameter contracts",
            mimeType="application/json",
        ),
    ]


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools in registration order."""
    tools = _build_tools()
    logger.info("Listed %s tools", len(tools))
    return tools


# Arguments are validated by the dispatcher so violations surface as ValidationError.
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any] | None) -> CallToolResult:
    """Execute a tool and return an MCP-compliant CallToolResult."""
    if not isinstance(arguments, dict):
        arguments = {}

    logger.info("Tool called: %s", name)
    result = await dispatch_tool(name, arguments)
    return render_result(result)


@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return _build_resources()


@server.read_resource()
async def read_resource(uri: Any) -> str:
    """Read resource content."""
    uri_s = uri if isinstance(uri, str) else str(uri)

    if uri_s == _CAPABILITIES_URI:
        caps = {
            "server": "github-repo-mcp",
            "version": __version__,
            "read_only": True,
            "operations": [
                {"name": op.name, "description": op.description, "inputSchema": dict(op.input_schema)}
                for op in list_operations()
            ],
        }
        return json.dumps(caps, indent=2)

    if uri_s == _STATUS_URI:
        status: dict[str, Any] = {
            "server": "github-repo-mcp",
            "version": __version__,
            "tools_available": len(operation_names()),
            "tool_names": list(operation_names()),
            "configured": False,
        }
        try:
            runtime = initialize_runtime_from_env()
            status["configured"] = True
            status["api_base_url"] = runtime.config.api_base_url
            status["http_timeout_s"] = runtime.config.limits.http_timeout_s
            status["audit"] = {"file_sink_enabled": runtime.audit.file_sink_enabled}
        except SafeError:
            status["configured"] = False

        return json.dumps(status, indent=2)

    return json.dumps({"ok": False, "code": "NotFound", "message": "Unknown resource"}, indent=2)


async def run_server() -> None:
    """Run the server over stdio."""
    # Fail fast on missing/invalid host configuration.
    try:
        _ = initialize_runtime_from_env()
    except SafeError as exc:
        logger.error("Startup configuration error: %s", exc.message)
        raise

    from mcp.server.stdio import stdio_server

    logger.info("GitHub repository MCP server running on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def test_server() -> None:
    """Lightweight self-test to ensure tool/resource listing works."""
    tools = _build_tools()
    resources = _build_resources()
    logger.info("Self-test OK: %s tools, %s resources", len(tools), len(resources))
