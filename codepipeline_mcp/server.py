#!/usr/bin/env python3
"""AWS CodePipeline MCP Server — pipeline orchestration tools for agent sessions.

Exposes CodePipeline operations (list, inspect state, trigger, stop, retry,
approve, tag, webhook creation, metrics) as MCP tools. Every tool delegates
to the CodePipeline or CloudWatch API through ``CodePipelineAdapter``.

Architecture:
  Agent Session -> MCP Client -> THIS SERVER -> CodePipeline / CloudWatch APIs

Transport: stdio
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import sys
import time
import uuid
from typing import Any, Dict, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_REQUEST, ErrorData, Resource, TextContent, Tool

from . import registry
from .adapter import CodePipelineAdapter
from .config import SERVER_INSTRUCTIONS, SERVER_NAME, SERVER_VERSION, load_env_file, load_settings
from .envelope import result_error_code, result_status, wrap_error
from .errors import EXECUTION_ERROR
from .serialization import _iso, _now

logger = logging.getLogger(SERVER_NAME)

_adapter: Optional[CodePipelineAdapter] = None


def _get_adapter() -> CodePipelineAdapter:
    global _adapter
    if _adapter is None:
        _adapter = CodePipelineAdapter.from_settings(load_settings())
    return _adapter


def _tool_input_hash(arguments: Dict[str, Any]) -> str:
    payload = json.dumps(arguments or {}, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _audit_tool_invocation(
    name: str,
    arguments: Dict[str, Any],
    status: str,
    *,
    latency_ms: int = 0,
    error_code: str = "",
) -> None:
    payload = {
        "invocation_id": f"mcpi-{uuid.uuid4().hex[:20]}",
        "tool_name": name,
        "input_hash": _tool_input_hash(arguments),
        "result_status": status,
        "latency_ms": int(max(0, latency_ms)),
        "error_code": str(error_code or ""),
        "timestamp": _iso(_now()),
    }
    logger.info("[AUDIT] %s", json.dumps(payload, sort_keys=True))


# ===================================================================
# MCP SERVER DEFINITION
# ===================================================================

app = Server(SERVER_NAME, version=SERVER_VERSION, instructions=SERVER_INSTRUCTIONS)


@app.list_resources()
async def list_resources() -> list[Resource]:
    return []


@app.read_resource()
async def read_resource(uri) -> str:
    raise McpError(ErrorData(code=INVALID_REQUEST, message="No resources available"))


@app.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(name=op.name, description=op.description, inputSchema=op.input_schema)
        for op in registry.describe()
    ]


@app.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    args = arguments or {}
    started = time.perf_counter()
    try:
        adapter = _get_adapter()
    except Exception as exc:
        logger.exception("adapter initialization failed")
        result = wrap_error(EXECUTION_ERROR, f"Tool '{name}' failed: {exc}", {"tool": name})
    else:
        result = registry.dispatch(adapter, name, args)
    status = result_status(result)
    _audit_tool_invocation(
        name,
        args,
        status,
        latency_ms=int((time.perf_counter() - started) * 1000),
        error_code="" if status == "success" else result_error_code(result),
    )
    return result


# ===================================================================
# ENTRY POINT
# ===================================================================


async def main():
    load_env_file()
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, stream=sys.stderr)
    logger.info("[START] AWS CodePipeline MCP Server v%s", SERVER_VERSION)
    logger.info("[CONFIG] %s", json.dumps(settings.describe(), sort_keys=True))

    global _adapter
    _adapter = CodePipelineAdapter.from_settings(settings)

    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
