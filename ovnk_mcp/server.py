"""
OVN-Kubernetes MCP server

Exposes kubectl-backed tools over MCP stdio transport in two categories:
  • Kubernetes — generic resource get/list, pod logs, pod exec, node debugging
  • OVS        — bridges, ports, interfaces, flows, conntrack, packet traces

Environment variables:
  OVNK_MCP_MODE=live-cluster|offline  — offline registers no cluster tools
  OVNK_MCP_KUBECONFIG=/path           — kubeconfig for every kubectl call
  OVNK_MCP_CONTEXT=name               — kubeconfig context for every kubectl call
  OVNK_MCP_DEBUG_NAMESPACE=default    — namespace for debug-node pods

Run with:
    python -m ovnk_mcp.server
"""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
from datetime import datetime, timezone

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    ListToolsResult,
    TextContent,
)

from ovnk_mcp.cluster.discovery import ResourceCatalog
from ovnk_mcp.formatters import ToolError
from ovnk_mcp.tools.kubernetes import KUBERNETES_TOOLS, KubernetesToolset
from ovnk_mcp.tools.ovs import OVS_HANDLERS, OVS_TOOLS

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

LIVE_CLUSTER_MODE = "live-cluster"
OFFLINE_MODE = "offline"

MODE = os.environ.get("OVNK_MCP_MODE", LIVE_CLUSTER_MODE).strip().lower() or LIVE_CLUSTER_MODE
if MODE not in (LIVE_CLUSTER_MODE, OFFLINE_MODE):
    print(f"FATAL: invalid OVNK_MCP_MODE {MODE!r}: expected live-cluster or offline", file=sys.stderr)
    sys.exit(1)

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

server = Server("ovn-kubernetes")

catalog = ResourceCatalog()
kubernetes_tools = KubernetesToolset(catalog)

if MODE == LIVE_CLUSTER_MODE:
    ALL_TOOLS = KUBERNETES_TOOLS + OVS_TOOLS
    ALL_HANDLERS: dict = {**kubernetes_tools.handlers, **OVS_HANDLERS}
else:
    ALL_TOOLS = []
    ALL_HANDLERS = {}

# Tools that start processes in the cluster
AUDITED_TOOLS = {"pod-exec", "debug-node"}


@server.list_tools()
async def list_tools() -> ListToolsResult:
    return ListToolsResult(tools=ALL_TOOLS)


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> CallToolResult:
    args = arguments or {}

    handler = ALL_HANDLERS.get(name)
    if handler is None:
        return CallToolResult(
            content=[TextContent(type="text", text=f"Unknown tool: {name}")],
            isError=True,
        )

    if name in AUDITED_TOOLS:
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        print(f"[AUDIT] {ts} {name} {args}", file=sys.stderr)

    try:
        content = await handler(args)
        return CallToolResult(content=content, isError=isinstance(content, ToolError))
    except Exception as exc:  # noqa: BLE001
        return CallToolResult(
            content=[TextContent(type="text", text=f"Unexpected error: {exc}")],
            isError=True,
        )


# ---------------------------------------------------------------------------
# Startup preflight
# ---------------------------------------------------------------------------

async def _preflight() -> None:
    """Check kubectl availability and cluster connectivity before serving."""
    if not shutil.which("kubectl"):
        print(
            "FATAL: kubectl not found on PATH. Install kubectl and try again.",
            file=sys.stderr,
        )
        sys.exit(1)

    from ovnk_mcp.errors import KubectlError
    from ovnk_mcp.kubectl import kubectl

    try:
        version = await kubectl(["version", "--client"])
        print(f"kubectl client: {version.splitlines()[0] if version else 'unknown'}", file=sys.stderr)
    except KubectlError as e:
        print(f"WARNING: kubectl version check failed: {e}", file=sys.stderr)

    try:
        await kubectl(["get", "--raw", "/readyz"], timeout_override=5)
        print("Cluster connectivity: OK", file=sys.stderr)
    except KubectlError:
        print(
            "WARNING: Cluster unreachable. Tools will fail until a valid kubeconfig is configured.",
            file=sys.stderr,
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _run() -> None:
    print(
        f"ovn-kubernetes MCP server starting — {len(ALL_TOOLS)} tools registered ({MODE} mode)",
        file=sys.stderr,
    )
    if MODE == LIVE_CLUSTER_MODE:
        await _preflight()
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
