"""
Open vSwitch tools — read-only OVS commands run inside a pod that has OVS
available (typically an ovnkube-node or ovs-node pod).

Every tool is a fixed argv template; bridge names and flow specifications are
validated before being placed in it. OVS commands only write to stderr when
they fail, so any stderr output is reported as an error.

Tools:
  ovs-list-br                — ovs-vsctl list-br
  ovs-list-ports             — ovs-vsctl list-ports <bridge>
  ovs-list-ifaces            — ovs-vsctl list-ifaces <bridge>
  ovs-vsctl-show             — ovs-vsctl show
  ovs-ofctl-dump-flows       — ovs-ofctl dump-flows <bridge>
  ovs-appctl-dump-conntrack  — ovs-appctl dpctl/dump-conntrack [params...]
  ovs-appctl-ofproto-trace   — ovs-appctl ofproto/trace <bridge> <flow>
"""

from __future__ import annotations

from mcp.types import TextContent, Tool, ToolAnnotations

from ovnk_mcp.cluster.pods import run_command
from ovnk_mcp.errors import InvalidInputError, OVNKMCPError
from ovnk_mcp.formatters import _err, _ok, output_lines
from ovnk_mcp.validation import filter_lines, limit_lines, validate_freeform, validate_identifier


_READ_ONLY = ToolAnnotations(readOnlyHint=True, openWorldHint=True)

_POD_PROPERTIES = {
    "name": {"type": "string", "description": "Name of the pod running OVS."},
    "namespace": {"type": "string", "description": "Namespace of the OVS pod. Defaults to 'default'."},
}
_BRIDGE = {"type": "string", "description": "Name of the OVS bridge, e.g. 'br-int'."}
_FILTER = {"type": "string", "description": "Regex; only matching lines are returned."}
_MAX_LINES = {"type": "integer", "minimum": 0, "description": "Limit the number of lines returned."}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

OVS_TOOLS: list[Tool] = [
    Tool(
        name="ovs-list-br",
        description="List all OVS bridges on a pod. Runs 'ovs-vsctl list-br'.",
        inputSchema={"type": "object", "required": ["name"], "properties": {**_POD_PROPERTIES}},
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-list-ports",
        description="List all ports on an OVS bridge. Runs 'ovs-vsctl list-ports <bridge>'.",
        inputSchema={
            "type": "object",
            "required": ["name", "bridge"],
            "properties": {**_POD_PROPERTIES, "bridge": _BRIDGE},
        },
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-list-ifaces",
        description="List all interfaces on an OVS bridge. Runs 'ovs-vsctl list-ifaces <bridge>'.",
        inputSchema={
            "type": "object",
            "required": ["name", "bridge"],
            "properties": {**_POD_PROPERTIES, "bridge": _BRIDGE},
        },
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-vsctl-show",
        description=(
            "Overview of the OVS configuration: bridges, ports, interfaces, controllers "
            "and their options. Runs 'ovs-vsctl show'."
        ),
        inputSchema={
            "type": "object",
            "required": ["name"],
            "properties": {**_POD_PROPERTIES, "max_lines": _MAX_LINES},
        },
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-ofctl-dump-flows",
        description="Dump OpenFlow flows from an OVS bridge. Runs 'ovs-ofctl dump-flows <bridge>'.",
        inputSchema={
            "type": "object",
            "required": ["name", "bridge"],
            "properties": {**_POD_PROPERTIES, "bridge": _BRIDGE, "filter": _FILTER, "max_lines": _MAX_LINES},
        },
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-appctl-dump-conntrack",
        description=(
            "Dump connection tracking entries from the OVS datapath. Runs "
            "'ovs-appctl dpctl/dump-conntrack [additional_params...]', e.g. additional_params=[\"zone=5\"]."
        ),
        inputSchema={
            "type": "object",
            "required": ["name"],
            "properties": {
                **_POD_PROPERTIES,
                "filter": _FILTER,
                "max_lines": _MAX_LINES,
                "additional_params": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Extra arguments for dpctl/dump-conntrack.",
                },
            },
        },
        annotations=_READ_ONLY,
    ),
    Tool(
        name="ovs-appctl-ofproto-trace",
        description=(
            "Trace a packet through the OpenFlow pipeline of a bridge, showing matched flows, "
            "actions and the final datapath actions. Runs 'ovs-appctl ofproto/trace <bridge> <flow>'. "
            "Flow examples: 'in_port=1,icmp', 'in_port=2,ip,nw_src=192.168.1.10,nw_dst=192.168.1.20', "
            "'in_port=3,tcp,nw_src=10.0.0.1,nw_dst=10.0.0.2,tp_src=12345,tp_dst=80'."
        ),
        inputSchema={
            "type": "object",
            "required": ["name", "bridge", "flow"],
            "properties": {
                **_POD_PROPERTIES,
                "bridge": _BRIDGE,
                "flow": {"type": "string", "description": "Flow specification of the packet to trace."},
                "filter": _FILTER,
                "max_lines": _MAX_LINES,
            },
        },
        annotations=_READ_ONLY,
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _pod(args: dict) -> tuple[str, str]:
    name = args.get("name")
    if not name:
        raise InvalidInputError("name is required")
    return name, args.get("namespace") or ""


async def _run_ovs(args: dict, command: list[str], keep_indent: bool = False) -> list[str]:
    name, namespace = _pod(args)
    result = await run_command(name, namespace, command, stderr_is_error=True)
    return output_lines(result.stdout, keep_indent=keep_indent)


def _shape(lines: list[str], args: dict) -> list[str]:
    lines = filter_lines(lines, args.get("filter"))
    return limit_lines(lines, args.get("max_lines"))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def handle_list_bridges(args: dict) -> list[TextContent]:
    try:
        bridges = await _run_ovs(args, ["ovs-vsctl", "list-br"])
    except OVNKMCPError as e:
        return _err(f"failed to retrieve ovs bridges: {e}")
    return _ok({"bridges": bridges})


async def handle_list_ports(args: dict) -> list[TextContent]:
    bridge = args.get("bridge", "")
    try:
        validate_identifier(bridge, "bridge name")
        ports = await _run_ovs(args, ["ovs-vsctl", "list-ports", bridge])
    except OVNKMCPError as e:
        return _err(f"failed to retrieve ports for bridge {bridge!r}: {e}")
    return _ok({"ports": ports})


async def handle_list_interfaces(args: dict) -> list[TextContent]:
    bridge = args.get("bridge", "")
    try:
        validate_identifier(bridge, "bridge name")
        interfaces = await _run_ovs(args, ["ovs-vsctl", "list-ifaces", bridge])
    except OVNKMCPError as e:
        return _err(f"failed to retrieve interfaces for bridge {bridge!r}: {e}")
    return _ok({"interfaces": interfaces})


async def handle_show(args: dict) -> list[TextContent]:
    try:
        lines = await _run_ovs(args, ["ovs-vsctl", "show"], keep_indent=True)
        lines = limit_lines(lines, args.get("max_lines"))
    except OVNKMCPError as e:
        return _err(f"failed to retrieve ovs configuration: {e}")
    return _ok({"output": "\n".join(lines)})


async def handle_dump_flows(args: dict) -> list[TextContent]:
    bridge = args.get("bridge", "")
    try:
        validate_identifier(bridge, "bridge name")
        flows = _shape(await _run_ovs(args, ["ovs-ofctl", "dump-flows", bridge]), args)
    except OVNKMCPError as e:
        return _err(f"failed to dump flows for bridge {bridge!r}: {e}")
    return _ok({"bridge": bridge, "flows": flows})


async def handle_dump_conntrack(args: dict) -> list[TextContent]:
    params = args.get("additional_params") or []
    try:
        if not isinstance(params, list):
            raise InvalidInputError("additional_params must be a list of strings")
        for param in params:
            if not isinstance(param, str):
                raise InvalidInputError("additional_params must be a list of strings")
            validate_freeform(param, "conntrack parameter")
        entries = _shape(await _run_ovs(args, ["ovs-appctl", "dpctl/dump-conntrack", *params]), args)
    except OVNKMCPError as e:
        return _err(f"failed to dump conntrack: {e}")
    return _ok({"entries": entries})


async def handle_ofproto_trace(args: dict) -> list[TextContent]:
    bridge = args.get("bridge", "")
    flow = args.get("flow", "")
    try:
        validate_identifier(bridge, "bridge name")
        validate_freeform(flow, "flow specification")
        lines = await _run_ovs(args, ["ovs-appctl", "ofproto/trace", bridge, flow], keep_indent=True)
        lines = _shape(lines, args)
    except OVNKMCPError as e:
        return _err(f"failed to trace flow on bridge {bridge!r}: {e}")
    return _ok({"bridge": bridge, "flow": flow, "output": "\n".join(lines)})


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

OVS_HANDLERS = {
    "ovs-list-br": handle_list_bridges,
    "ovs-list-ports": handle_list_ports,
    "ovs-list-ifaces": handle_list_interfaces,
    "ovs-vsctl-show": handle_show,
    "ovs-ofctl-dump-flows": handle_dump_flows,
    "ovs-appctl-dump-conntrack": handle_dump_conntrack,
    "ovs-appctl-ofproto-trace": handle_ofproto_trace,
}
