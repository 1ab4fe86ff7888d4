"""
Unit tests for ovnk_mcp/tools/ovs.py handlers.

run_command is patched; the argv each handler builds is asserted directly.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from ovnk_mcp.cluster.pods import ExecutionResult
from ovnk_mcp.errors import ExecutionFailedError, NotReadyError
from ovnk_mcp.formatters import ToolError
from ovnk_mcp.tools.ovs import (
    OVS_HANDLERS,
    OVS_TOOLS,
    handle_dump_conntrack,
    handle_dump_flows,
    handle_list_bridges,
    handle_list_interfaces,
    handle_list_ports,
    handle_ofproto_trace,
    handle_show,
)
from tests.conftest import POD_DOC, as_json

POD = {"name": "ovnkube-node-x", "namespace": "ovn-kubernetes"}

FLOWS = (
    "NXST_FLOW reply (xid=0x4):\n"
    " cookie=0x0, duration=10.1s, table=0, n_packets=5, priority=100,in_port=1 actions=resubmit(,10)\n"
    " cookie=0x0, duration=10.1s, table=10, n_packets=3, priority=50 actions=drop\n"
    " cookie=0x0, duration=10.1s, table=10, n_packets=0, priority=0 actions=NORMAL\n"
)

SHOW = (
    "0d6d4d3e-1111-2222-3333-444455556666\n"
    "    Bridge br-int\n"
    "        fail_mode: secure\n"
    "        Port br-int\n"
    "            Interface br-int\n"
    "                type: internal\n"
    '    ovs_version: "3.1.2"\n'
)


def _ok(stdout: str):
    return ExecutionResult(stdout=stdout, stderr="")


def _payload(result) -> dict:
    return json.loads(result[0].text)


def _argv(mock) -> list[str]:
    return mock.call_args[0][2]


def test_tool_names_match_handlers():
    assert {t.name for t in OVS_TOOLS} == set(OVS_HANDLERS)


def test_all_ovs_tools_are_read_only():
    assert all(t.annotations.readOnlyHint for t in OVS_TOOLS)


# ---------------------------------------------------------------------------
# ovs-vsctl
# ---------------------------------------------------------------------------


class TestVsctl:
    async def test_list_bridges(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok("br-ex\nbr-int\n\n")) as mock:
            result = await handle_list_bridges(POD)
        assert _payload(result) == {"bridges": ["br-ex", "br-int"]}
        mock.assert_called_once_with(
            "ovnkube-node-x", "ovn-kubernetes", ["ovs-vsctl", "list-br"], stderr_is_error=True
        )

    async def test_list_bridges_requires_pod_name(self):
        result = await handle_list_bridges({})
        assert isinstance(result, ToolError)
        assert "name is required" in result[0].text

    async def test_list_ports(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok("patch-br-int-to-br-ex\novn-k8s-mp0\n")) as mock:
            result = await handle_list_ports({**POD, "bridge": "br-int"})
        assert _payload(result) == {"ports": ["patch-br-int-to-br-ex", "ovn-k8s-mp0"]}
        assert _argv(mock) == ["ovs-vsctl", "list-ports", "br-int"]

    async def test_list_interfaces(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok("genev_sys_6081\n")) as mock:
            result = await handle_list_interfaces({**POD, "bridge": "br-int"})
        assert _payload(result) == {"interfaces": ["genev_sys_6081"]}
        assert _argv(mock) == ["ovs-vsctl", "list-ifaces", "br-int"]

    @pytest.mark.parametrize("bridge", ["", "br-int; rm -rf /", "br int", "$(id)"])
    async def test_bad_bridge_never_reaches_pod(self, bridge):
        with patch("ovnk_mcp.tools.ovs.run_command") as mock:
            result = await handle_list_ports({**POD, "bridge": bridge})
        assert isinstance(result, ToolError)
        assert "failed to retrieve ports" in result[0].text
        mock.assert_not_called()

    async def test_stderr_reported_as_error(self, mock_run):
        mock_run((as_json(POD_DOC), b"", 0), (b"", b"ovs-vsctl: no bridge named br-nope\n", 0))
        result = await handle_list_ports({"name": "web-1", "bridge": "br-nope"})
        assert isinstance(result, ToolError)
        assert "no bridge named br-nope" in result[0].text

    async def test_show_keeps_indentation(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(SHOW)):
            result = await handle_show(POD)
        output = _payload(result)["output"]
        assert "    Bridge br-int\n        fail_mode: secure" in output

    async def test_show_non_integer_max_lines(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(SHOW)):
            result = await handle_show({**POD, "max_lines": "2"})
        assert isinstance(result, ToolError)
        assert "max_lines must be an integer" in result[0].text

    async def test_show_max_lines(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(SHOW)):
            result = await handle_show({**POD, "max_lines": 2})
        assert _payload(result)["output"].splitlines() == [
            "0d6d4d3e-1111-2222-3333-444455556666",
            "    Bridge br-int",
        ]


# ---------------------------------------------------------------------------
# ovs-ofctl dump-flows
# ---------------------------------------------------------------------------


class TestDumpFlows:
    async def test_dump_flows(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(FLOWS)) as mock:
            result = await handle_dump_flows({**POD, "bridge": "br-int"})
        payload = _payload(result)
        assert payload["bridge"] == "br-int"
        assert len(payload["flows"]) == 4
        assert payload["flows"][1].startswith("cookie=0x0")
        assert _argv(mock) == ["ovs-ofctl", "dump-flows", "br-int"]

    async def test_dump_flows_filter_then_limit(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(FLOWS)):
            result = await handle_dump_flows({**POD, "bridge": "br-int", "filter": r"table=10\b", "max_lines": 1})
        flows = _payload(result)["flows"]
        assert len(flows) == 1
        assert "actions=drop" in flows[0]

    async def test_dump_flows_invalid_filter(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(FLOWS)):
            result = await handle_dump_flows({**POD, "bridge": "br-int", "filter": "[bad"})
        assert isinstance(result, ToolError)
        assert "invalid filter pattern" in result[0].text

    @pytest.mark.parametrize(
        "shaping",
        [{"max_lines": "5"}, {"max_lines": 1.5}, {"filter": 10}, {"filter": ["table=0"]}],
    )
    async def test_dump_flows_bad_shaping_args(self, shaping):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(FLOWS)):
            result = await handle_dump_flows({**POD, "bridge": "br-int", **shaping})
        assert isinstance(result, ToolError)
        assert "must be" in result[0].text

    async def test_dump_flows_pod_not_running(self):
        with patch(
            "ovnk_mcp.tools.ovs.run_command",
            side_effect=NotReadyError("current phase is Pending"),
        ):
            result = await handle_dump_flows({**POD, "bridge": "br-int"})
        assert isinstance(result, ToolError)
        assert "failed to dump flows for bridge 'br-int'" in result[0].text


# ---------------------------------------------------------------------------
# ovs-appctl
# ---------------------------------------------------------------------------


class TestAppctl:
    async def test_dump_conntrack_with_params(self):
        entries = "tcp,orig=(src=10.0.0.1,dst=10.0.0.2),zone=5\nudp,orig=(src=10.0.0.3),zone=5\n"
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(entries)) as mock:
            result = await handle_dump_conntrack({**POD, "additional_params": ["zone=5"], "filter": "^tcp"})
        assert _payload(result) == {"entries": ["tcp,orig=(src=10.0.0.1,dst=10.0.0.2),zone=5"]}
        assert _argv(mock) == ["ovs-appctl", "dpctl/dump-conntrack", "zone=5"]

    async def test_dump_conntrack_no_params(self):
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok("")) as mock:
            result = await handle_dump_conntrack(POD)
        assert _payload(result) == {"entries": []}
        assert _argv(mock) == ["ovs-appctl", "dpctl/dump-conntrack"]

    @pytest.mark.parametrize("params", [["zone=5; reboot"], "zone=5", [5]])
    async def test_dump_conntrack_rejects_bad_params(self, params):
        with patch("ovnk_mcp.tools.ovs.run_command") as mock:
            result = await handle_dump_conntrack({**POD, "additional_params": params})
        assert isinstance(result, ToolError)
        mock.assert_not_called()

    async def test_ofproto_trace(self):
        trace = (
            "Flow: icmp,in_port=1\n"
            "\n"
            "bridge(\"br-int\")\n"
            "----------------\n"
            " 0. priority 100\n"
            "    resubmit(,10)\n"
            "\n"
            "Final flow: unchanged\n"
            "Datapath actions: drop\n"
        )
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(trace)) as mock:
            result = await handle_ofproto_trace({**POD, "bridge": "br-int", "flow": "in_port=1,icmp"})
        payload = _payload(result)
        assert payload["bridge"] == "br-int"
        assert payload["flow"] == "in_port=1,icmp"
        assert "    resubmit(,10)" in payload["output"]
        assert payload["output"].endswith("Datapath actions: drop")
        assert _argv(mock) == ["ovs-appctl", "ofproto/trace", "br-int", "in_port=1,icmp"]

    async def test_ofproto_trace_filter(self):
        trace = "Flow: icmp\nbridge(\"br-int\")\nDatapath actions: drop\n"
        with patch("ovnk_mcp.tools.ovs.run_command", return_value=_ok(trace)):
            result = await handle_ofproto_trace(
                {**POD, "bridge": "br-int", "flow": "in_port=1,icmp", "filter": "Datapath"}
            )
        assert _payload(result)["output"] == "Datapath actions: drop"

    @pytest.mark.parametrize("flow", ["in_port=1;reboot", "in_port=1 | nc", "`id`", ""])
    async def test_ofproto_trace_rejects_unsafe_flow(self, flow):
        with patch("ovnk_mcp.tools.ovs.run_command") as mock:
            result = await handle_ofproto_trace({**POD, "bridge": "br-int", "flow": flow})
        assert isinstance(result, ToolError)
        mock.assert_not_called()

    async def test_ofproto_trace_command_failure(self):
        with patch(
            "ovnk_mcp.tools.ovs.run_command",
            side_effect=ExecutionFailedError("ovs-appctl: br-x: unknown bridge"),
        ):
            result = await handle_ofproto_trace({**POD, "bridge": "br-x", "flow": "in_port=1"})
        assert isinstance(result, ToolError)
        assert "unknown bridge" in result[0].text
