"""
Shared fixtures for the test suite.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest


# ---------------------------------------------------------------------------
# Subprocess mock factory
# ---------------------------------------------------------------------------

def make_proc(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    """Mimics the object returned by asyncio.create_subprocess_exec."""
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.kill = MagicMock()
    return proc


@pytest.fixture
def mock_run(monkeypatch):
    """
    Patches asyncio.create_subprocess_exec with a fake that pops responses
    from a queue. The argv of every call is recorded in ``queue.calls``
    (without the leading "kubectl").

    Usage:
        mock_run((b"output", b"", 0))
        mock_run((b"out1", b"", 0), (b"out2", b"", 0))  # multiple calls
        assert mock_run.calls[0][:2] == ["get", "--raw"]
    """
    responses: list[tuple[bytes, bytes, int]] = []
    calls: list[list[str]] = []

    async def fake_exec(*args, **kwargs):
        assert responses, f"Unexpected kubectl call: {args}"
        calls.append(list(args[1:]))
        stdout, stderr, rc = responses.pop(0)
        return make_proc(stdout, stderr, rc)

    monkeypatch.setattr("asyncio.create_subprocess_exec", fake_exec)

    def queue(*items: tuple[bytes, bytes, int]):
        responses.extend(items)

    queue.calls = calls
    queue.pending = responses
    return queue


def as_json(obj) -> bytes:
    return json.dumps(obj).encode()


# ---------------------------------------------------------------------------
# Sample API server responses
# ---------------------------------------------------------------------------

CORE_V1_DISCOVERY = {
    "kind": "APIResourceList",
    "groupVersion": "v1",
    "resources": [
        {"name": "namespaces", "singularName": "namespace", "namespaced": False, "kind": "Namespace"},
        {"name": "nodes", "singularName": "node", "namespaced": False, "kind": "Node"},
        {"name": "pods", "singularName": "pod", "namespaced": True, "kind": "Pod"},
        {"name": "pods/exec", "singularName": "", "namespaced": True, "kind": "PodExecOptions"},
        {"name": "pods/log", "singularName": "", "namespaced": True, "kind": "Pod"},
        {"name": "secrets", "singularName": "secret", "namespaced": True, "kind": "Secret"},
        {"name": "services", "singularName": "service", "namespaced": True, "kind": "Service"},
    ],
}

APPS_V1_DISCOVERY = {
    "kind": "APIResourceList",
    "groupVersion": "apps/v1",
    "resources": [
        {"name": "daemonsets", "singularName": "daemonset", "namespaced": True, "kind": "DaemonSet"},
        {"name": "deployments", "singularName": "deployment", "namespaced": True, "kind": "Deployment"},
        {"name": "deployments/scale", "singularName": "", "namespaced": True, "kind": "Scale"},
    ],
}

OVN_V1_DISCOVERY = {
    "kind": "APIResourceList",
    "groupVersion": "k8s.ovn.org/v1",
    "resources": [
        {"name": "egressips", "singularName": "egressip", "namespaced": False, "kind": "EgressIP"},
        {"name": "egressfirewalls", "singularName": "egressfirewall", "namespaced": True, "kind": "EgressFirewall"},
    ],
}

POD_DOC = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {
        "name": "web-1",
        "namespace": "default",
        "creationTimestamp": "2024-05-01T10:00:00Z",
        "labels": {"app": "web"},
        "annotations": {"k8s.ovn.org/pod-networks": "{}"},
    },
    "spec": {"containers": [{"name": "web"}, {"name": "sidecar"}]},
    "status": {"phase": "Running"},
}

PODS_LIST = {
    "apiVersion": "v1",
    "kind": "PodList",
    "items": [
        {"metadata": {"name": "web-1", "namespace": "default", "labels": {"app": "web"}}},
        {"metadata": {"name": "ovnkube-node-x", "namespace": "ovn-kubernetes", "labels": {"app": "ovnkube-node"}}},
    ],
}


def pod_with_phase(phase: str, name: str = "web-1", namespace: str = "default") -> dict:
    return {
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"containers": [{"name": "web"}]},
        "status": {"phase": phase},
    }
