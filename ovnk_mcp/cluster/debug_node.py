"""
Ephemeral debug pods for running commands on a node.

A debug pod is pinned to the node, shares the host's network, PID and IPC
namespaces, mounts the host root filesystem at /host and runs privileged as
root. Its container only sleeps; the real work arrives through ``kubectl
exec``.

Once the pod object exists it is deleted on every exit path: success, poll
error, readiness timeout, exec failure and task cancellation. Deletion
failures are reported on stderr and never replace the caller's result.

Environment variables:
  OVNK_MCP_DEBUG_NAMESPACE=default  — namespace debug pods are created in
"""

from __future__ import annotations

import asyncio
import json
import os
import secrets
import string
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Sequence

from ovnk_mcp.cluster.pods import POD_RUNNING, ExecutionResult, exec_pod, get_pod, pod_phase
from ovnk_mcp.errors import DebugPodTimeoutError, InvalidInputError, KubectlError, NotReadyError
from ovnk_mcp.kubectl import kubectl, kubectl_stdin
from ovnk_mcp.validation import validate_image, validate_object_name


DEBUG_NAMESPACE = os.environ.get("OVNK_MCP_DEBUG_NAMESPACE", "").strip() or "default"
DEBUG_CONTAINER = "debug-container"
HOST_MOUNT_PATH = "/host"

POLL_INTERVAL = 0.5  # seconds
READY_TIMEOUT = 60.0  # seconds

_TERMINAL_PHASES = ("Succeeded", "Failed")
_MAX_POD_NAME = 253
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

Teardown = Callable[[], Awaitable[None]]


def debug_pod_name(node: str) -> str:
    """Unique pod name derived from the node name, e.g. debug-node-worker-1-x7k2q."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(5))
    prefix = f"debug-node-{node}"[: _MAX_POD_NAME - len(suffix) - 1].rstrip("-.")
    return f"{prefix}-{suffix}"


def debug_pod_manifest(name: str, node: str, image: str, namespace: str) -> dict:
    """Pod spec for a privileged, host-attached debug pod on ``node``."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {"app.kubernetes.io/managed-by": "ovnk-mcp"},
        },
        "spec": {
            "nodeName": node,
            "restartPolicy": "Never",
            "tolerations": [{"operator": "Exists"}],
            "hostNetwork": True,
            "hostPID": True,
            "hostIPC": True,
            "volumes": [
                {
                    "name": "host",
                    "hostPath": {"path": "/", "type": "Directory"},
                }
            ],
            "containers": [
                {
                    "name": DEBUG_CONTAINER,
                    "image": image,
                    "command": ["sleep", "infinity"],
                    "securityContext": {"privileged": True, "runAsUser": 0},
                    "volumeMounts": [{"name": "host", "mountPath": HOST_MOUNT_PATH}],
                    # sos report and similar tools locate the host root through $HOST
                    "env": [{"name": "HOST", "value": HOST_MOUNT_PATH}],
                }
            ],
        },
    }


async def delete_debug_pod(name: str, namespace: str) -> None:
    """Delete a debug pod, logging instead of raising on failure."""
    try:
        await kubectl(
            ["delete", "pod", name, "--ignore-not-found", "--wait=false"],
            namespace=namespace,
        )
    except KubectlError as e:
        print(f"[CLEANUP] failed to delete debug pod {namespace}/{name}: {e}", file=sys.stderr)


async def wait_for_running(
    name: str,
    namespace: str,
    *,
    interval: float = POLL_INTERVAL,
    timeout: float = READY_TIMEOUT,
) -> None:
    """Poll the pod phase until Running.

    ``timeout`` is a hard deadline: a poll still in flight when it expires is
    cancelled along with its kubectl process. Errors while polling propagate
    immediately. A pod that finishes before ever running raises
    ``NotReadyError``; one not running at the deadline raises
    ``DebugPodTimeoutError``.
    """
    phase = "Unknown"

    async def poll() -> None:
        nonlocal phase
        while True:
            pod = await get_pod(name, namespace)
            phase = pod_phase(pod)
            if phase == POD_RUNNING:
                return
            if phase in _TERMINAL_PHASES:
                raise NotReadyError(
                    f"debug pod {namespace}/{name} reached phase {phase} before running"
                )
            await asyncio.sleep(interval)

    try:
        await asyncio.wait_for(poll(), timeout=timeout)
    except asyncio.TimeoutError:
        raise DebugPodTimeoutError(
            f"debug pod {namespace}/{name} did not reach running state within "
            f"{timeout:g}s; last observed phase is {phase}"
        )


async def provision_debug_pod(
    node: str,
    image: str,
    namespace: str = DEBUG_NAMESPACE,
) -> tuple[str, Teardown]:
    """Create a debug pod on ``node`` and wait until it is Running.

    Returns the pod name and a coroutine function that deletes it. The pod
    name is chosen before the create call so that teardown covers a create
    interrupted half-way. If creation or the wait fails for any reason the pod
    is deleted before the error propagates.
    """
    validate_object_name(node, "node name")
    validate_object_name(namespace, "namespace")
    validate_image(image)

    name = debug_pod_name(node)

    async def teardown() -> None:
        # a second cancellation must not interrupt the delete itself
        await asyncio.shield(delete_debug_pod(name, namespace))

    try:
        await kubectl_stdin(
            ["create", "-f", "-"],
            stdin_data=json.dumps(debug_pod_manifest(name, node, image, namespace)),
            namespace=namespace,
        )
    except KubectlError as e:
        # a name collision means the pod belongs to another call
        if "(AlreadyExists)" not in str(e):
            await teardown()
        raise KubectlError(f"failed to create debug pod: {e}")
    except BaseException:
        await teardown()
        raise

    try:
        await wait_for_running(name, namespace, interval=POLL_INTERVAL, timeout=READY_TIMEOUT)
    except BaseException:
        await teardown()
        raise

    return name, teardown


@asynccontextmanager
async def debug_pod(node: str, image: str, namespace: str = DEBUG_NAMESPACE) -> AsyncIterator[str]:
    """Provide a Running debug pod on ``node`` for the duration of the block."""
    name, teardown = await provision_debug_pod(node, image, namespace)
    try:
        yield name
    finally:
        await teardown()


async def debug_node(node: str, image: str, command: Sequence[str]) -> ExecutionResult:
    """Run ``command`` on ``node`` inside a fresh debug pod and remove the pod."""
    command = list(command)
    if not command:
        raise InvalidInputError("command is required")

    async with debug_pod(node, image) as name:
        try:
            return await exec_pod(name, DEBUG_NAMESPACE, DEBUG_CONTAINER, command)
        except KubectlError as e:
            raise type(e)(f"failed to execute command in debug pod: {e}")
