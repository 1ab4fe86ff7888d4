"""
Remote command channel and logs for pods.

Commands run through ``kubectl exec <pod> -- <argv...>``: the argument vector
goes to the container as-is, no shell is involved on either side.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

from ovnk_mcp.errors import ExecutionFailedError, InvalidInputError, KubectlError, NotReadyError
from ovnk_mcp.kubectl import kubectl, kubectl_capture, kubectl_json
from ovnk_mcp.validation import validate_object_name


DEFAULT_NAMESPACE = "default"
POD_RUNNING = "Running"


@dataclass
class ExecutionResult:
    stdout: str
    stderr: str

    def to_dict(self) -> dict:
        return asdict(self)


async def get_pod(name: str, namespace: str) -> dict:
    validate_object_name(name, "pod name")
    validate_object_name(namespace, "namespace")
    return await kubectl_json(["get", "pod", name], namespace=namespace)


def pod_phase(pod: dict) -> str:
    return pod.get("status", {}).get("phase") or "Unknown"


async def exec_pod(
    name: str,
    namespace: str,
    container: str | None,
    command: Sequence[str],
) -> ExecutionResult:
    """Run ``command`` in a container of a running pod and capture its output.

    Fails fast with ``NotReadyError`` when the pod is not Running. Without a
    container name the pod's first container is used. A zero exit with
    output on stderr is a successful call.
    """
    command = list(command)
    if not command:
        raise InvalidInputError("command is required")
    namespace = namespace or DEFAULT_NAMESPACE

    pod = await get_pod(name, namespace)
    phase = pod_phase(pod)
    if phase != POD_RUNNING:
        raise NotReadyError(
            f"cannot exec and run command {command} in a container in a pod that is "
            f"not running; current phase is {phase}"
        )

    if not container:
        containers = pod.get("spec", {}).get("containers") or []
        if not containers:
            raise NotReadyError(f"pod {namespace}/{name} declares no containers")
        container = containers[0]["name"]
    else:
        validate_object_name(container, "container name")

    try:
        stdout, stderr = await kubectl_capture(
            ["exec", name, "--container", container, "--", *command],
            namespace=namespace,
        )
    except KubectlError as e:
        raise ExecutionFailedError(f"failed to execute command {command} in pod {namespace}/{name}: {e}")
    return ExecutionResult(stdout=stdout, stderr=stderr)


async def run_command(
    name: str,
    namespace: str,
    command: Sequence[str],
    *,
    stderr_is_error: bool,
    container: str | None = None,
) -> ExecutionResult:
    """``exec_pod`` with an explicit policy for output on stderr.

    With ``stderr_is_error`` any stderr output turns the call into an
    ``ExecutionFailedError``, for tools whose commands only write to stderr
    when they fail.
    """
    result = await exec_pod(name, namespace, container, command)
    if stderr_is_error and result.stderr.strip():
        raise ExecutionFailedError(
            f"error occurred while running command {list(command)} on pod "
            f"{namespace or DEFAULT_NAMESPACE}/{name}: {result.stderr.strip()}"
        )
    return result


async def get_pod_logs(
    name: str,
    namespace: str,
    container: str | None = None,
    previous: bool = False,
) -> list[str]:
    """Return a pod's logs, one timestamped entry per line."""
    namespace = namespace or DEFAULT_NAMESPACE
    validate_object_name(name, "pod name")
    validate_object_name(namespace, "namespace")
    cmd = ["logs", name, "--timestamps"]
    if container:
        validate_object_name(container, "container name")
        cmd += ["--container", container]
    if previous:
        cmd.append("--previous")

    try:
        out = await kubectl(cmd, namespace=namespace)
    except KubectlError as e:
        raise type(e)(f"failed to fetch pod logs: {e}")
    return out.splitlines()
