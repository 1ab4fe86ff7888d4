"""
Async kubectl wrapper.

Uses asyncio.create_subprocess_exec — no shell involved. All callers must pass
resource names, commands and values as explicit list elements, never
interpolated into a shell string.

kubectl is the server's only channel to the cluster:
  - ``kubectl get --raw`` for discovery and schema-less resource access
  - ``kubectl get/create/delete pod`` for the debug pod lifecycle
  - ``kubectl exec`` / ``kubectl logs`` for the remote command channel

Environment variables:
  OVNK_MCP_KUBECONFIG=/path        — kubeconfig passed as --kubeconfig
  OVNK_MCP_CONTEXT=name            — kubeconfig context passed as --context
  OVNK_MCP_KUBECTL_TIMEOUT=60      — timeout (seconds) for ordinary calls
  OVNK_MCP_EXEC_TIMEOUT=300        — timeout (seconds) for kubectl exec
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Sequence

from ovnk_mcp.errors import KubectlError, KubectlTimeoutError, NotFoundError


KUBECTL_TIMEOUT = int(os.environ.get("OVNK_MCP_KUBECTL_TIMEOUT", "60"))  # seconds
EXEC_TIMEOUT = int(os.environ.get("OVNK_MCP_EXEC_TIMEOUT", "300"))  # seconds
MAX_OUTPUT_BYTES = 10 * 1024 * 1024  # 10 MB
MAX_CONCURRENT_KUBECTL = 10

KUBECONFIG = os.environ.get("OVNK_MCP_KUBECONFIG", "").strip() or None
CONTEXT = os.environ.get("OVNK_MCP_CONTEXT", "").strip() or None

_TRUNCATION_MARKER = b"\n[... output truncated at 10 MB ...]"


# ---------------------------------------------------------------------------
# Error enrichment
# ---------------------------------------------------------------------------

_ERROR_HINTS = {
    "No such file or directory": (
        "kubectl binary not found. Ensure kubectl is installed and on your PATH."
    ),
    "Unable to connect to the server": (
        "Cannot reach the Kubernetes API server. Check that your cluster is running "
        "and kubeconfig is correct."
    ),
    "error: You must be logged in": (
        "Authentication failed. Your kubeconfig credentials may have expired."
    ),
    "the server has asked for the client to provide credentials": (
        "Cluster rejected credentials. Token may be expired."
    ),
    "was refused": (
        "Connection refused by the API server. The cluster may be down or the endpoint is wrong."
    ),
    "is forbidden": (
        "The server's service account or kubeconfig user lacks RBAC permission for this call."
    ),
}


def _enrich_error(raw_stderr: str) -> str:
    """Prepend an actionable hint to common kubectl errors."""
    for pattern, hint in _ERROR_HINTS.items():
        if pattern in raw_stderr:
            return f"{hint}\n\nkubectl stderr: {raw_stderr}"
    return raw_stderr


def _raise_for_status(returncode: int, stderr: bytes) -> None:
    if returncode == 0:
        return
    err = stderr.decode(errors="replace").strip()
    if not err:
        raise KubectlError(f"kubectl exited with code {returncode}")
    if "(NotFound)" in err:
        raise NotFoundError(err)
    raise KubectlError(_enrich_error(err))


# ---------------------------------------------------------------------------
# Concurrency control
# ---------------------------------------------------------------------------

_semaphore: asyncio.Semaphore | None = None


def _get_semaphore() -> asyncio.Semaphore:
    global _semaphore
    if _semaphore is None:
        _semaphore = asyncio.Semaphore(MAX_CONCURRENT_KUBECTL)
    return _semaphore


# ---------------------------------------------------------------------------
# Core functions
# ---------------------------------------------------------------------------

def _build_args(
    args: Sequence[str],
    namespace: str | None = None,
    all_namespaces: bool = False,
) -> list[str]:
    prefix: list[str] = []
    suffix: list[str] = []
    if KUBECONFIG:
        prefix += ["--kubeconfig", KUBECONFIG]
    if CONTEXT:
        prefix += ["--context", CONTEXT]
    if all_namespaces:
        suffix += ["--all-namespaces"]
    elif namespace:
        prefix += ["--namespace", namespace]
    return prefix + list(args) + suffix


async def _run(
    full_args: list[str],
    *,
    timeout: int,
    stdin_data: str | None = None,
) -> tuple[int, bytes, bytes]:
    """Run kubectl once and return (returncode, stdout, stderr)."""
    async with _get_semaphore():
        proc = await asyncio.create_subprocess_exec(
            "kubectl",
            *full_args,
            # stdin is the MCP stdio transport; never let kubectl inherit it
            stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        payload = stdin_data.encode() if stdin_data is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(payload), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            raise KubectlTimeoutError(
                f"kubectl timed out after {timeout}s: kubectl {' '.join(full_args)}"
            )
        except asyncio.CancelledError:
            proc.kill()
            raise

    if len(stdout) > MAX_OUTPUT_BYTES:
        stdout = stdout[:MAX_OUTPUT_BYTES] + _TRUNCATION_MARKER

    return proc.returncode, stdout, stderr


async def kubectl(
    args: Sequence[str],
    *,
    namespace: str | None = None,
    all_namespaces: bool = False,
    timeout_override: int | None = None,
) -> str:
    """Run kubectl and return stdout as a string."""
    full_args = _build_args(args, namespace=namespace, all_namespaces=all_namespaces)
    rc, stdout, stderr = await _run(full_args, timeout=timeout_override or KUBECTL_TIMEOUT)
    _raise_for_status(rc, stderr)
    return stdout.decode(errors="replace").strip()


def _parse_json(output: str) -> dict:
    try:
        return json.loads(output)
    except json.JSONDecodeError:
        raise KubectlError(
            "Response too large to parse as JSON (likely truncated at 10 MB). "
            "Try narrowing your query with a namespace or label selector."
        )


async def kubectl_json(
    args: Sequence[str],
    *,
    namespace: str | None = None,
    all_namespaces: bool = False,
) -> dict:
    """Run kubectl with -o json and parse the result."""
    output = await kubectl(
        list(args) + ["-o", "json"],
        namespace=namespace,
        all_namespaces=all_namespaces,
    )
    return _parse_json(output)


async def kubectl_raw(path: str) -> dict:
    """GET an API server path with ``kubectl get --raw`` and parse the JSON body."""
    output = await kubectl(["get", "--raw", path])
    return _parse_json(output)


async def kubectl_stdin(
    args: Sequence[str],
    stdin_data: str,
    *,
    namespace: str | None = None,
) -> str:
    """Run kubectl with data piped to stdin (e.g. create -f -)."""
    full_args = _build_args(args, namespace=namespace)
    rc, stdout, stderr = await _run(full_args, timeout=KUBECTL_TIMEOUT, stdin_data=stdin_data)
    _raise_for_status(rc, stderr)

    # kubectl prints deprecation and policy warnings to stderr on success
    err_out = stderr.decode(errors="replace").strip()
    if err_out:
        print(f"kubectl warning: {err_out}", file=sys.stderr)
    return stdout.decode(errors="replace").strip()


async def kubectl_capture(
    args: Sequence[str],
    *,
    namespace: str | None = None,
    timeout_override: int | None = None,
) -> tuple[str, str]:
    """Run kubectl and return its untouched (stdout, stderr).

    Used for ``kubectl exec`` where stderr belongs to the remote command and
    is data, not a failure. A non-zero exit still raises.
    """
    full_args = _build_args(args, namespace=namespace)
    rc, stdout, stderr = await _run(full_args, timeout=timeout_override or EXEC_TIMEOUT)
    _raise_for_status(rc, stderr)
    return stdout.decode(errors="replace"), stderr.decode(errors="replace")
