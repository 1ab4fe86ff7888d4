"""
Integration test fixtures — requires a live cluster reachable with the
current kubeconfig (e.g. a kind cluster running OVN-Kubernetes).
"""

from __future__ import annotations

import subprocess

import pytest


def _cluster_reachable() -> bool:
    try:
        result = subprocess.run(
            ["kubectl", "get", "--raw", "/readyz"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (OSError, subprocess.TimeoutExpired):
        return False


skip_no_cluster = pytest.mark.skipif(
    not _cluster_reachable(),
    reason="cluster not reachable — skipping integration tests",
)
