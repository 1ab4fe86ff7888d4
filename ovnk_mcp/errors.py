"""
Exception hierarchy shared by every layer of the server.

Tool handlers catch ``OVNKMCPError`` and surface its message verbatim;
anything else reaching ``server.py`` is reported as an unexpected error.
"""

from __future__ import annotations


class OVNKMCPError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInputError(OVNKMCPError, ValueError):
    """Raised when caller-supplied input is rejected before reaching the cluster."""


# ---------------------------------------------------------------------------
# kubectl channel failures
# ---------------------------------------------------------------------------

class KubectlError(OVNKMCPError):
    """Raised when kubectl exits with a non-zero status."""


class NotFoundError(KubectlError):
    """The requested kind, group/version or object does not exist."""


class DiscoveryUnavailableError(KubectlError):
    """The API server's discovery endpoint could not be reached."""


class ExecutionFailedError(KubectlError):
    """A command run inside a pod failed."""


class KubectlTimeoutError(KubectlError):
    """A kubectl subprocess did not finish within its timeout."""


# ---------------------------------------------------------------------------
# Pod readiness
# ---------------------------------------------------------------------------

class NotReadyError(OVNKMCPError):
    """A pod is not in the Running phase."""


class DebugPodTimeoutError(NotReadyError):
    """A debug pod did not reach Running before the readiness deadline."""
