"""
Input sanitization for values that end up in a remote command's argv.

Nothing here escapes input: a value is either accepted as-is or rejected with
``InvalidInputError`` before any argument vector is built.
"""

from __future__ import annotations

import re

from ovnk_mcp.errors import InvalidInputError


_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_-]+")

# Shell metacharacters that never appear in an OpenFlow match or conntrack
# filter. "/", "(", ")", ",", "=", ":" and "." are part of those grammars.
_UNSAFE_FREEFORM_RE = re.compile(r"[;&|$`<>\\]")

# RFC 1123 subdomain.
_OBJECT_NAME_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")
_MAX_OBJECT_NAME = 253


def validate_identifier(value: str, what: str = "identifier") -> None:
    """Accept only non-empty values made of letters, digits, '-' and '_'.

    Used for OVS bridge names.
    """
    if not value:
        raise InvalidInputError(f"{what} cannot be empty")
    if not _IDENTIFIER_RE.fullmatch(value):
        raise InvalidInputError(
            f"invalid {what} {value!r}: must contain only alphanumeric characters, "
            f"hyphens, and underscores"
        )


def validate_freeform(value: str, what: str = "specification") -> None:
    """Accept any non-empty value free of shell metacharacters.

    Used for flow specifications passed to ``ovs-appctl ofproto/trace`` and for
    extra ``dpctl/dump-conntrack`` parameters.
    """
    if not value:
        raise InvalidInputError(f"{what} cannot be empty")
    if _UNSAFE_FREEFORM_RE.search(value):
        raise InvalidInputError(f"invalid {what}: contains potentially dangerous characters")


def validate_object_name(name: str, what: str = "name") -> None:
    """Accept a Kubernetes object name (RFC 1123 subdomain).

    Node, pod, namespace and container names all fit this format, and none of
    them can start with "-" and be mistaken for a kubectl flag.
    """
    if not name:
        raise InvalidInputError(f"{what} cannot be empty")
    if len(name) > _MAX_OBJECT_NAME or not _OBJECT_NAME_RE.fullmatch(name):
        raise InvalidInputError(f"invalid {what} {name!r}: must be a DNS-1123 subdomain")


def validate_path_segment(value: str, what: str = "name") -> None:
    """Accept a value the API server can serve as one URL path segment.

    kubectl decodes the path it is given, so "/" and "%" would reach the
    server as separators or escapes, and "." or ".." would be resolved away.
    """
    if not value:
        raise InvalidInputError(f"{what} cannot be empty")
    if value in (".", ".."):
        raise InvalidInputError(f"invalid {what} {value!r}: may not be '.' or '..'")
    for ch in ("/", "%"):
        if ch in value:
            raise InvalidInputError(f"invalid {what} {value!r}: may not contain {ch!r}")


def validate_image(image: str) -> None:
    if not image:
        raise InvalidInputError("image cannot be empty")
    if any(ch.isspace() for ch in image):
        raise InvalidInputError(f"invalid image {image!r}: must not contain whitespace")


# ---------------------------------------------------------------------------
# Output line helpers
# ---------------------------------------------------------------------------

def filter_lines(lines: list[str], pattern: str | None) -> list[str]:
    """Keep the lines matching a regex. An empty pattern keeps everything."""
    if pattern is not None and not isinstance(pattern, str):
        raise InvalidInputError("filter must be a string")
    if not pattern:
        return lines
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise InvalidInputError(f"invalid filter pattern {pattern!r}: {e}")
    return [line for line in lines if regex.search(line)]


def limit_lines(lines: list[str], max_lines: int | None) -> list[str]:
    """Return at most ``max_lines`` lines; zero, negative or None means no limit."""
    if max_lines is not None and (isinstance(max_lines, bool) or not isinstance(max_lines, int)):
        raise InvalidInputError("max_lines must be an integer")
    if max_lines and max_lines > 0:
        return lines[:max_lines]
    return lines
