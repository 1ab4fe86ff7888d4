"""Shared output formatting helpers."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import yaml
from mcp.types import TextContent

from ovnk_mcp.errors import InvalidInputError


# ---------------------------------------------------------------------------
# Shared error helper
# ---------------------------------------------------------------------------

class ToolError(list):
    """Sentinel list subclass returned by tool handlers to indicate an error.

    Wraps a ``list[TextContent]`` so existing handler return-type contracts
    are preserved while ``server.py`` can detect errors via ``isinstance()``.
    """


def _err(msg: str) -> list[TextContent]:
    """Return an error response that ``server.py`` will mark with ``isError=True``."""
    return ToolError([TextContent(type="text", text=f"Error: {msg}")])


def _ok(result: dict) -> list[TextContent]:
    """Serialize a tool result as a single JSON text block."""
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


# ---------------------------------------------------------------------------
# Resource views
# ---------------------------------------------------------------------------

JSON_OUTPUT = "json"
YAML_OUTPUT = "yaml"
WIDE_OUTPUT = "wide"
OUTPUT_TYPES = (JSON_OUTPUT, YAML_OUTPUT, WIDE_OUTPUT)


def format_age(age: timedelta) -> str:
    """Render an age the way kubectl does: 45s, 3m12s, 5h2m, 12d3h.

    Each component is truncated, never rounded.
    """
    total = max(int(age.total_seconds()), 0)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m{total % 60}s"
    if total < 86400:
        return f"{total // 3600}h{total % 3600 // 60}m"
    return f"{total // 86400}d{total % 86400 // 3600}h"


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def resource_age(document: dict, now: datetime | None = None) -> str:
    """Age of a resource from ``metadata.creationTimestamp``; empty when unknown."""
    created = _parse_timestamp(document.get("metadata", {}).get("creationTimestamp"))
    if created is None:
        return ""
    now = now or datetime.now(timezone.utc)
    return format_age(now - created)


def render_resource(document: dict, output_type: str | None = None, now: datetime | None = None) -> dict[str, Any]:
    """Project a resource document into the view requested by the caller.

    ``json`` and ``yaml`` return the whole document under ``data``; the default
    view is name, namespace and age; ``wide`` adds labels and annotations.
    """
    if output_type == JSON_OUTPUT:
        return {"data": json.dumps(document)}
    if output_type == YAML_OUTPUT:
        return {"data": yaml.safe_dump(document, default_flow_style=False, sort_keys=False)}
    if output_type and output_type != WIDE_OUTPUT:
        raise InvalidInputError(
            f"unsupported outputType {output_type!r}: expected one of {', '.join(OUTPUT_TYPES)}"
        )

    metadata = document.get("metadata", {})
    view: dict[str, Any] = {"name": metadata.get("name", "")}
    if metadata.get("namespace"):
        view["namespace"] = metadata["namespace"]
    age = resource_age(document, now)
    if age:
        view["age"] = age

    if output_type == WIDE_OUTPUT:
        if metadata.get("labels"):
            view["labels"] = dict(metadata["labels"])
        if metadata.get("annotations"):
            view["annotations"] = dict(metadata["annotations"])
    return view


# ---------------------------------------------------------------------------
# Command output
# ---------------------------------------------------------------------------

def output_lines(output: str, keep_indent: bool = False) -> list[str]:
    """Split command output into non-empty lines.

    Lines are stripped, or only right-stripped with ``keep_indent`` for
    hierarchical output such as ovs-vsctl show.
    """
    if keep_indent:
        return [line.rstrip() for line in output.splitlines() if line.strip()]
    return [line.strip() for line in output.splitlines() if line.strip()]
