"""
Schema-less get/list of any resource the cluster serves.

Documents are returned as the plain dicts decoded from the API server's JSON;
rendering happens at the tool boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlencode

from ovnk_mcp.cluster.discovery import CapabilityEntry, ResourceCatalog, api_prefix
from ovnk_mcp.kubectl import kubectl_raw
from ovnk_mcp.validation import validate_path_segment


DEFAULT_NAMESPACE = "default"


@dataclass
class ResourceCoordinate:
    version: str
    kind: str
    name: str = ""
    group: str = ""
    namespace: str = ""


def collection_path(entry: CapabilityEntry, namespace: str = "") -> str:
    """API path of a collection, narrowed to a namespace when one is given."""
    prefix = api_prefix(entry.group, entry.version)
    if entry.namespaced and namespace:
        return f"{prefix}/namespaces/{quote(namespace, safe='')}/{entry.collection_name}"
    return f"{prefix}/{entry.collection_name}"


async def get_resource(catalog: ResourceCatalog, coordinate: ResourceCoordinate) -> dict:
    """Fetch one object.

    A namespaced kind without a namespace is read from ``default``; a
    cluster-scoped kind ignores whatever namespace was passed.
    """
    validate_path_segment(coordinate.name, "name")
    entry = await catalog.resolve(coordinate.group, coordinate.version, coordinate.kind)
    namespace = ""
    if entry.namespaced:
        namespace = coordinate.namespace or DEFAULT_NAMESPACE
        validate_path_segment(namespace, "namespace")

    path = f"{collection_path(entry, namespace)}/{quote(coordinate.name, safe='')}"
    return await kubectl_raw(path)


async def list_resources(
    catalog: ResourceCatalog,
    group: str,
    version: str,
    kind: str,
    namespace: str = "",
    label_selector: str = "",
) -> list[dict]:
    """List objects of a kind.

    An empty namespace lists across all namespaces. The label selector is
    handed to the API server untouched and items keep the server's order.
    """
    entry = await catalog.resolve(group, version, kind)
    if entry.namespaced and namespace:
        validate_path_segment(namespace, "namespace")
    path = collection_path(entry, namespace)
    if label_selector:
        path += "?" + urlencode({"labelSelector": label_selector})

    document = await kubectl_raw(path)
    items = document.get("items") or []

    # list responses omit apiVersion/kind on each item
    return [{"apiVersion": entry.group_version, "kind": entry.kind, **item} for item in items]
