"""
Kubernetes tools — generic resource access, pod logs/exec and node debugging.

Tools:
  resource-get   — get any resource by group/version/kind and name
  resource-list  — list any resource kind, optionally by namespace / label selector
  pod-logs       — get the logs of a pod container
  pod-exec       — run a command in a running pod
  debug-node     — run a command on a node through a temporary privileged pod
"""

from __future__ import annotations

from mcp.types import TextContent, Tool, ToolAnnotations

from ovnk_mcp.cluster.debug_node import debug_node
from ovnk_mcp.cluster.discovery import ResourceCatalog
from ovnk_mcp.cluster.pods import exec_pod, get_pod_logs
from ovnk_mcp.cluster.resources import ResourceCoordinate, get_resource, list_resources
from ovnk_mcp.errors import InvalidInputError, OVNKMCPError
from ovnk_mcp.formatters import OUTPUT_TYPES, _err, _ok, render_resource


_OUTPUT_TYPE_SCHEMA = {
    "type": "string",
    "enum": list(OUTPUT_TYPES),
    "description": (
        "Omit for name/namespace/age, 'wide' to add labels and annotations, "
        "'json' or 'yaml' for the full object."
    ),
}

_GVK_PROPERTIES = {
    "group": {"type": "string", "description": "API group, empty for the core group (e.g. 'apps', 'k8s.ovn.org')."},
    "version": {"type": "string", "description": "API version, e.g. 'v1'."},
    "kind": {"type": "string", "description": "Kind, case-sensitive, e.g. 'Pod', 'EgressIP'."},
}

_COMMAND_SCHEMA = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Command and arguments, one list element each. No shell is involved.",
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

KUBERNETES_TOOLS: list[Tool] = [
    Tool(
        name="resource-get",
        description=(
            "Get a resource. Examples: "
            'a pod named my-pod in the default namespace: {"version": "v1", "kind": "Pod", "name": "my-pod", "namespace": "default"}; '
            'a deployment in YAML: {"group": "apps", "version": "v1", "kind": "Deployment", "name": "my-deployment", '
            '"namespace": "default", "outputType": "yaml"}. '
            "Namespaced kinds default to the 'default' namespace; the namespace is ignored for cluster-scoped kinds."
        ),
        inputSchema={
            "type": "object",
            "required": ["version", "kind", "name"],
            "properties": {
                **_GVK_PROPERTIES,
                "name": {"type": "string", "description": "Name of the resource."},
                "namespace": {"type": "string"},
                "outputType": _OUTPUT_TYPE_SCHEMA,
            },
        },
        annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True),
    ),
    Tool(
        name="resource-list",
        description=(
            "List resources in a namespace or across all namespaces. Examples: "
            'all pods in the default namespace: {"version": "v1", "kind": "Pod", "namespace": "default"}; '
            'all services: {"version": "v1", "kind": "Service"}; '
            'pods labelled app=web: {"version": "v1", "kind": "Pod", "labelSelector": "app=web"}.'
        ),
        inputSchema={
            "type": "object",
            "required": ["version", "kind"],
            "properties": {
                **_GVK_PROPERTIES,
                "namespace": {"type": "string", "description": "Omit to list across all namespaces."},
                "labelSelector": {"type": "string", "description": "e.g. 'app=web,tier=frontend'."},
                "outputType": _OUTPUT_TYPE_SCHEMA,
            },
        },
        annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True),
    ),
    Tool(
        name="pod-logs",
        description=(
            "Get the logs of a pod. Examples: "
            '{"name": "my-pod", "namespace": "default"}; '
            'previous logs of a container: {"name": "my-pod", "namespace": "default", "container": "my-container", "previous": true}.'
        ),
        inputSchema={
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "description": "Pod name."},
                "namespace": {"type": "string", "description": "Defaults to 'default'."},
                "container": {"type": "string", "description": "Container name (omit for single-container pods)."},
                "previous": {
                    "type": "boolean",
                    "description": "Get logs from the previously terminated container instance.",
                    "default": False,
                },
            },
        },
        annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True),
    ),
    Tool(
        name="pod-exec",
        description=(
            "Execute a command in a running pod and return its stdout and stderr. "
            'Example: {"name": "ovnkube-node-abcde", "namespace": "ovn-kubernetes", "container": "ovnkube-controller", '
            '"command": ["ip", "route"]}. The first container is used when container is omitted.'
        ),
        inputSchema={
            "type": "object",
            "required": ["name", "command"],
            "properties": {
                "name": {"type": "string", "description": "Pod name."},
                "namespace": {"type": "string", "description": "Defaults to 'default'."},
                "container": {"type": "string"},
                "command": _COMMAND_SCHEMA,
            },
        },
        annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True),
    ),
    Tool(
        name="debug-node",
        description=(
            "Run a command on a node. A temporary privileged pod sharing the host network, PID and IPC "
            "namespaces is scheduled on the node with the host filesystem mounted at /host, the command "
            "runs inside it and the pod is deleted afterwards. "
            'Example: {"name": "worker-1", "image": "registry.access.redhat.com/ubi9/ubi", '
            '"command": ["chroot", "/host", "ip", "-br", "addr"]}.'
        ),
        inputSchema={
            "type": "object",
            "required": ["name", "image", "command"],
            "properties": {
                "name": {"type": "string", "description": "Node name."},
                "image": {"type": "string", "description": "Container image for the debug pod."},
                "command": _COMMAND_SCHEMA,
            },
        },
        annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True),
    ),
]


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------

def _require(args: dict, *fields: str) -> None:
    """Raise one error naming every missing required argument."""
    missing = [f"{field} is required" for field in fields if not args.get(field)]
    if missing:
        raise InvalidInputError("; ".join(missing))


def _command(args: dict) -> list[str]:
    command = args.get("command")
    if isinstance(command, str) or not isinstance(command, list) or not all(isinstance(c, str) for c in command):
        raise InvalidInputError("command must be a list of strings")
    return command


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class KubernetesToolset:
    """Handlers for ``KUBERNETES_TOOLS`` bound to one discovery catalog."""

    def __init__(self, catalog: ResourceCatalog) -> None:
        self.catalog = catalog

    @property
    def handlers(self) -> dict:
        return {
            "resource-get": self.handle_get_resource,
            "resource-list": self.handle_list_resources,
            "pod-logs": handle_pod_logs,
            "pod-exec": handle_pod_exec,
            "debug-node": handle_debug_node,
        }

    async def handle_get_resource(self, args: dict) -> list[TextContent]:
        try:
            _require(args, "version", "kind", "name")
            coordinate = ResourceCoordinate(
                group=args.get("group") or "",
                version=args["version"],
                kind=args["kind"],
                name=args["name"],
                namespace=args.get("namespace") or "",
            )
            document = await get_resource(self.catalog, coordinate)
            resource = render_resource(document, args.get("outputType"))
        except OVNKMCPError as e:
            return _err(str(e))
        return _ok({"resource": resource})

    async def handle_list_resources(self, args: dict) -> list[TextContent]:
        output_type = args.get("outputType")
        try:
            _require(args, "version", "kind")
            documents = await list_resources(
                self.catalog,
                args.get("group") or "",
                args["version"],
                args["kind"],
                namespace=args.get("namespace") or "",
                label_selector=args.get("labelSelector") or "",
            )
            resources = [render_resource(doc, output_type) for doc in documents]
        except OVNKMCPError as e:
            return _err(str(e))
        return _ok({"resources": resources})


async def handle_pod_logs(args: dict) -> list[TextContent]:
    try:
        _require(args, "name")
        logs = await get_pod_logs(
            args["name"],
            args.get("namespace") or "",
            container=args.get("container"),
            previous=bool(args.get("previous", False)),
        )
    except OVNKMCPError as e:
        return _err(str(e))
    return _ok({"logs": logs})


async def handle_pod_exec(args: dict) -> list[TextContent]:
    try:
        _require(args, "name", "command")
        result = await exec_pod(
            args["name"],
            args.get("namespace") or "",
            args.get("container"),
            _command(args),
        )
    except OVNKMCPError as e:
        return _err(str(e))
    return _ok(result.to_dict())


async def handle_debug_node(args: dict) -> list[TextContent]:
    try:
        _require(args, "name", "image", "command")
        result = await debug_node(args["name"], args["image"], _command(args))
    except OVNKMCPError as e:
        return _err(str(e))
    return _ok(result.to_dict())
