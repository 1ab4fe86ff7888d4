"""
Run-time discovery of the API resources a cluster serves.

``ResourceCatalog`` maps a (group, version, kind) triple to the collection
name used in API paths and to its scope. Discovery documents are fetched with
``kubectl get --raw`` and cached per group/version for the process lifetime.

The catalog is created once by the server and handed to the tools that need
it. All access happens on one event loop; two calls racing to fill the same
group/version both store an identical document.
"""

from __future__ import annotations

from dataclasses import dataclass

from ovnk_mcp.errors import DiscoveryUnavailableError, KubectlError, NotFoundError
from ovnk_mcp.kubectl import kubectl_raw


@dataclass(frozen=True)
class CapabilityEntry:
    group: str
    version: str
    kind: str
    collection_name: str
    namespaced: bool

    @property
    def group_version(self) -> str:
        return group_version(self.group, self.version)


def group_version(group: str, version: str) -> str:
    return f"{group}/{version}" if group else version


def api_prefix(group: str, version: str) -> str:
    """Path under which a group/version is served: /api/v1 or /apis/<group>/<version>."""
    if group:
        return f"/apis/{group}/{version}"
    return f"/api/{version}"


class ResourceCatalog:
    """In-memory cache of discovery documents keyed by (group, version)."""

    def __init__(self) -> None:
        self._resources: dict[tuple[str, str], dict[str, CapabilityEntry]] = {}

    async def resolve(self, group: str, version: str, kind: str) -> CapabilityEntry:
        """Return the entry for ``kind`` (case-sensitive) in ``group/version``.

        A cached group/version that lacks the kind is fetched again once, so
        kinds installed after the first lookup are still found.
        """
        key = (group, version)
        cached = self._resources.get(key)
        if cached is not None and kind in cached:
            return cached[kind]

        entries = await self._fetch(group, version)
        self._resources[key] = entries
        entry = entries.get(kind)
        if entry is None:
            raise NotFoundError(
                f"no resource of kind {kind!r} is served by group version "
                f"{group_version(group, version)!r}"
            )
        return entry

    async def is_namespaced(self, group: str, version: str, kind: str) -> bool:
        entry = await self.resolve(group, version, kind)
        return entry.namespaced

    def invalidate(self) -> None:
        self._resources.clear()

    async def _fetch(self, group: str, version: str) -> dict[str, CapabilityEntry]:
        gv = group_version(group, version)
        try:
            document = await kubectl_raw(api_prefix(group, version))
        except NotFoundError:
            raise NotFoundError(f"group version {gv!r} is not served by the cluster")
        except KubectlError as e:
            raise DiscoveryUnavailableError(
                f"failed to fetch server resources for group version {gv!r}: {e}"
            )

        entries: dict[str, CapabilityEntry] = {}
        for resource in document.get("resources", []):
            name = resource.get("name", "")
            # subresources such as pods/log and deployments/scale share the parent's kind
            if not name or "/" in name:
                continue
            kind = resource.get("kind", "")
            entries.setdefault(
                kind,
                CapabilityEntry(
                    group=group,
                    version=version,
                    kind=kind,
                    collection_name=name,
                    namespaced=bool(resource.get("namespaced", False)),
                ),
            )
        return entries
