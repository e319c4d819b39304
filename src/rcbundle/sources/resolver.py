"""Relation resolution between resource packages.

A resource declares relations ("en/tn?v=86"); a relation resolves when
some package in the candidate pool has the same resource key
(language/identifier).

Resolution is one hop: the relations of resolved resources are not
followed. The dependency graph applies the same one-hop rule to every
resource, so relation cycles (A -> B -> A) are preserved as data and can
never cause non-termination.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from rcbundle.formats.links import parse_relation_ref, to_resource_key
from rcbundle.sources.catalog import ResourceDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelatedResources:
    """Outcome of resolving one resource's relations."""

    resolved: list[ResourceDescriptor] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DependencyNode:
    """Direct dependencies of one resource."""

    key: str
    dependencies: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DependencyGraph:
    """Flat list of nodes; callers walk it themselves."""

    nodes: list[DependencyNode] = field(default_factory=list)

    def node(self, key: str) -> DependencyNode | None:
        """Get the first node with the given key."""
        for node in self.nodes:
            if node.key == key:
                return node
        return None

    def edges(self) -> list[tuple[str, str]]:
        """All (dependent, dependency) pairs."""
        return [(n.key, dep) for n in self.nodes for dep in n.dependencies]

    @property
    def unresolved(self) -> list[str]:
        """Every unresolved relation across the graph (de-duplicated)."""
        return list(dict.fromkeys(r for n in self.nodes for r in n.unresolved))

    def to_dict(self) -> dict:
        return {
            "nodes": [
                {
                    "key": n.key,
                    "dependencies": list(n.dependencies),
                    "unresolved": list(n.unresolved),
                }
                for n in self.nodes
            ]
        }


def index_by_key(
    resources: Iterable[ResourceDescriptor],
) -> dict[str, ResourceDescriptor]:
    """Map resource key -> resource; later duplicates win, keyless skipped."""
    by_key = {}
    for resource in resources:
        key = to_resource_key(resource)
        if key:
            by_key[key] = resource
    return by_key


def _resolve(
    relations: Iterable[str], by_key: dict[str, ResourceDescriptor]
) -> tuple[list[str], list[ResourceDescriptor], list[str]]:
    keys: list[str] = []
    resolved: list[ResourceDescriptor] = []
    unresolved: list[str] = []
    for raw in relations:
        relation = parse_relation_ref(raw)
        match = by_key.get(relation.key) if relation.is_resolvable else None
        if match is None:
            unresolved.append(raw)
        else:
            keys.append(relation.key)
            resolved.append(match)
    return keys, resolved, unresolved


def find_related_resources(
    resource: ResourceDescriptor,
    pool: Iterable[ResourceDescriptor],
) -> RelatedResources:
    """Resolve a resource's declared relations against a pool.

    Args:
        resource: Resource whose relations to resolve
        pool: Candidate packages

    Returns:
        RelatedResources with de-duplicated resolved resources and
        unresolved raw relation strings (in declaration order)
    """
    _, resolved, unresolved = _resolve(resource.relations, index_by_key(pool))
    result = RelatedResources(
        resolved=list(dict.fromkeys(resolved)),
        unresolved=list(dict.fromkeys(unresolved)),
    )
    logger.debug(
        f"{resource.id}: {len(result.resolved)} relations resolved, "
        f"{len(result.unresolved)} unresolved"
    )
    return result


def build_dependency_graph(resources: Iterable[ResourceDescriptor]) -> DependencyGraph:
    """Build the one-hop dependency graph of a resource set.

    Every input resource becomes a node; a resource without a derivable
    key is keyed by its raw id.
    """
    resources = list(resources)
    by_key = index_by_key(resources)

    nodes = []
    for resource in resources:
        keys, _, unresolved = _resolve(resource.relations, by_key)
        nodes.append(
            DependencyNode(
                key=to_resource_key(resource) or resource.id,
                dependencies=list(dict.fromkeys(keys)),
                unresolved=list(dict.fromkeys(unresolved)),
            )
        )
    return DependencyGraph(nodes=nodes)
