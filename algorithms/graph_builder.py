"""
Wait-For Graph construction for the Deadlock Detector.

Derives the wait-for graph from an entity snapshot: an edge A -> B exists
when A requests a resource currently held by B.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Tuple

from models.entity import Entity


@dataclass(frozen=True)
class WaitForGraph:
    """
    Derived graph for one detection pass.

    Attributes:
        holder_map: resource id -> holding entity id
        adjacency: entity id -> entity ids it waits on (ordered, no repeats)
        requested: entity id -> resource ids it requests
    """
    holder_map: Dict[Hashable, Hashable] = field(default_factory=dict)
    adjacency: Dict[Hashable, List[Hashable]] = field(default_factory=dict)
    requested: Dict[Hashable, List[Hashable]] = field(default_factory=dict)

    def edges(self) -> List[Tuple[Hashable, Hashable]]:
        """All (waiter, holder) edges in adjacency order."""
        return [(a, b) for a, neighbors in self.adjacency.items() for b in neighbors]

    def edge_count(self) -> int:
        return sum(len(neighbors) for neighbors in self.adjacency.values())

    def waits_on(self, waiter: Hashable, holder: Hashable) -> bool:
        return holder in self.adjacency.get(waiter, ())

    def edge_resources(self, waiter: Hashable, holder: Hashable) -> List[Hashable]:
        """Resources behind the waiter -> holder edge, in request order."""
        if waiter == holder:
            return []
        resources = []
        for resource_id in self.requested.get(waiter, ()):
            if resource_id not in self.holder_map or self.holder_map[resource_id] != holder:
                continue
            if resource_id not in resources:
                resources.append(resource_id)
        return resources


def build_holder_map(entities: Iterable[Entity]) -> Dict[Hashable, Hashable]:
    """
    Map each held resource to its holder.

    If two entities claim the same resource the later one wins; this is a
    caller invariant violation and is not reported here.

    Args:
        entities: Entity snapshot

    Returns:
        Dict resource id -> entity id
    """
    holder_map = {}
    for entity in entities:
        for resource_id in entity.held:
            holder_map[resource_id] = entity.entity_id
    return holder_map


def build_adjacency(
    entities: Iterable[Entity],
    holder_map: Dict[Hashable, Hashable]
) -> Dict[Hashable, List[Hashable]]:
    """
    Build the wait-for adjacency map.

    Keys follow entity order. A requested resource with no holder adds no
    edge (it is available, just not yet granted). Self-edges are skipped.

    Args:
        entities: Entity snapshot
        holder_map: Output of build_holder_map

    Returns:
        Dict entity id -> ordered list of entity ids it waits on
    """
    adjacency: Dict[Hashable, List[Hashable]] = {}

    for entity in entities:
        neighbors = adjacency.setdefault(entity.entity_id, [])
        for resource_id in entity.requested:
            if resource_id not in holder_map:
                continue
            holder = holder_map[resource_id]
            if holder == entity.entity_id:
                continue
            if holder not in neighbors:
                neighbors.append(holder)

    return adjacency


def build_wait_for_graph(entities: Iterable[Entity]) -> WaitForGraph:
    """Build holder map and adjacency for one snapshot."""
    entities = list(entities)
    holder_map = build_holder_map(entities)

    requested: Dict[Hashable, List[Hashable]] = {}
    for entity in entities:
        requested.setdefault(entity.entity_id, []).extend(entity.requested)

    return WaitForGraph(
        holder_map=holder_map,
        adjacency=build_adjacency(entities, holder_map),
        requested=requested
    )
