"""
Deadlock Detection Algorithm for the Wait-For Graph Deadlock Detector.

Implements depth-first cycle search over the wait-for graph for
single-instance resources.
"""

from typing import Dict, Hashable, Iterable, List, Optional, Set

from models.entity import Entity
from models.detection_result import Cycle, DetectionResult
from algorithms.graph_builder import build_wait_for_graph


def detect_deadlock(entities: Iterable[Entity]) -> DetectionResult:
    """
    Detect circular waits in an entity snapshot.

    Algorithm:
    1. Build holder map and wait-for adjacency (graph_builder)
    2. Run DFS from every unvisited entity, in entity order
    3. A back-edge (neighbor on the current path) closes a cycle
    4. Annotate each cycle with the resources mediating its edges

    Only the first cycle found from a given root is reported. Two cycles
    reachable from the same root need a second pass after the first is
    broken (see algorithms.resolution.enumerate_all_cycles).

    Time Complexity: O(V + E) for the search, plus O(total held) per cycle
    for the resource annotation

    Four Deadlock Conditions Manifested:
    - Mutual Exclusion: each resource id has at most one holder
    - Hold and Wait: an entity keeps `held` while `requested` is non-empty
    - No Preemption: only the caller releases or revokes
    - Circular Wait: a cycle in the wait-for graph

    Args:
        entities: Entity snapshot (not modified)

    Returns:
        DetectionResult with cycles in discovery order
    """
    entities = list(entities)
    graph = build_wait_for_graph(entities)

    cycles = []
    for participants in find_cycles(graph.adjacency):
        resources = implicated_resources(participants, entities)
        cycles.append(Cycle(participants=tuple(participants), resources=tuple(resources)))

    return DetectionResult.from_cycles(cycles)


def find_cycles(adjacency: Dict[Hashable, List[Hashable]]) -> List[List[Hashable]]:
    """
    Find one cycle per DFS root over the wait-for adjacency map.

    Three colours: not in `visited` (unvisited), in `on_path` (active
    branch), in `visited` but not on the path (done). `visited` is shared by
    all roots so each entity is expanded at most once.

    Args:
        adjacency: entity id -> entity ids it waits on

    Returns:
        List of cycles, each a list of entity ids starting at the entity the
        back-edge pointed to
    """
    cycles = []
    visited: Set[Hashable] = set()

    for root in adjacency:
        if root in visited:
            continue
        cycle = _find_cycle_from(root, adjacency, visited)
        if cycle is not None:
            cycles.append(cycle)

    return cycles


def _find_cycle_from(
    root: Hashable,
    adjacency: Dict[Hashable, List[Hashable]],
    visited: Set[Hashable]
) -> Optional[List[Hashable]]:
    """
    Iterative DFS from root; stops at the first back-edge.

    Entities on a branch abandoned because a cycle was found stay in
    `visited` so later roots do not report the same cycle again.
    """
    path = [root]
    on_path = {root}
    visited.add(root)
    # One neighbour iterator per path entry
    stack = [iter(adjacency.get(root, ()))]

    while stack:
        advanced = False
        for neighbor in stack[-1]:
            if neighbor not in visited:
                visited.add(neighbor)
                on_path.add(neighbor)
                path.append(neighbor)
                stack.append(iter(adjacency.get(neighbor, ())))
                advanced = True
                break
            if neighbor in on_path:
                # Back-edge: cycle runs from neighbor to the top of the path
                start = path.index(neighbor)
                return path[start:]

        if not advanced:
            # All neighbours exhausted: backtrack
            stack.pop()
            on_path.discard(path.pop())

    return None


def implicated_resources(
    participants: List[Hashable],
    entities: Iterable[Entity]
) -> List[Hashable]:
    """
    Resources mediating the edges of a cycle.

    A resource is implicated when a participant holds it and that
    participant's predecessor in cycle order requests it.

    Args:
        participants: Cycle in wait order (participants[i] waits on [i+1])
        entities: Original entity snapshot, re-scanned in order

    Returns:
        Resource ids, first-seen order, no repeats
    """
    entities = list(entities)
    if not participants:
        return []

    predecessor = {
        participants[i]: participants[i - 1] for i in range(len(participants))
    }

    requested_by: Dict[Hashable, Set[Hashable]] = {}
    for entity in entities:
        if entity.entity_id in predecessor:
            requested_by.setdefault(entity.entity_id, set()).update(entity.requested)

    # dict as ordered set
    resources: Dict[Hashable, None] = {}
    for entity in entities:
        if entity.entity_id not in predecessor:
            continue
        waiting = requested_by.get(predecessor[entity.entity_id], set())
        for resource_id in entity.held:
            if resource_id in waiting:
                resources.setdefault(resource_id, None)

    return list(resources)


def is_deadlocked(entities: Iterable[Entity]) -> bool:
    """Shorthand for detect_deadlock(entities).has_deadlock."""
    return detect_deadlock(entities).has_deadlock
