"""
Deadlock Resolution helpers for the Wait-For Graph Deadlock Detector.

Caller-side actions that break a circular wait: revoking a pending request
or releasing a held resource. Every helper returns a new snapshot; the
input list and its entities are never modified.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Hashable, List, Optional, Tuple

from models.entity import Entity
from models.detection_result import Cycle, DetectionResult
from models.lock import LockRecord
from algorithms.detection import detect_deadlock, implicated_resources
from algorithms.graph_builder import build_holder_map
from analysis.events import DetectionEvent, EventLog, EventType


class ActionKind(Enum):
    """Kinds of resolution action."""
    REVOKE_REQUEST = "REVOKE_REQUEST"
    RELEASE_HOLD = "RELEASE_HOLD"


@dataclass(frozen=True)
class ResolutionAction:
    """
    One edge-removing action.

    Attributes:
        kind: Revoke a request or release a held resource
        entity_id: Entity the action applies to
        resource_id: Resource involved; None revokes the last request
        reason: Why this action was chosen
    """
    kind: ActionKind
    entity_id: Hashable
    resource_id: Optional[Hashable] = None
    reason: str = ""

    def __str__(self) -> str:
        resource = "last request" if self.resource_id is None else str(self.resource_id)
        if self.kind == ActionKind.REVOKE_REQUEST:
            text = f"{self.entity_id} revokes request for {resource}"
        else:
            text = f"{self.entity_id} releases {resource}"
        return f"{text} ({self.reason})" if self.reason else text


def select_victim(
    cycle: Cycle,
    entities: List[Entity],
    strategy: str = "first"
) -> Hashable:
    """
    Select the participant whose request will be revoked.

    Strategies:
    - "first": First participant of the cycle
    - "most_requests": Participant with the most outstanding requests
    - "fewest_held": Participant holding the fewest resources

    Ties go to the earlier participant in cycle order.

    Args:
        cycle: Cycle to break
        entities: Current snapshot
        strategy: Selection strategy

    Returns:
        Entity id of the victim
    """
    if not cycle.participants:
        raise ValueError("Cannot select a victim from an empty cycle")

    if strategy == "most_requests":
        def count_requests(entity_id):
            return len(_requests_of(entities, entity_id))

        return max(cycle.participants, key=count_requests)

    elif strategy == "fewest_held":
        def count_held(entity_id):
            return sum(len(e.held) for e in entities if e.entity_id == entity_id)

        return min(cycle.participants, key=count_held)

    else:
        # Default: first participant
        return cycle.participants[0]


def revoke_request(
    entities: List[Entity],
    entity_id: Hashable,
    resource_id: Optional[Hashable] = None
) -> List[Entity]:
    """
    Remove one pending request from an entity.

    When several entries share entity_id, the entry carrying the request is
    updated (for None, the last entry that has any request).

    Args:
        entities: Current snapshot
        entity_id: Entity whose request is revoked
        resource_id: Request to drop; None drops the entity's last request

    Returns:
        New snapshot

    Raises:
        ValueError: If the entity or the request does not exist
    """
    if resource_id is None:
        def has_request(e):
            return bool(e.requested)
        last = True
    else:
        def has_request(e):
            return e.requests(resource_id)
        last = False

    return _replace_entity(
        entities,
        entity_id,
        lambda e: e.without_request(resource_id),
        prefer=has_request,
        last=last
    )


def release_resource(
    entities: List[Entity],
    entity_id: Hashable,
    resource_id: Hashable
) -> List[Entity]:
    """
    Release a held resource.

    Args:
        entities: Current snapshot
        entity_id: Holding entity
        resource_id: Resource to release

    Returns:
        New snapshot

    Raises:
        ValueError: If the entity does not exist or does not hold the resource
    """
    return _replace_entity(
        entities,
        entity_id,
        lambda e: e.without_held(resource_id),
        prefer=lambda e: e.holds(resource_id)
    )


def apply_action(entities: List[Entity], action: ResolutionAction) -> List[Entity]:
    """Apply a ResolutionAction and return the new snapshot."""
    if action.kind == ActionKind.REVOKE_REQUEST:
        return revoke_request(entities, action.entity_id, action.resource_id)
    return release_resource(entities, action.entity_id, action.resource_id)


def resolve_deadlock(
    entities: List[Entity],
    result: Optional[DetectionResult] = None,
    strategy: str = "first"
) -> Tuple[List[Entity], Optional[ResolutionAction]]:
    """
    Break the first reported cycle by revoking one request.

    The victim gives up the request that makes it wait on its successor in
    the cycle; if no such request can be matched it gives up its last one.

    Args:
        entities: Current snapshot
        result: Detection result for this snapshot (computed if None)
        strategy: Victim selection strategy (see select_victim)

    Returns:
        Tuple of (new snapshot, action applied or None if no deadlock)
    """
    entities = list(entities)
    if result is None:
        result = detect_deadlock(entities)

    if not result.has_deadlock:
        return entities, None

    cycle = result.cycles[0]
    victim_id = select_victim(cycle, entities, strategy)
    successor = cycle.successor(victim_id)
    holder_map = build_holder_map(entities)

    blocking = next(
        (r for r in _requests_of(entities, victim_id)
         if r in holder_map and holder_map[r] == successor),
        None
    )

    if blocking is not None:
        reason = f"waits on {successor} in cycle {cycle}"
    else:
        reason = f"last request, cycle {cycle}"

    action = ResolutionAction(
        kind=ActionKind.REVOKE_REQUEST,
        entity_id=victim_id,
        resource_id=blocking,
        reason=reason
    )
    return apply_action(entities, action), action


def recover_from_deadlock(
    entities: List[Entity],
    strategy: str = "first",
    max_rounds: Optional[int] = None,
    logger=None,
    event_log: Optional[EventLog] = None
) -> Tuple[bool, List[Entity], List[ResolutionAction]]:
    """
    Detect and resolve repeatedly until no cycle remains.

    Each round revokes exactly one request, so the loop ends after at most
    (total outstanding requests) rounds.

    Args:
        entities: Starting snapshot
        strategy: Victim selection strategy
        max_rounds: Upper bound on resolution rounds (None = no extra bound)
        logger: Optional DetectorLogger
        event_log: Optional EventLog receiving DEADLOCK/RESOLUTION/CLEAR events

    Returns:
        Tuple of (deadlock cleared, final snapshot, actions applied)
    """
    entities = list(entities)
    actions = []
    pass_number = 0

    while True:
        result = detect_deadlock(entities)
        if logger:
            logger.log_detection(pass_number, result)

        if not result.has_deadlock:
            if event_log is not None:
                event_log.add(DetectionEvent(pass_number, EventType.CLEAR))
            return True, entities, actions

        if event_log is not None:
            event_log.add(DetectionEvent(
                pass_number,
                EventType.DEADLOCK,
                cycle_count=len(result.cycles),
                message=result.message
            ))

        if max_rounds is not None and len(actions) >= max_rounds:
            if logger:
                logger.log(f"Gave up after {len(actions)} resolution round(s)", "warning")
            return False, entities, actions

        entities, action = resolve_deadlock(entities, result, strategy)
        actions.append(action)

        if logger:
            logger.log_resolution(pass_number, action)
        if event_log is not None:
            event_log.add(DetectionEvent(
                pass_number,
                EventType.RESOLUTION,
                entity_id=action.entity_id,
                resource_id=action.resource_id,
                message=str(action)
            ))

        pass_number += 1


def enumerate_all_cycles(
    entities: List[Entity],
    max_passes: Optional[int] = None
) -> List[Cycle]:
    """
    Report cycles beyond the first-per-root limit by repeated passes.

    After each pass every edge of every found cycle is removed (all requests
    mediating it are revoked) and detection runs again on the reduced
    snapshot, until no cycle remains or a pass removes nothing. Cycles that
    share an edge with an earlier one are not reported separately.

    Args:
        entities: Snapshot (not modified)
        max_passes: Optional bound on detection passes

    Returns:
        Cycles in discovery order, annotated against the original snapshot
    """
    original = list(entities)
    current = list(entities)
    found = []
    passes = 0

    while max_passes is None or passes < max_passes:
        result = detect_deadlock(current)
        passes += 1
        if not result.has_deadlock:
            break

        before = current
        for cycle in result.cycles:
            found.append(Cycle(
                participants=cycle.participants,
                resources=tuple(implicated_resources(list(cycle.participants), original))
            ))
            current = _remove_cycle_edges(current, cycle)

        if current == before:
            break

    return found


def _remove_cycle_edges(entities: List[Entity], cycle: Cycle) -> List[Entity]:
    """Revoke every request that mediates an edge of the cycle."""
    holder_map = build_holder_map(entities)
    for waiter, holder in cycle.edges():
        for resource_id in _requests_of(entities, waiter):
            if resource_id in holder_map and holder_map[resource_id] == holder:
                entities = revoke_request(entities, waiter, resource_id)
    return entities


def release_lock(
    locks: List[LockRecord],
    lock_id: Hashable,
    at: Optional[str] = None
) -> List[LockRecord]:
    """
    Mark one lock row released.

    Args:
        locks: Lock rows
        lock_id: Row to release
        at: Release timestamp (defaults to now, ISO format)

    Returns:
        New list of lock rows

    Raises:
        ValueError: If no active lock has that id
    """
    if at is None:
        at = datetime.now().isoformat()

    target = next(
        (lock for lock in locks if lock.lock_id == lock_id and lock.is_active()),
        None
    )
    if target is None:
        raise ValueError(f"Lock {lock_id} not found or already released")

    return [lock.released(at) if lock is target else lock for lock in locks]


def locks_in_cycle(
    locks: List[LockRecord],
    cycle: Cycle,
    user_id: Optional[Hashable] = None
) -> List[LockRecord]:
    """
    Active lock rows that take part in a cycle.

    A row qualifies when its user is a participant and its component is one
    of the cycle's resources. Passing user_id keeps only that user's rows
    (the ones that user can release).
    """
    return [
        lock for lock in locks
        if lock.is_active()
        and lock.user_id in cycle.participants
        and lock.component_id in cycle.resources
        and (user_id is None or lock.user_id == user_id)
    ]


def _requests_of(entities: List[Entity], entity_id: Hashable) -> List[Hashable]:
    """Requests of every entry sharing entity_id, in snapshot order."""
    return [r for e in entities if e.entity_id == entity_id for r in e.requested]


def _replace_entity(
    entities: List[Entity],
    entity_id: Hashable,
    update,
    prefer=None,
    last: bool = False
) -> List[Entity]:
    """
    Apply update to one entry with entity_id, copying the list.

    Among entries sharing the id, the first (or last) one accepted by
    prefer is updated; without a match the first entry is used.
    """
    entities = list(entities)
    indices = [i for i, e in enumerate(entities) if e.entity_id == entity_id]
    if not indices:
        raise ValueError(f"Entity {entity_id} not found")

    candidates = reversed(indices) if last else indices
    target = next(
        (i for i in candidates if prefer is None or prefer(entities[i])),
        indices[0]
    )
    entities[target] = update(entities[target])
    return entities
