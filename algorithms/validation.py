"""
Strict snapshot validation for the Wait-For Graph Deadlock Detector.

Detection itself is permissive: duplicate holders resolve to the last one
and self-requests add no edge. Callers that want inconsistent snapshots
rejected run validate_entities() first.
"""

from enum import Enum
from typing import Dict, Hashable, Iterable, List, Optional

from models.entity import Entity


class ViolationKind(Enum):
    """Kinds of snapshot inconsistency."""
    DUPLICATE_ENTITY = "DUPLICATE_ENTITY"
    DUPLICATE_HOLDER = "DUPLICATE_HOLDER"
    SELF_REQUEST = "SELF_REQUEST"


class ConstraintViolation(Exception):
    """Raised when a snapshot breaks an allocation invariant."""

    def __init__(
        self,
        kind: ViolationKind,
        message: str,
        entity_id: Optional[Hashable] = None,
        resource_id: Optional[Hashable] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.entity_id = entity_id
        self.resource_id = resource_id


def find_violations(entities: Iterable[Entity]) -> List[ConstraintViolation]:
    """
    Collect every invariant violation in a snapshot.

    Checks:
    - Entity ids are unique
    - Each resource has at most one holder
    - No entity requests a resource it already holds

    A request for a resource nobody holds is not a violation.

    Args:
        entities: Entity snapshot

    Returns:
        List of ConstraintViolation (empty if the snapshot is consistent)
    """
    violations = []
    seen_ids = set()
    holders: Dict[Hashable, Hashable] = {}

    for entity in entities:
        if entity.entity_id in seen_ids:
            violations.append(ConstraintViolation(
                ViolationKind.DUPLICATE_ENTITY,
                f"Entity {entity.entity_id} appears more than once",
                entity_id=entity.entity_id
            ))
        seen_ids.add(entity.entity_id)

        for resource_id in entity.held:
            if resource_id in holders and holders[resource_id] != entity.entity_id:
                violations.append(ConstraintViolation(
                    ViolationKind.DUPLICATE_HOLDER,
                    f"Resource {resource_id} held by both {holders[resource_id]} "
                    f"and {entity.entity_id}",
                    entity_id=entity.entity_id,
                    resource_id=resource_id
                ))
            holders[resource_id] = entity.entity_id

        for resource_id in entity.requested:
            if resource_id in entity.held:
                violations.append(ConstraintViolation(
                    ViolationKind.SELF_REQUEST,
                    f"Entity {entity.entity_id} requests {resource_id} which it already holds",
                    entity_id=entity.entity_id,
                    resource_id=resource_id
                ))

    return violations


def validate_entities(entities: Iterable[Entity]) -> None:
    """
    Fail fast on the first invariant violation.

    Raises:
        ConstraintViolation: If the snapshot is inconsistent
    """
    violations = find_violations(entities)
    if violations:
        raise violations[0]
