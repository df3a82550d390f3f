"""
Entity model for the Wait-For Graph Deadlock Detector.

Represents a process (or board user) with the resources it holds and the
resources it is currently blocked requesting.
"""

from dataclasses import dataclass, field, replace
from typing import Hashable, List, Optional

EntityId = Hashable
ResourceId = Hashable


@dataclass(frozen=True)
class Entity:
    """
    Represents one participant of the allocation snapshot.

    Attributes:
        entity_id: Unique identifier (string or int)
        held: Resource ids currently held, in caller order
        requested: Resource ids currently requested (not yet granted)
        label: Optional display name

    Invariant (caller side, not enforced):
        An entity never holds and requests the same resource id.
    """
    entity_id: EntityId
    held: List[ResourceId] = field(default_factory=list)
    requested: List[ResourceId] = field(default_factory=list)
    label: Optional[str] = None

    def holds(self, resource_id: ResourceId) -> bool:
        """True if this entity currently holds resource_id."""
        return resource_id in self.held

    def requests(self, resource_id: ResourceId) -> bool:
        """True if this entity is currently requesting resource_id."""
        return resource_id in self.requested

    def is_waiting(self) -> bool:
        """True if the entity has at least one outstanding request."""
        return len(self.requested) > 0

    def without_request(self, resource_id: Optional[ResourceId] = None) -> "Entity":
        """
        Return a copy with one request removed.

        Args:
            resource_id: Request to drop; None drops the last request

        Returns:
            New Entity (self is never modified)

        Raises:
            ValueError: If the entity has no such request
        """
        if not self.requested:
            raise ValueError(f"{self.entity_id}: no outstanding requests to revoke")

        requested = list(self.requested)
        if resource_id is None:
            requested.pop()
        elif resource_id in requested:
            requested.remove(resource_id)
        else:
            raise ValueError(f"{self.entity_id}: not requesting {resource_id}")

        return replace(self, requested=requested)

    def without_held(self, resource_id: ResourceId) -> "Entity":
        """
        Return a copy with a held resource released.

        Raises:
            ValueError: If the entity does not hold resource_id
        """
        if resource_id not in self.held:
            raise ValueError(f"{self.entity_id}: cannot release {resource_id} - not held")

        held = [r for r in self.held if r != resource_id]
        return replace(self, held=held)

    @property
    def display_name(self) -> str:
        return self.label or str(self.entity_id)

    def __repr__(self) -> str:
        return (
            f"Entity(id={self.entity_id!r}, held={self.held}, "
            f"requested={self.requested})"
        )
