"""
Detection result model for the Wait-For Graph Deadlock Detector.

Immutable value objects returned by algorithms.detection.detect_deadlock.
"""

from dataclasses import dataclass
from typing import Any, Dict, Hashable, Tuple


@dataclass(frozen=True)
class Cycle:
    """
    One circular wait.

    Attributes:
        participants: Entity ids in wait order; participants[i] waits on
            participants[i + 1] and the last waits on the first
        resources: Resource ids mediating the cycle's edges (held by a
            participant and requested by its predecessor)
    """
    participants: Tuple[Hashable, ...]
    resources: Tuple[Hashable, ...] = ()

    @property
    def closed_path(self) -> Tuple[Hashable, ...]:
        """Participants with the first one repeated at the end."""
        if not self.participants:
            return ()
        return self.participants + (self.participants[0],)

    def edges(self) -> Tuple[Tuple[Hashable, Hashable], ...]:
        """(waiter, holder) pairs along the cycle."""
        path = self.closed_path
        return tuple(zip(path, path[1:]))

    def predecessor(self, entity_id: Hashable) -> Hashable:
        """Participant that waits on entity_id inside this cycle."""
        idx = self.participants.index(entity_id)
        return self.participants[idx - 1]

    def successor(self, entity_id: Hashable) -> Hashable:
        """Participant entity_id waits on inside this cycle."""
        idx = self.participants.index(entity_id)
        return self.participants[(idx + 1) % len(self.participants)]

    def __contains__(self, entity_id: Hashable) -> bool:
        return entity_id in self.participants

    def __len__(self) -> int:
        return len(self.participants)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participants': list(self.participants),
            'resources': list(self.resources),
        }

    def __str__(self) -> str:
        return " -> ".join(str(p) for p in self.closed_path)


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one detection pass.

    Attributes:
        has_deadlock: True if at least one cycle was found
        cycles: Cycles in discovery order
    """
    has_deadlock: bool
    cycles: Tuple[Cycle, ...] = ()

    @classmethod
    def from_cycles(cls, cycles) -> "DetectionResult":
        cycles = tuple(cycles)
        return cls(has_deadlock=len(cycles) > 0, cycles=cycles)

    @property
    def deadlocked_entities(self) -> Tuple[Hashable, ...]:
        """Every entity appearing in some cycle, first-seen order."""
        seen = {}
        for cycle in self.cycles:
            for entity_id in cycle.participants:
                seen.setdefault(entity_id, None)
        return tuple(seen)

    @property
    def contended_resources(self) -> Tuple[Hashable, ...]:
        """Every resource implicated in some cycle, first-seen order."""
        seen = {}
        for cycle in self.cycles:
            for resource_id in cycle.resources:
                seen.setdefault(resource_id, None)
        return tuple(seen)

    @property
    def message(self) -> str:
        """One-line status for monitors and logs."""
        if self.has_deadlock:
            return (
                f"Deadlock detected! {len(self.cycles)} circular wait "
                f"condition(s) found."
            )
        return "System is safe - no deadlocks detected"

    def to_dict(self) -> Dict[str, Any]:
        """External output shape: {hasDeadlock, cycles}."""
        return {
            'hasDeadlock': self.has_deadlock,
            'cycles': [c.to_dict() for c in self.cycles],
        }
