"""
Event Model for the Wait-For Graph Deadlock Detector.

Defines event types for tracking detection passes and resolution actions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional


class EventType(Enum):
    """Types of events in a detect/resolve session."""
    DETECTION = "detection"
    DEADLOCK = "deadlock"
    RESOLUTION = "resolution"
    CLEAR = "clear"


@dataclass
class DetectionEvent:
    """
    Represents a single event in a detect/resolve session.

    Attributes:
        pass_number: Detection pass the event belongs to (0-based)
        event_type: Type of event
        entity_id: Entity involved (if applicable)
        resource_id: Resource involved (if applicable)
        cycle_count: Cycles found (DEADLOCK events)
        message: Human-readable description
    """
    pass_number: int
    event_type: EventType
    entity_id: Optional[Hashable] = None
    resource_id: Optional[Hashable] = None
    cycle_count: int = 0
    message: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"Pass {self.pass_number}"

        if self.event_type == EventType.DEADLOCK:
            return f"{base}: DEADLOCK DETECTED - {self.cycle_count} cycle(s) ({self.message})"
        elif self.event_type == EventType.RESOLUTION:
            return f"{base}: {self.entity_id} - RESOLUTION ({self.message})"
        elif self.event_type == EventType.CLEAR:
            return f"{base}: no deadlock"
        else:
            return f"{base}: {self.event_type.value} {self.message}".rstrip()


@dataclass
class EventLog:
    """Collection of detect/resolve events."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []

    def add(self, event: DetectionEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_by_pass(self, pass_number: int) -> list:
        """Get all events from a specific detection pass."""
        return [e for e in self.events if e.pass_number == pass_number]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
