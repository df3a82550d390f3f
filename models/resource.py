"""
Resource model for the Wait-For Graph Deadlock Detector.

Represents a single-instance resource (a lockable component).
"""

from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Optional


@dataclass(frozen=True)
class Resource:
    """
    Represents a single-instance resource.

    Attributes:
        resource_id: Resource identifier, compared by equality only
        label: Optional display title (e.g. board component title)

    Invariant:
        At most one entity holds the resource at any time. The detector
        does not enforce this; see algorithms.validation for strict mode.
    """
    resource_id: Hashable
    label: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Label if present, otherwise the id."""
        return self.label or str(self.resource_id)


def resource_labels(resources: Iterable[Resource]) -> Dict[Hashable, str]:
    """Map resource id -> display name."""
    return {r.resource_id: r.display_name for r in resources}


def label_for(resource_id: Hashable, labels: Dict[Hashable, str]) -> str:
    """Display name for resource_id, falling back to the id itself."""
    return labels.get(resource_id, str(resource_id))
