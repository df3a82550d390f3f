"""
Allocation State model for the Wait-For Graph Deadlock Detector.

Holds one caller snapshot (entities plus resource catalogue) and exposes the
matrix views used by reports and visualisation.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional

from models.entity import Entity
from models.resource import Resource, resource_labels
from algorithms.graph_builder import build_holder_map


@dataclass
class AllocationState:
    """
    Snapshot of who holds and who requests which resource.

    Attributes:
        entities: Entities in caller order
        resources: Known resources (labels); resources referenced by
            entities but missing here are added on demand
        description: Free text carried over from the scenario file
        hold_matrix: [E][R] 1 where the entity is the recorded holder
        request_matrix: [E][R] 1 where the entity requests the resource
        wait_for_matrix: [E][E] True where row entity waits on column entity
    """
    entities: List[Entity] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    description: str = ""

    # Matrices (initialized as None, computed on first access)
    _hold_matrix: Optional[np.ndarray] = None
    _request_matrix: Optional[np.ndarray] = None
    _wait_for_matrix: Optional[np.ndarray] = None

    @property
    def num_entities(self) -> int:
        return len(self.entities)

    @property
    def num_resources(self) -> int:
        return len(self.resource_ids)

    @property
    def entity_ids(self) -> List[Hashable]:
        return [e.entity_id for e in self.entities]

    @property
    def resource_ids(self) -> List[Hashable]:
        """Catalogue ids first, then ids only referenced by entities."""
        ids = {r.resource_id: None for r in self.resources}
        for entity in self.entities:
            for resource_id in list(entity.held) + list(entity.requested):
                ids.setdefault(resource_id, None)
        return list(ids)

    @property
    def labels(self) -> Dict[Hashable, str]:
        return resource_labels(self.resources)

    def entity(self, entity_id: Hashable) -> Optional[Entity]:
        return next((e for e in self.entities if e.entity_id == entity_id), None)

    @property
    def hold_matrix(self) -> np.ndarray:
        """Get hold matrix [E][R]."""
        if self._hold_matrix is None:
            self._build_hold_matrix()
        return self._hold_matrix

    @property
    def request_matrix(self) -> np.ndarray:
        """Get request matrix [E][R]."""
        if self._request_matrix is None:
            self._build_request_matrix()
        return self._request_matrix

    @property
    def wait_for_matrix(self) -> np.ndarray:
        """
        Get wait-for matrix [E][E].
        Computed as: WaitFor = (Request x Hold^T) > 0, diagonal cleared.
        """
        if self._wait_for_matrix is None:
            wait_for = (self.request_matrix @ self.hold_matrix.T) > 0
            np.fill_diagonal(wait_for, False)
            self._wait_for_matrix = wait_for
        return self._wait_for_matrix

    def _entity_index(self) -> Dict[Hashable, int]:
        index = {}
        for i, entity in enumerate(self.entities):
            index.setdefault(entity.entity_id, i)
        return index

    def _build_hold_matrix(self) -> None:
        """Build hold matrix from the holder map (last holder wins)."""
        resource_idx = {r: j for j, r in enumerate(self.resource_ids)}
        entity_idx = self._entity_index()
        self._hold_matrix = np.zeros((self.num_entities, len(resource_idx)), dtype=int)
        for resource_id, holder in build_holder_map(self.entities).items():
            self._hold_matrix[entity_idx[holder]][resource_idx[resource_id]] = 1

    def _build_request_matrix(self) -> None:
        """Build request matrix from entity requests."""
        resource_idx = {r: j for j, r in enumerate(self.resource_ids)}
        self._request_matrix = np.zeros((self.num_entities, len(resource_idx)), dtype=int)
        for i, entity in enumerate(self.entities):
            for resource_id in entity.requested:
                self._request_matrix[i][resource_idx[resource_id]] = 1

    def refresh_matrices(self) -> None:
        """Drop cached matrices after entities or resources change."""
        self._hold_matrix = None
        self._request_matrix = None
        self._wait_for_matrix = None

    def replace_entities(self, entities: List[Entity]) -> None:
        """Swap in a new entity snapshot (e.g. after a resolution step)."""
        self.entities = list(entities)
        self.refresh_matrices()

    def display(self) -> str:
        """
        Generate readable string representation of the snapshot.

        Returns:
            Formatted string showing entities and both matrices
        """
        output = []
        output.append("\n" + "="*60)
        output.append("ALLOCATION STATE")
        output.append("="*60)

        labels = self.labels
        resource_ids = self.resource_ids
        names = [str(r) for r in resource_ids]
        width = max([len(n) for n in names] + [3])

        output.append("\nEntities:")
        for entity in self.entities:
            held = ", ".join(labels.get(r, str(r)) for r in entity.held) or "-"
            requested = ", ".join(labels.get(r, str(r)) for r in entity.requested) or "-"
            output.append(f"  {entity.display_name}: holds [{held}] requests [{requested}]")

        header = " " * 12 + " ".join(f"{n:>{width}}" for n in names)

        output.append("\nHold Matrix:")
        output.append(header)
        for i, entity in enumerate(self.entities):
            row = f"  {str(entity.entity_id):<10}"
            row += " ".join(f"{self.hold_matrix[i][j]:>{width}}" for j in range(len(resource_ids)))
            output.append(row)

        output.append("\nRequest Matrix:")
        output.append(header)
        for i, entity in enumerate(self.entities):
            row = f"  {str(entity.entity_id):<10}"
            row += " ".join(f"{self.request_matrix[i][j]:>{width}}" for j in range(len(resource_ids)))
            output.append(row)

        output.append("\n" + "="*60)
        return "\n".join(output)
