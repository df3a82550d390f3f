"""
Lock record model for the Wait-For Graph Deadlock Detector.

A collaborative board records component locks as timestamped rows. This
module turns those rows into the entity snapshot the detector consumes.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Hashable, Iterable, List, Optional

from models.entity import Entity


class LockStatus(Enum):
    """Lifecycle of a single lock row."""
    WAITING = "WAITING"
    HELD = "HELD"
    RELEASED = "RELEASED"


@dataclass(frozen=True)
class LockRecord:
    """
    One lock row.

    Attributes:
        lock_id: Row identifier
        user_id: User that requested the lock
        component_id: Component (resource) being locked
        requested_at: Request timestamp (ISO string)
        acquired_at: Grant timestamp, None while waiting
        released_at: Release timestamp, None while active
    """
    lock_id: Hashable
    user_id: Hashable
    component_id: Hashable
    requested_at: Optional[str] = None
    acquired_at: Optional[str] = None
    released_at: Optional[str] = None

    @property
    def status(self) -> LockStatus:
        if self.released_at:
            return LockStatus.RELEASED
        if self.acquired_at:
            return LockStatus.HELD
        return LockStatus.WAITING

    def is_active(self) -> bool:
        """True unless the lock has been released."""
        return self.status != LockStatus.RELEASED

    def released(self, at: str) -> "LockRecord":
        """Copy of this record marked released at the given time."""
        return replace(self, released_at=at)


def entities_from_locks(locks: Iterable[LockRecord]) -> List[Entity]:
    """
    Build the entity snapshot from lock rows.

    One entity per user, in first-seen order. HELD rows become held
    resources, WAITING rows become requests, RELEASED rows are ignored.

    Args:
        locks: Lock rows in storage order

    Returns:
        List of Entity objects
    """
    held: Dict[Hashable, List[Hashable]] = {}
    requested: Dict[Hashable, List[Hashable]] = {}

    for lock in locks:
        held.setdefault(lock.user_id, [])
        requested.setdefault(lock.user_id, [])

        status = lock.status
        if status == LockStatus.HELD:
            if lock.component_id not in held[lock.user_id]:
                held[lock.user_id].append(lock.component_id)
        elif status == LockStatus.WAITING:
            if lock.component_id not in requested[lock.user_id]:
                requested[lock.user_id].append(lock.component_id)

    return [
        Entity(entity_id=user_id, held=held[user_id], requested=requested[user_id])
        for user_id in held
    ]


def active_lock_count(locks: Iterable[LockRecord]) -> int:
    """Number of locks not yet released."""
    return sum(1 for lock in locks if lock.is_active())
