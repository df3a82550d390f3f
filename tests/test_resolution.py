"""
Resolution Tests

Tests victim selection, request revocation, resource release, the
detect/resolve loop and lock-row release.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.entity import Entity
from models.detection_result import Cycle
from models.lock import LockRecord, entities_from_locks
from algorithms.detection import detect_deadlock
from algorithms.resolution import (
    ActionKind,
    ResolutionAction,
    apply_action,
    enumerate_all_cycles,
    locks_in_cycle,
    recover_from_deadlock,
    release_lock,
    release_resource,
    resolve_deadlock,
    revoke_request,
    select_victim,
)
from analysis.events import EventLog, EventType
from utils.logger import DetectorLogger


def mutual_wait():
    return [
        Entity("A", held=["R1"], requested=["R2"]),
        Entity("B", held=["R2"], requested=["R1"]),
    ]


def split_entries():
    """Mutual wait where each entity id appears twice (held and requested split)."""
    return [
        Entity("A", held=["R1"]),
        Entity("A", requested=["R2"]),
        Entity("B", held=["R2"]),
        Entity("B", requested=["R1"]),
    ]


def board_locks():
    return [
        LockRecord("l1", "alice", "header", "t0", "t1", None),
        LockRecord("l2", "bob", "footer", "t2", "t3", None),
        LockRecord("l3", "alice", "footer", "t4", None, None),
        LockRecord("l4", "bob", "header", "t5", None, None),
        LockRecord("l5", "carol", "sidebar", "t0", "t1", "t2"),
    ]


def test_revoking_last_request_breaks_mutual_wait():
    """Removing a participant's last request clears the two-entity deadlock."""
    entities = mutual_wait()
    result = detect_deadlock(entities)
    assert result.has_deadlock

    participant = result.cycles[0].participants[0]
    resolved = revoke_request(entities, participant)

    assert not detect_deadlock(resolved).has_deadlock
    assert entities == mutual_wait(), "Input snapshot must be untouched"


def test_resolve_deadlock_revokes_blocking_request():
    """The victim gives up the request pointing at its successor."""
    entities = [
        Entity("A", held=["R1"], requested=["R2", "R9"]),
        Entity("B", held=["R2"], requested=["R1"]),
    ]
    resolved, action = resolve_deadlock(entities)

    assert action.kind == ActionKind.REVOKE_REQUEST
    assert action.entity_id == "A"
    assert action.resource_id == "R2", "R9 is free; R2 is the blocking request"
    assert resolved[0].requested == ["R9"]
    assert not detect_deadlock(resolved).has_deadlock


def test_resolve_deadlock_without_deadlock():
    """No deadlock: snapshot unchanged, no action."""
    entities = [Entity("A", held=["R1"])]
    resolved, action = resolve_deadlock(entities)
    assert action is None
    assert resolved == entities


def test_select_victim_strategies():
    """first / most_requests / fewest_held pick as documented."""
    entities = [
        Entity("A", held=["R1", "X"], requested=["R2"]),
        Entity("B", held=["R2"], requested=["R3", "Y", "Z"]),
        Entity("C", held=["R3"], requested=["R1"]),
    ]
    cycle = detect_deadlock(entities).cycles[0]

    assert select_victim(cycle, entities, "first") == "A"
    assert select_victim(cycle, entities, "most_requests") == "B"
    assert select_victim(cycle, entities, "fewest_held") == "B", "Tie goes to cycle order"
    assert select_victim(cycle, entities, "unknown") == "A"

    with pytest.raises(ValueError):
        select_victim(Cycle(participants=()), entities)


def test_revoke_and_release_errors():
    """Unknown entities and missing resources raise ValueError."""
    entities = mutual_wait()

    with pytest.raises(ValueError):
        revoke_request(entities, "Z")
    with pytest.raises(ValueError):
        revoke_request(entities, "A", "R7")
    with pytest.raises(ValueError):
        release_resource(entities, "A", "R2")
    with pytest.raises(ValueError):
        revoke_request([Entity("A")], "A")


def test_release_resource_breaks_cycle():
    """Releasing a held resource removes the edge waiting on it."""
    released = release_resource(mutual_wait(), "B", "R2")
    assert released[1].held == []
    assert not detect_deadlock(released).has_deadlock


def test_apply_action_dispatch():
    """apply_action maps kinds onto revoke / release."""
    entities = mutual_wait()

    revoked = apply_action(entities, ResolutionAction(ActionKind.REVOKE_REQUEST, "B", "R1"))
    assert revoked[1].requested == []

    released = apply_action(entities, ResolutionAction(ActionKind.RELEASE_HOLD, "A", "R1"))
    assert released[0].held == []


def test_recover_from_deadlock_two_cycles():
    """Loop resolves one cycle per round until clear."""
    print("\n" + "="*60)
    print("TEST: Detect/resolve loop")
    print("="*60)

    entities = mutual_wait() + [
        Entity("C", held=["R3"], requested=["R4"]),
        Entity("D", held=["R4"], requested=["R3"]),
    ]
    event_log = EventLog()
    logger = DetectorLogger(verbose=True)

    success, final, actions = recover_from_deadlock(
        entities, logger=logger, event_log=event_log
    )
    print(event_log.display())

    assert success
    assert [a.entity_id for a in actions] == ["A", "C"]
    assert not detect_deadlock(final).has_deadlock

    types = [e.event_type for e in event_log.events]
    assert types == [
        EventType.DEADLOCK,
        EventType.RESOLUTION,
        EventType.DEADLOCK,
        EventType.RESOLUTION,
        EventType.CLEAR,
    ]
    assert len(event_log.get_events_by_pass(0)) == 2
    print("  ✓ Both cycles broken")


def test_recover_respects_max_rounds():
    """max_rounds=0 reports failure without touching the snapshot."""
    entities = mutual_wait()
    success, final, actions = recover_from_deadlock(entities, max_rounds=0)

    assert not success
    assert actions == []
    assert final == entities


def test_enumerate_all_cycles_beyond_first_per_root():
    """Repeated passes find the second cycle hidden behind the first."""
    entities = [
        Entity("A", held=["RA"], requested=["RB"]),
        Entity("B", held=["RB"], requested=["RA", "RC"]),
        Entity("C", held=["RC"], requested=["RB"]),
    ]
    assert len(detect_deadlock(entities).cycles) == 1

    cycles = enumerate_all_cycles(entities)
    assert [c.participants for c in cycles] == [("A", "B"), ("B", "C")]
    assert cycles[1].resources == ("RB", "RC")
    assert len(entities[1].requested) == 2, "Input snapshot must be untouched"

    assert len(enumerate_all_cycles(entities, max_passes=1)) == 1
    assert enumerate_all_cycles([Entity("A")]) == []


def test_release_lock_breaks_board_deadlock():
    """Releasing one held lock clears the board's circular wait."""
    locks = board_locks()
    result = detect_deadlock(entities_from_locks(locks))
    assert result.has_deadlock

    released = release_lock(locks, "l1", at="t9")
    assert released[0].released_at == "t9"
    assert locks[0].released_at is None, "Input rows must be untouched"
    assert not detect_deadlock(entities_from_locks(released)).has_deadlock

    with pytest.raises(ValueError):
        release_lock(locks, "l5")
    with pytest.raises(ValueError):
        release_lock(locks, "missing")


def test_locks_in_cycle():
    """Only active rows of cycle users on cycle resources qualify."""
    locks = board_locks()
    cycle = detect_deadlock(entities_from_locks(locks)).cycles[0]
    assert set(cycle.resources) == {"header", "footer"}

    assert [lock.lock_id for lock in locks_in_cycle(locks, cycle)] == ["l1", "l2", "l3", "l4"]
    assert [lock.lock_id for lock in locks_in_cycle(locks, cycle, user_id="alice")] == ["l1", "l3"]


def test_enumerate_all_cycles_with_repeated_ids():
    """Entries sharing an id are one node; every entry's requests are revoked."""
    entities = split_entries()
    assert detect_deadlock(entities).has_deadlock

    cycles = enumerate_all_cycles(entities)
    assert [c.participants for c in cycles] == [("A", "B")]
    assert cycles[0].resources == ("R1", "R2")
    assert entities == split_entries(), "Input snapshot must be untouched"


def test_resolve_with_repeated_ids():
    """The entry carrying the blocking request is the one updated."""
    entities = split_entries()

    resolved, action = resolve_deadlock(entities)
    assert action.entity_id == "A"
    assert action.resource_id == "R2"
    assert resolved[0] == entities[0]
    assert resolved[1].requested == []
    assert not detect_deadlock(resolved).has_deadlock

    success, final, actions = recover_from_deadlock(entities, max_rounds=5)
    assert success
    assert len(actions) == 1
    assert not detect_deadlock(final).has_deadlock


def test_revoke_and_release_pick_matching_entry():
    """revoke / release address the entry that has the request or hold."""
    entities = split_entries()

    revoked = revoke_request(entities, "B")
    assert revoked[3].requested == []
    assert revoked[2] == entities[2]

    released = release_resource(entities, "B", "R2")
    assert released[2].held == []

    assert select_victim(Cycle(participants=("A", "B")), entities, "most_requests") == "A"
    assert select_victim(Cycle(participants=("B", "A")), entities, "fewest_held") == "B"
