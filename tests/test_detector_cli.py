"""
Detector CLI Tests

Runs the detector entry point against the fixture scenarios and checks
results, stop reasons, event logs and exit codes.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from detector import run_detection, main
from analysis.events import EventType
from analysis.report import format_result
from algorithms.detection import detect_deadlock
from models.entity import Entity


# Test scenarios directory
SCENARIOS_DIR = project_root / "tests" / "scenarios"


def scenario(name: str) -> str:
    return str(SCENARIOS_DIR / name)


def test_detects_mutual_wait():
    """Mutual wait is reported and left in place without --resolve."""
    print("\n" + "="*60)
    print("CLI TEST: Mutual wait scenario")
    print("="*60)

    result, event_log, stop_reason = run_detection(scenario("mutual_wait.json"))

    assert result.has_deadlock
    assert set(result.cycles[0].participants) == {"P1", "P2"}
    assert stop_reason == "deadlock detected"
    assert len(event_log.get_events_by_type(EventType.DEADLOCK)) == 1
    print("  ✓ Deadlock detected (as expected)")


def test_chain_is_clear():
    result, event_log, stop_reason = run_detection(scenario("chain.json"))

    assert not result.has_deadlock
    assert stop_reason == "no deadlock"
    assert len(event_log.get_events_by_type(EventType.CLEAR)) == 1


def test_resolve_three_way():
    """--resolve breaks the three-way cycle with one revocation."""
    result, event_log, stop_reason = run_detection(
        scenario("three_way.json"), resolve=True, verbose=True
    )

    assert not result.has_deadlock
    assert stop_reason == "deadlock resolved after 1 action(s)"
    assert len(event_log.get_events_by_type(EventType.RESOLUTION)) == 1


def test_resolve_board_locks():
    """Lock-record scenarios resolve the same way."""
    result, _, stop_reason = run_detection(
        scenario("board_locks.json"), resolve=True, strategy="fewest_held"
    )
    assert not result.has_deadlock
    assert stop_reason.startswith("deadlock resolved")


def test_resolve_with_zero_rounds():
    result, _, stop_reason = run_detection(
        scenario("mutual_wait.json"), resolve=True, max_rounds=0
    )
    assert result.has_deadlock
    assert stop_reason == "resolution stopped after 0 action(s)"


def test_strict_mode_rejects_duplicate_holder():
    """Permissive by default, rejected under --strict."""
    result, _, stop_reason = run_detection(scenario("duplicate_holder.json"))
    assert result is not None
    assert not result.has_deadlock

    result, _, stop_reason = run_detection(scenario("duplicate_holder.json"), strict=True)
    assert result is None
    assert stop_reason == "constraint violation: DUPLICATE_HOLDER"


def test_load_failure():
    result, event_log, stop_reason = run_detection(scenario("missing.json"))
    assert result is None
    assert stop_reason.startswith("load failed")
    assert event_log.events == []


def test_exhaustive_mode(tmp_path):
    """--exhaustive reports the cycle hidden behind the first one."""
    path = tmp_path / "two_from_one_root.json"
    path.write_text(json.dumps({
        "entities": [
            {"id": "A", "held": ["RA"], "requested": ["RB"]},
            {"id": "B", "held": ["RB"], "requested": ["RA", "RC"]},
            {"id": "C", "held": ["RC"], "requested": ["RB"]},
        ]
    }), encoding="utf-8")

    single, _, _ = run_detection(str(path))
    exhaustive, _, _ = run_detection(str(path), exhaustive=True)

    assert len(single.cycles) == 1
    assert len(exhaustive.cycles) == 2


def test_log_file(tmp_path):
    log_path = tmp_path / "run.log"
    run_detection(scenario("mutual_wait.json"), log_file=str(log_path))

    text = log_path.read_text(encoding="utf-8")
    assert text.startswith("Deadlock Detection Log")
    assert "DEADLOCK DETECTED" in text


def test_main_exit_codes():
    assert main(["--scenario", scenario("chain.json")]) == 0
    assert main(["--scenario", scenario("mutual_wait.json")]) == 1
    assert main(["--scenario", scenario("mutual_wait.json"), "--resolve"]) == 0
    assert main(["--scenario", scenario("missing.json")]) == 2


def test_main_json_output(capsys):
    """--json prints only the {hasDeadlock, cycles} document."""
    main(["--scenario", scenario("mutual_wait.json"), "--json"])
    out = capsys.readouterr().out

    data = json.loads(out)
    assert data["hasDeadlock"] is True
    assert data["cycles"] == [{"participants": ["P1", "P2"], "resources": ["R1", "R2"]}]


def test_main_argument_errors():
    with pytest.raises(SystemExit):
        main(["--scenario", scenario("chain.json"), "--max-rounds", "2"])
    with pytest.raises(SystemExit):
        main(["--scenario", scenario("chain.json"), "--strategy", "random"])


def test_format_result_report():
    """Report lists cycles with resource labels and resolution options."""
    entities = [
        Entity("P1", held=["R1"], requested=["R2"]),
        Entity("P2", held=["R2"], requested=["R1"]),
    ]
    report = format_result(detect_deadlock(entities), {"R1": "Printer"})

    assert "DEADLOCK MONITOR: ACTIVE" in report
    assert "Circular Wait Detected (Cycle 1)" in report
    assert "P1 -> P2 -> P1" in report
    assert "Printer" in report and "R2" in report
    assert "Resolution Options:" in report

    clear = format_result(detect_deadlock([Entity("P1")]), active_locks=3)
    assert "CLEAR" in clear
    assert "Currently monitoring 3 active locks" in clear


def test_main_rejects_list_ids(tmp_path, capsys):
    """A list where a resource id belongs is a load error, exit code 2."""
    path = tmp_path / "list_ids.json"
    path.write_text(json.dumps({"entities": [{"id": "A", "held": [["x"]]}]}), encoding="utf-8")

    assert main(["--scenario", str(path)]) == 2
    assert "[ERROR]" in capsys.readouterr().out


def test_main_json_with_resolve_is_one_document(capsys):
    """--json --resolve prints a single document: the result after resolution."""
    assert main(["--scenario", scenario("mutual_wait.json"), "--json", "--resolve"]) == 0
    out = capsys.readouterr().out

    data = json.loads(out)
    assert data == {"hasDeadlock": False, "cycles": []}
