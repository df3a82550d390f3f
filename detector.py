#!/usr/bin/env python3
"""
Wait-For Graph Deadlock Detector
Main entry point for the detection tool.

Loads an allocation snapshot, reports circular waits and optionally breaks
them by revoking requests until the snapshot is deadlock-free.
"""

import argparse
import sys
from typing import Optional, Tuple

from models.allocation_state import AllocationState
from models.detection_result import DetectionResult
from models.lock import active_lock_count
from utils.scenario_loader import load_scenario_with_locks, ScenarioLoadError
from utils.logger import DetectorLogger
from algorithms.detection import detect_deadlock
from algorithms.resolution import recover_from_deadlock, enumerate_all_cycles
from algorithms.validation import validate_entities, ConstraintViolation
from analysis.events import EventLog, DetectionEvent, EventType
from analysis.report import format_result, result_to_json


def run_detection(
    scenario_path: str,
    resolve: bool = False,
    strategy: str = "first",
    max_rounds: Optional[int] = None,
    strict: bool = False,
    exhaustive: bool = False,
    verbose: bool = False,
    output_json: bool = False,
    log_file: Optional[str] = None
) -> Tuple[Optional[DetectionResult], EventLog, str]:
    """
    Run detection (and optionally resolution) on a scenario file.

    Step Ordering:
    1. Load snapshot (entity or lock-record format)
    2. Strict validation, if requested
    3. Detection pass (first cycle per root, or repeated passes if exhaustive)
    4. Print report
    5. If resolve: revoke requests until no cycle remains

    Args:
        scenario_path: Path to scenario JSON file
        resolve: Break deadlocks after reporting them
        strategy: Victim selection strategy for resolution
        max_rounds: Upper bound on resolution rounds
        strict: Reject inconsistent snapshots with ConstraintViolation
        exhaustive: Report cycles beyond the first per DFS root
        verbose: Enable verbose logging
        output_json: Print the result as JSON instead of the text report
        log_file: Optional log file path

    Returns:
        Tuple of (result for the final snapshot or None on error,
        event log, stop reason)
    """
    logger = DetectorLogger(verbose=verbose, log_file=log_file, quiet=output_json)
    event_log = EventLog()

    try:
        # Load scenario
        try:
            state, locks = load_scenario_with_locks(scenario_path)
        except ScenarioLoadError as e:
            logger.log(f"Failed to load scenario: {e}", "error")
            return None, event_log, f"load failed: {e}"

        logger.log(f"Scenario: {scenario_path}")
        if state.description:
            logger.log(f"Description: {state.description}")
        _display_initial_state(state, logger)

        if strict:
            try:
                validate_entities(state.entities)
            except ConstraintViolation as e:
                logger.log(f"Constraint violation ({e.kind.value}): {e}", "error")
                return None, event_log, f"constraint violation: {e.kind.value}"

        # Detection pass
        if exhaustive:
            result = DetectionResult.from_cycles(enumerate_all_cycles(state.entities))
        else:
            result = detect_deadlock(state.entities)

        event_log.add(DetectionEvent(0, EventType.DETECTION, message=scenario_path))

        if output_json:
            # With --resolve only the post-resolution result is printed
            if not (resolve and result.has_deadlock):
                print(result_to_json(result))
        else:
            active = active_lock_count(locks) if locks else None
            logger.log(format_result(result, state.labels, active))

        if not result.has_deadlock:
            logger.log_detection(0, result)
            event_log.add(DetectionEvent(0, EventType.CLEAR))
            return result, event_log, "no deadlock"

        if not resolve:
            logger.log_detection(0, result)
            event_log.add(DetectionEvent(
                0,
                EventType.DEADLOCK,
                cycle_count=len(result.cycles),
                message=result.message
            ))
            return result, event_log, "deadlock detected"

        # Resolution loop
        logger.log(f"\nResolving with strategy: {strategy.upper()}")
        success, entities, actions = recover_from_deadlock(
            state.entities,
            strategy=strategy,
            max_rounds=max_rounds,
            logger=logger,
            event_log=event_log
        )
        state.replace_entities(entities)
        logger.log_state(state.display())

        final = detect_deadlock(state.entities)
        if success:
            stop_reason = f"deadlock resolved after {len(actions)} action(s)"
        else:
            stop_reason = f"resolution stopped after {len(actions)} action(s)"
        logger.log(f"\n{stop_reason}")

        if output_json:
            print(result_to_json(final))

        return final, event_log, stop_reason
    finally:
        logger.close()


def _display_initial_state(state: AllocationState, logger: DetectorLogger) -> None:
    """Display initial snapshot."""
    logger.log(f"Entities: {state.num_entities}, Resources: {state.num_resources}")
    logger.log_state(state.display())
    if logger.verbose:
        logger.log(f"Wait-for matrix:\n{state.wait_for_matrix.astype(int)}", "debug")


def main(argv=None):
    """Main entry point for the detector."""
    parser = argparse.ArgumentParser(
        description='Wait-For Graph Deadlock Detector'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path to scenario JSON file'
    )
    parser.add_argument(
        '--resolve',
        action='store_true',
        help='Revoke requests until the snapshot is deadlock-free'
    )
    parser.add_argument(
        '--strategy',
        choices=['first', 'most_requests', 'fewest_held'],
        default='first',
        help='Victim selection strategy for --resolve (default: first)'
    )
    parser.add_argument(
        '--max-rounds',
        type=int,
        default=None,
        help='Maximum resolution rounds (default: unbounded)'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Reject snapshots with duplicate holders or self-requests'
    )
    parser.add_argument(
        '--exhaustive',
        action='store_true',
        help='Report cycles beyond the first per search root'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file'
    )

    args = parser.parse_args(argv)

    if args.max_rounds is not None and not args.resolve:
        parser.error('--max-rounds requires --resolve')
    if args.max_rounds is not None and args.max_rounds < 0:
        parser.error('--max-rounds must be non-negative')

    result, _, _ = run_detection(
        args.scenario,
        resolve=args.resolve,
        strategy=args.strategy,
        max_rounds=args.max_rounds,
        strict=args.strict,
        exhaustive=args.exhaustive,
        verbose=args.verbose,
        output_json=args.json,
        log_file=args.log_file
    )

    if result is None:
        return 2
    return 1 if result.has_deadlock else 0


if __name__ == '__main__':
    sys.exit(main())
