"""
Report formatting for the Wait-For Graph Deadlock Detector.

Turns a DetectionResult into the text shown by the CLI monitor, or into
the JSON output shape.
"""

import json
from typing import Dict, Hashable, Optional

from models.detection_result import DetectionResult
from models.resource import label_for

RESOLUTION_OPTIONS = [
    "Release one of the locked resources held inside the cycle",
    "Wait for another participant to release its lock",
    "Request resources in a consistent order",
]

PREVENTION_TIPS = [
    "Always request resources in the same order",
    "Release locks as soon as you're done",
    "Avoid holding multiple locks simultaneously",
    "Use timeouts for lock acquisition",
]


def format_result(
    result: DetectionResult,
    labels: Optional[Dict[Hashable, str]] = None,
    active_locks: Optional[int] = None
) -> str:
    """
    Format a detection result for display.

    Args:
        result: Detection result
        labels: Optional resource id -> display name
        active_locks: Number of unreleased locks (shown when clear)

    Returns:
        Multi-line report
    """
    labels = labels or {}
    output = []
    output.append("\n" + "="*60)
    output.append("DEADLOCK MONITOR: " + ("ACTIVE" if result.has_deadlock else "CLEAR"))
    output.append("="*60)
    output.append(result.message)

    if not result.has_deadlock:
        if active_locks:
            output.append(f"Currently monitoring {active_locks} active locks")
        output.append("="*60)
        return "\n".join(output)

    for index, cycle in enumerate(result.cycles, start=1):
        output.append(f"\nCircular Wait Detected (Cycle {index})")
        output.append(f"  Wait chain: {cycle}")
        output.append("  Involved resources:")
        for resource_id in cycle.resources:
            output.append(f"    - {label_for(resource_id, labels)}")

    output.append("\nResolution Options:")
    for option in RESOLUTION_OPTIONS:
        output.append(f"  - {option}")

    output.append("\nPrevention Tips:")
    for tip in PREVENTION_TIPS:
        output.append(f"  - {tip}")

    output.append("="*60)
    return "\n".join(output)


def result_to_json(result: DetectionResult, indent: Optional[int] = 2) -> str:
    """Serialize a result in the {hasDeadlock, cycles} shape."""
    return json.dumps(result.to_dict(), indent=indent, default=str)
