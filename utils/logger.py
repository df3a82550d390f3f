"""
Logger utility for the Wait-For Graph Deadlock Detector.

Provides pass-by-pass logging with verbosity levels.
"""

from typing import Optional
from datetime import datetime


class DetectorLogger:
    """
    Logger for detection passes and resolution decisions.

    Format: "Pass X: DEADLOCK DETECTED - ..." / "Pass X: revoke ... (reason)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, quiet: bool = False):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            quiet: Suppress console output (file output unaffected)
        """
        self.verbose = verbose
        self.quiet = quiet
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Detection Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        if not self.quiet:
            print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_pass(self, pass_number: int, message: str) -> None:
        """Log a message for one detection pass."""
        self.log(f"Pass {pass_number}: {message}")

    def log_detection(self, pass_number: int, result) -> None:
        """
        Log the outcome of a detection pass.

        Args:
            pass_number: Current detection pass
            result: DetectionResult
        """
        if not result.has_deadlock:
            self.log_pass(pass_number, "no deadlock detected")
            return

        ids_str = ", ".join(str(e) for e in result.deadlocked_entities)
        self.log_pass(pass_number, f"DEADLOCK DETECTED - Entities in deadlock: [{ids_str}]")
        for index, cycle in enumerate(result.cycles, start=1):
            self.log_cycle(index, str(cycle), ", ".join(str(r) for r in cycle.resources))

    def log_cycle(self, index: int, path: str, resources: str) -> None:
        """
        Log one cycle.

        Args:
            index: 1-based cycle number
            path: Formatted participant path
            resources: Formatted contended resources
        """
        self.log(f"  Cycle {index}: {path} (resources: {resources or 'none'})")

    def log_resolution(self, pass_number: int, action) -> None:
        """
        Log a resolution action.

        Args:
            pass_number: Current detection pass
            action: ResolutionAction applied
        """
        self.log_pass(pass_number, f"RESOLUTION - {action}")

    def log_state(self, state_str: str) -> None:
        """Log an allocation state dump (verbose only)."""
        if self.verbose:
            self.log(f"Allocation State:\n{state_str}")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
