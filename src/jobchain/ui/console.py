"""Console output formatting utilities for jobchain."""

from __future__ import annotations

import sys
from typing import Mapping, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(self, job: str, mode: str) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Job: {job}")
        print(f"Mode: {mode}")
        print()

    def print_graph_only(self) -> None:
        print("Only printing the job graph, NOT executing. Run without --tool.graph to execute the job")

    def print_job_start(self, name: str, index: int) -> None:
        """Print job start message."""
        print(f"\nJOB STARTED: {name} (#{index})")

    def print_writing_dot(self, path: str, steps: bool = False) -> None:
        if steps:
            print(f"writing Steps DOT: {path}")
        else:
            print(f"writing DOT: {path}")

    def print_stats_written(self, path: str) -> None:
        print(f"writing flow stats: {path}")

    def print_counters(self, counters: Mapping[str, int]) -> None:
        """Print custom counters, one `name<TAB>value` line each."""
        print("Dumping custom counters:")
        for name, value in counters.items():
            print(f"{name}\t{value}")

    def print_success(self, name: str) -> None:
        """Print success message."""
        print("STATUS: success")

    def print_failure(self, name: str, reason: str) -> None:
        """
        Print failure message.

        Args:
            name: Job name
            reason: Failure reason/error message
        """
        print(f"JOB FAILED: {name}")
        if self.debug:
            print(f"Error details: {reason}")
        else:
            # Show first line of error for non-debug mode
            error_line = reason.split('\n')[0] if reason else "Unknown error"
            print(f"Error: {error_line}")

    def print_chain_complete(self, count: int) -> None:
        print(f"\nCHAIN COMPLETE: {count} job(s)")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
