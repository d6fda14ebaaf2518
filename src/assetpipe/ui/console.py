"""Console output formatting utilities for assetpipe."""

from __future__ import annotations

import sys
import threading
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # transforms report from worker threads
        self._lock = threading.Lock()

    def _out(self, *lines: str, err: bool = False) -> None:
        stream = sys.stderr if err else sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=stream)

    def print_pipeline_started(self, name: str, transform_count: int) -> None:
        """Print pipeline start information."""
        self._out(f"\nPIPELINE STARTED: {name}", f"Transforms: {transform_count}")

    def print_transform_start(self, path: str) -> None:
        self._out(f"▶ {path}")

    def print_transform_done(self, path: str, duration: float) -> None:
        self._out(f"✓ {path} ({duration:.2f}s)")

    def print_failure(self, name: str, reason: str, hint: Optional[str] = None) -> None:
        """
        Print failure message.

        Args:
            name: Transform path
            reason: Failure reason/error message
            hint: Optional hint for user
        """
        lines = [f"✗ TRANSFORM FAILED: {name}"]
        if hint:
            lines.append(f"Hint: {hint}")
        if self.debug:
            lines.append(f"Error details: {reason}")
        else:
            # first line only outside debug mode
            lines.append(f"Error: {reason.splitlines()[0] if reason else 'Unknown error'}")
        self._out(*lines, err=True)

    def print_reload(self, tag: str, delivered: bool) -> None:
        if delivered:
            self._out(f"↻ reload: {tag}")
        else:
            self.print_debug(f"reload '{tag}' dropped (no client connected)")

    def print_watch_started(self, root: str, binding_count: int) -> None:
        self._out(f"Watching {root} ({binding_count} binding(s))")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        lines = ["", "=" * 40, "RESULTS", "=" * 40]
        for name, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            lines.append(f"  {name}: {status_display}")
        self._out(*lines)

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
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {d}" for d in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._out(*lines, err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with self._lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_warning(self, message: str) -> None:
        # red, like the npm advisory
        self._out(f"\x1b[31m{message}\x1b[0m")

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


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
