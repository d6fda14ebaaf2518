# watcher.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from watchfiles import watch

from . import globs
from .channel import Broadcaster
from .errors import PipelineFailed
from .ui.console import Console, get_console

DEFAULT_DEBOUNCE_MS = 50


@dataclass(frozen=True)
class WatchBinding:
    """Watched patterns (relative to the watch root) -> pipeline, plus the tag published on success."""
    patterns: Tuple[str, ...]
    pipeline: str
    notify: Optional[str] = None


def bind(patterns: Sequence[str], pipeline: str, notify: Optional[str] = None) -> WatchBinding:
    if not patterns:
        raise ValueError(f"bind() for pipeline {pipeline!r} needs at least one pattern")
    return WatchBinding(patterns=tuple(patterns), pipeline=pipeline, notify=notify)


class Watcher:
    """
    Runs bound pipelines when watched files change.

    One change batch (watchfiles debounces events for `debounce_ms`) runs each
    matching binding once, in binding order, on the watcher thread. A failed
    run is reported and publishes nothing; the watcher keeps going.
    """

    def __init__(
        self,
        root: str | Path,
        bindings: Sequence[WatchBinding],
        scheduler,
        broadcaster: Broadcaster,
        *,
        console: Optional[Console] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ):
        self.root = Path(root)
        self.bindings = list(bindings)
        self.scheduler = scheduler
        self.broadcaster = broadcaster
        self.console = console or get_console()
        self.debounce_ms = debounce_ms
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _relative(self, path: str | Path) -> Optional[str]:
        p = Path(path)
        try:
            if p.is_absolute():
                p = p.resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        return p.as_posix()

    def matching(self, paths: Iterable[str | Path]) -> List[WatchBinding]:
        rel = [r for r in (self._relative(p) for p in paths) if r is not None]
        return [b for b in self.bindings if any(globs.matches(r, b.patterns) for r in rel)]

    def handle(self, paths: Iterable[str | Path]) -> List[str]:
        """
        Run every binding that matches one of `paths`.

        Returns:
          names of pipelines that completed successfully
        """
        succeeded: List[str] = []
        for binding in self.matching(paths):
            try:
                self.scheduler.run(binding.pipeline)
            except PipelineFailed as e:
                self.console.print_error(
                    f"Pipeline '{binding.pipeline}' failed",
                    str(e.error),
                    suggestion="Fix the error and save again; still watching.",
                )
                continue
            except Exception as e:  # noqa: BLE001
                self.console.print_exception(e)
                continue
            succeeded.append(binding.pipeline)
            if binding.notify:
                self._notify(binding.notify)
        return succeeded

    def _notify(self, tag: str) -> None:
        try:
            delivered = self.broadcaster.publish(tag)
        except Exception as e:  # noqa: BLE001
            self.console.print_exception(e)
            delivered = False
        self.console.print_reload(tag, delivered)

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def _loop(self) -> None:
        for changes in watch(
            str(self.root),
            stop_event=self._stop,
            debounce=self.debounce_ms,
            recursive=True,
        ):
            try:
                self.handle(path for _change, path in changes)
            except Exception as e:  # noqa: BLE001
                self.console.print_exception(e)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="watcher", daemon=True)
        self._thread.start()
        self.console.print_watch_started(str(self.root), len(self.bindings))

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
