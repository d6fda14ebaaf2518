# context.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .channel import Broadcaster
from .config import Config
from .ui.console import Console, get_console


class Service(Protocol):
    """Something a transform started that outlives the pipeline run (server, watcher)."""

    def stop(self) -> None: ...


@dataclass
class BuildContext:
    """
    Everything a transform may touch: configuration, console, the live-reload
    broadcaster and long-running services started during the run.
    """
    config: Config
    console: Console = field(default_factory=get_console)
    broadcaster: Broadcaster = field(default_factory=Broadcaster)
    scheduler: Optional[Any] = None  # set by Scheduler; watch transforms need it
    services: List[Service] = field(default_factory=list)
    state: Dict[str, Any] = field(default_factory=dict)
    _stopped: threading.Event = field(default_factory=threading.Event, repr=False)

    def add_service(self, service: Service) -> None:
        self.services.append(service)

    def wait(self, poll: float = 0.5) -> None:
        """Block until stop() is called (or KeyboardInterrupt reaches the caller)."""
        while not self._stopped.wait(poll):
            pass

    def stop(self) -> None:
        self._stopped.set()
        # reverse start order: watchers before the server they publish to
        for service in reversed(self.services):
            try:
                service.stop()
            except Exception as e:  # noqa: BLE001
                self.console.print_error("Failed to stop service", str(e))
        self.services.clear()
