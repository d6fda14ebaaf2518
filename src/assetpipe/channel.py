"""
Live-reload notification channel.

A single-slot registry holding the send function of the currently connected
development client. Publishing while no client is connected drops the message;
nothing is queued for clients that connect later.

    Idle --connect--> Connected --disconnect--> Idle

A second client connecting replaces the first (last connect wins). When the
replaced client later disconnects it does not clear the newer slot.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Callable, Optional

HTML = "html"
CSS = "css"

SendFn = Callable[[str], None]


@dataclass(frozen=True)
class Subscriber:
    token: int
    send: SendFn


class Broadcaster:
    """Single-slot subscriber registry with atomic connect/disconnect."""

    def __init__(self):
        self._lock = threading.Lock()
        self._slot: Optional[Subscriber] = None
        self._tokens = itertools.count(1)

    @property
    def state(self) -> str:
        return "connected" if self._slot is not None else "idle"

    def connect(self, send: SendFn) -> int:
        """Make `send` the current subscriber. Returns a token for disconnect()."""
        with self._lock:
            subscriber = Subscriber(token=next(self._tokens), send=send)
            self._slot = subscriber
            return subscriber.token

    def disconnect(self, token: int) -> bool:
        """Clear the slot if `token` still owns it."""
        with self._lock:
            if self._slot is not None and self._slot.token == token:
                self._slot = None
                return True
            return False

    def publish(self, tag: str) -> bool:
        """Send `tag` to the current subscriber. Returns False when idle."""
        with self._lock:
            subscriber = self._slot
        if subscriber is None:
            return False
        subscriber.send(tag)
        return True
