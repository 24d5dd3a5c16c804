"""Minimal synchronous event emitter (per-event subscriber lists)."""

from typing import Callable

from .config import log

Listener = Callable[[dict], None]


class EventEmitter:
    def __init__(self):
        self._subscribers: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> None:
        self._subscribers.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Listener) -> bool:
        listeners = self._subscribers.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event: str, payload: dict) -> int:
        """Call every listener in subscription order; returns how many ran cleanly.

        A failing listener is logged and never reaches the emitter's caller.
        """
        ok = 0
        for listener in list(self._subscribers.get(event, [])):
            try:
                listener(payload)
                ok += 1
            except Exception as e:
                log.error("event %s: listener failed: %s", event, e)
        return ok
