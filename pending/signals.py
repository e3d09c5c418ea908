"""SignalBus — queued pub/sub surface the presentation layer listens on."""
from __future__ import annotations

from typing import Any, Callable

SignalHandler = Callable[[str, dict[str, Any]], None]

DAY_ADVANCED = "day_advanced"
MONTH_ENDED = "month_ended"
PRESSURE_CHANGED = "pressure_changed"
HINT_CHANGED = "hint_changed"
QUIET_PERIOD_SKIPPED = "quiet_period_skipped"
INTERRUPT_CONSUMED = "interrupt_consumed"
EVENT_SHOWN = "event_shown"
OUTCOME_SHOWN = "outcome_shown"
TRAP_TRIGGERED = "trap_triggered"
GAME_ENDED = "game_ended"

SIGNALS: frozenset[str] = frozenset({
    DAY_ADVANCED, MONTH_ENDED, PRESSURE_CHANGED, HINT_CHANGED,
    QUIET_PERIOD_SKIPPED, INTERRUPT_CONSUMED, EVENT_SHOWN, OUTCOME_SHOWN,
    TRAP_TRIGGERED, GAME_ENDED,
})


class SignalBus:
    """Publishes are queued and delivered in order on ``flush()``.

    Signals published by a handler during a flush are held for the next
    flush.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[SignalHandler]] = {}
        self._queue: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, signal_name: str, handler: SignalHandler) -> None:
        if signal_name not in SIGNALS:
            raise ValueError(f"unknown signal {signal_name!r}")
        self._subscribers.setdefault(signal_name, []).append(handler)

    def unsubscribe(self, signal_name: str, handler: SignalHandler) -> None:
        handlers = self._subscribers.get(signal_name)
        if handlers is not None and handler in handlers:
            handlers.remove(handler)

    def publish(self, signal_name: str, **data: Any) -> None:
        self._queue.append((signal_name, data))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def flush(self) -> int:
        """Deliver queued signals. Returns how many were delivered."""
        batch = self._queue
        self._queue = []
        for signal_name, data in batch:
            for handler in list(self._subscribers.get(signal_name, ())):
                handler(signal_name, data)
        return len(batch)

    def clear(self) -> None:
        self._queue.clear()
