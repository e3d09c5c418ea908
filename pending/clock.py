"""Clock — in-world date, flow mode, advance ceremony and deadline pressure."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from pending.config import TimeFlowSettings
from pending.dates import MONTH_NAMES, GameDate, date_or_none, dump_date
from pending.types import SEVERITY_WEIGHTS

TEASER_MESSAGES: tuple[str, ...] = (
    "Something stirs...",
    "The calendar turns...",
    "Time moves forward...",
    "A new month awaits...",
    "The days pass by...",
    "Change is coming...",
)

FORESHADOWING_MESSAGES: dict[str, str] = {
    "deadline": "A deadline approaches...",
    "event": "Something is about to happen...",
    "quiet": "Life continues quietly...",
    "important": "This month feels significant...",
}

SPEEDS: dict[int, str] = {1: "normal", 2: "fast", 4: "faster"}
ADVANCE_MODES = ("auto", "manual")

# Ceremony order; the step after the last returns to idle.
_TRANSITION_STEPS: dict[str, str] = {
    "teasing": "transitioning",
    "transitioning": "revealing",
    "revealing": "idle",
}

# (max days remaining, pressure), scanned in order; past due is 100.
_PRESSURE_BUCKETS: tuple[tuple[int, int], ...] = ((7, 90), (30, 70), (90, 40))


@dataclass(frozen=True)
class DeadlineTracker:
    id: str
    name: str
    deadline: GameDate
    severity: str = "major"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "deadline": self.deadline.to_dict(),
            "severity": self.severity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeadlineTracker:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            deadline=GameDate.from_dict(data["deadline"]),
            severity=data.get("severity", "major"),
        )


def deadline_pressure_for(days_remaining: int, severity: str) -> float:
    """Raw pressure for one deadline before capping."""
    if days_remaining <= 0:
        base = 100
    else:
        base = next((p for limit, p in _PRESSURE_BUCKETS if days_remaining <= limit), 10)
    return base * SEVERITY_WEIGHTS.get(severity, SEVERITY_WEIGHTS["minor"])


class Clock:
    """Pure-data clock. Never performs I/O and never refuses to advance."""

    def __init__(self, start: GameDate | None = None) -> None:
        self.initialize_time(start if start is not None else GameDate(2024, 1, 1))
        self.advance_mode: str = "manual"

    def initialize_time(self, start: GameDate) -> None:
        """Reset the position and flow state to *start*. Advance mode is kept."""
        self.today: GameDate = start
        self.start_date: GameDate = start
        self.days_elapsed: int = 0
        self.months_elapsed: int = 0
        self.days_since_last_event: int = 0
        self.flow_mode: str = "paused"
        self.speed: int = 1
        self.transition_state: str = "idle"
        self.teaser_message: str | None = None
        self.can_advance: bool = True
        self.upcoming_hint: str | None = None
        self.deadlines: list[DeadlineTracker] = []
        self.deadline_pressure: int = 0
        self.is_quiet_period: bool = False
        self.quiet_period_days: int = 0
        self.quiet_period_start: GameDate | None = None

    # --- Advancing ---

    def advance(self, days: int = 1) -> list[GameDate]:
        """Advance *days* days. Returns the last day of each month completed."""
        if days < 0:
            raise ValueError("days must be non-negative")
        completed: list[GameDate] = []
        for _ in range(days):
            if self.today.is_month_end:
                completed.append(self.today)
                self.months_elapsed += 1
            self.today = self.today.next_day()
            self.days_elapsed += 1
            self.days_since_last_event += 1
        return completed

    def mark_event(self) -> None:
        self.days_since_last_event = 0

    # --- Flow mode ---

    @property
    def is_paused(self) -> bool:
        return self.flow_mode == "paused"

    def pause(self) -> None:
        self.flow_mode = "paused"

    def resume(self) -> None:
        self.flow_mode = SPEEDS[self.speed]

    def toggle(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def set_speed(self, speed: int) -> None:
        if speed not in SPEEDS:
            raise ValueError(f"speed must be one of {sorted(SPEEDS)}, got {speed}")
        self.speed = speed
        if not self.is_paused:
            self.flow_mode = SPEEDS[speed]

    def set_advance_mode(self, mode: str) -> None:
        if mode not in ADVANCE_MODES:
            raise ValueError(f"advance mode must be one of {ADVANCE_MODES}, got {mode!r}")
        self.advance_mode = mode

    def effective_tick_duration(self, settings: TimeFlowSettings) -> float:
        """Milliseconds between auto ticks, slowed by deadline pressure."""
        duration = settings.tick_duration_ms / self.speed
        for threshold, multiplier in settings.pressure_slowdown:
            if self.deadline_pressure > threshold:
                duration *= multiplier
        return duration

    # --- Ceremony ---

    def begin_transition(self, rng: random.Random) -> bool:
        if self.transition_state != "idle":
            return False
        self.transition_state = "teasing"
        self.teaser_message = rng.choice(TEASER_MESSAGES)
        self.can_advance = False
        return True

    def step_transition(self) -> str:
        """Move one ceremony step forward and return the new state."""
        next_state = _TRANSITION_STEPS.get(self.transition_state)
        if next_state is None:
            return self.transition_state
        if next_state == "idle":
            self.complete_transition()
        else:
            self.transition_state = next_state
        return self.transition_state

    def complete_transition(self) -> None:
        self.transition_state = "idle"
        self.teaser_message = None
        self.can_advance = True

    def cancel_transition(self) -> None:
        self.complete_transition()

    # --- Deadlines ---

    def add_deadline(self, deadline: DeadlineTracker) -> None:
        self.deadlines.append(deadline)

    def remove_deadline(self, deadline_id: str) -> bool:
        before = len(self.deadlines)
        self.deadlines = [d for d in self.deadlines if d.id != deadline_id]
        return len(self.deadlines) < before

    def days_until_deadline(self, deadline: DeadlineTracker) -> int:
        return self.today.days_until(deadline.deadline)

    def update_deadline_pressure(self) -> int:
        if not self.deadlines:
            self.deadline_pressure = 0
            return 0
        worst = max(
            deadline_pressure_for(self.days_until_deadline(d), d.severity)
            for d in self.deadlines
        )
        self.deadline_pressure = int(round(min(100.0, worst)))
        return self.deadline_pressure

    # --- Quiet periods ---

    def start_quiet_period(self, days: int) -> None:
        if days <= 0:
            raise ValueError("quiet period must be at least one day")
        self.is_quiet_period = True
        self.quiet_period_days = days
        self.quiet_period_start = self.today

    def end_quiet_period(self) -> None:
        self.is_quiet_period = False
        self.quiet_period_days = 0
        self.quiet_period_start = None

    # --- Display ---

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.today.month]

    def format_date(self) -> str:
        return self.today.format()

    @property
    def years_elapsed(self) -> int:
        return self.today.year - self.start_date.year

    @property
    def is_year_end(self) -> bool:
        return self.today.month == 12

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "today": self.today.to_dict(),
            "start_date": self.start_date.to_dict(),
            "days_elapsed": self.days_elapsed,
            "months_elapsed": self.months_elapsed,
            "days_since_last_event": self.days_since_last_event,
            "flow_mode": self.flow_mode,
            "speed": self.speed,
            "advance_mode": self.advance_mode,
            "upcoming_hint": self.upcoming_hint,
            "deadlines": [d.to_dict() for d in self.deadlines],
            "deadline_pressure": self.deadline_pressure,
            "is_quiet_period": self.is_quiet_period,
            "quiet_period_days": self.quiet_period_days,
            "quiet_period_start": dump_date(self.quiet_period_start),
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore position and modes. A ceremony in flight is not persisted."""
        today = GameDate.from_dict(data["today"])
        start = GameDate.from_dict(data["start_date"])
        deadlines = [DeadlineTracker.from_dict(d) for d in data.get("deadlines", [])]
        speed = data.get("speed", 1)
        if speed not in SPEEDS:
            raise ValueError(f"invalid speed {speed!r} in clock snapshot")
        advance_mode = data.get("advance_mode", "manual")
        if advance_mode not in ADVANCE_MODES:
            raise ValueError(f"invalid advance mode {advance_mode!r} in clock snapshot")

        self.initialize_time(start)
        self.today = today
        self.days_elapsed = data["days_elapsed"]
        self.months_elapsed = data["months_elapsed"]
        self.days_since_last_event = data.get("days_since_last_event", 0)
        self.flow_mode = data.get("flow_mode", "paused")
        self.speed = speed
        self.advance_mode = advance_mode
        self.upcoming_hint = data.get("upcoming_hint")
        self.deadlines = deadlines
        self.deadline_pressure = data.get("deadline_pressure", 0)
        self.is_quiet_period = data.get("is_quiet_period", False)
        self.quiet_period_days = data.get("quiet_period_days", 0)
        self.quiet_period_start = date_or_none(data.get("quiet_period_start"))
