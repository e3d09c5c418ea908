"""Tuning configuration dataclasses."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TimeFlowSettings:
    """Pacing of the auto-advance timer and the manual-advance ceremony.

    Attributes:
        tick_duration_ms: Wall time per in-world day at speed 1.
        auto_pause_on_important: Pause for ``important`` interrupts too,
            not only ``critical`` ones.
        quiet_period_auto_skip: Batch-advance flagged quiet periods.
        pressure_slowdown: (threshold, multiplier) pairs applied cumulatively
            to the tick duration when deadline pressure exceeds threshold.
        teaser_ms: Delay between ``teasing`` and the actual tick.
        reveal_ms: Delay between ``revealing`` and returning to ``idle``.
    """

    tick_duration_ms: float = 1000.0
    auto_pause_on_important: bool = True
    quiet_period_auto_skip: bool = True
    pressure_slowdown: tuple[tuple[int, float], ...] = ((50, 1.5), (80, 2.0))
    teaser_ms: float = 600.0
    reveal_ms: float = 400.0


@dataclass(frozen=True)
class EventPacing:
    """Per-tick trigger odds and foreshadowing thresholds.

    Attributes:
        base_event_chance: Trigger chance on the day right after an event.
        guaranteed_event_days: Days without an event after which a trigger
            attempt is forced.
        chained_event_priority: Queue priority of trigger-event outcomes and
            chained next events.
        foreshadow_min_months: Nearest scheduled month considered for hints.
        foreshadow_max_months: Farthest scheduled month considered for hints.
        generic_hint_chance: Odds of a generic hint when an ``important``
            tagged event is eligible.
        hint_pressure_threshold: Pressure above which the deadline hint shows.
    """

    base_event_chance: float = 0.1
    guaranteed_event_days: int = 30
    chained_event_priority: int = 10
    foreshadow_min_months: int = 1
    foreshadow_max_months: int = 3
    generic_hint_chance: float = 0.3
    hint_pressure_threshold: int = 70


@dataclass(frozen=True)
class ApplicationOdds:
    """Monthly decision sweep odds for filed applications."""

    base_decision_chance: float = 0.3
    overdue_decision_step: float = 0.1
    max_decision_chance: float = 0.8
    base_approval_rate: float = 0.75
    unanswered_rfe_penalty: float = 0.5


@dataclass(frozen=True)
class DebtPolicy:
    """Monthly installment = min(original_debt * installment_rate, installment_cap)."""

    installment_rate: float = 0.02
    installment_cap: float = 200.0


@dataclass(frozen=True)
class SimulationConfig:
    time: TimeFlowSettings = field(default_factory=TimeFlowSettings)
    pacing: EventPacing = field(default_factory=EventPacing)
    applications: ApplicationOdds = field(default_factory=ApplicationOdds)
    debt: DebtPolicy = field(default_factory=DebtPolicy)
