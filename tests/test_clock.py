"""Tests for pending.clock — advancing, flow controls, ceremony and pressure."""
from __future__ import annotations

import random

import pytest

from pending.clock import TEASER_MESSAGES, Clock, DeadlineTracker, deadline_pressure_for
from pending.config import TimeFlowSettings
from pending.dates import GameDate


class TestAdvance:
    def test_returns_completed_month_ends(self) -> None:
        clock = Clock(GameDate(2024, 1, 30))
        assert clock.advance(1) == []
        assert clock.advance(1) == [GameDate(2024, 1, 31)]
        assert clock.today == GameDate(2024, 2, 1)
        assert clock.months_elapsed == 1

    def test_counters(self) -> None:
        clock = Clock(GameDate(2024, 1, 1))
        clock.advance(60)
        assert clock.today == GameDate(2024, 3, 1)
        assert clock.days_elapsed == 60
        assert clock.months_elapsed == 2
        assert clock.days_since_last_event == 60
        clock.mark_event()
        assert clock.days_since_last_event == 0

    def test_year_boundary(self) -> None:
        clock = Clock(GameDate(2024, 12, 31))
        assert clock.advance(1) == [GameDate(2024, 12, 31)]
        assert clock.today == GameDate(2025, 1, 1)
        assert clock.years_elapsed == 1

    def test_negative_days_rejected(self) -> None:
        with pytest.raises(ValueError):
            Clock().advance(-1)


class TestFlowControls:
    def test_starts_paused_in_manual_mode(self) -> None:
        clock = Clock()
        assert clock.is_paused
        assert clock.advance_mode == "manual"

    def test_resume_uses_speed(self) -> None:
        clock = Clock()
        clock.set_speed(4)
        assert clock.is_paused
        clock.resume()
        assert clock.flow_mode == "faster"
        clock.set_speed(2)
        assert clock.flow_mode == "fast"
        clock.toggle()
        assert clock.is_paused

    def test_invalid_speed_and_mode(self) -> None:
        clock = Clock()
        with pytest.raises(ValueError):
            clock.set_speed(3)
        with pytest.raises(ValueError):
            clock.set_advance_mode("turbo")

    def test_initialize_keeps_advance_mode(self) -> None:
        clock = Clock()
        clock.set_advance_mode("auto")
        clock.initialize_time(GameDate(2030, 1, 1))
        assert clock.advance_mode == "auto"
        assert clock.days_elapsed == 0

    def test_tick_duration_slows_under_pressure(self) -> None:
        clock = Clock()
        settings = TimeFlowSettings(tick_duration_ms=1000)
        clock.set_speed(2)
        assert clock.effective_tick_duration(settings) == 500
        clock.deadline_pressure = 60
        assert clock.effective_tick_duration(settings) == 750
        clock.deadline_pressure = 90
        assert clock.effective_tick_duration(settings) == 1500


class TestCeremony:
    def test_full_sequence(self) -> None:
        clock = Clock()
        assert clock.begin_transition(random.Random(3))
        assert clock.teaser_message in TEASER_MESSAGES
        assert not clock.can_advance
        assert clock.step_transition() == "transitioning"
        assert clock.step_transition() == "revealing"
        assert clock.step_transition() == "idle"
        assert clock.teaser_message is None
        assert clock.can_advance

    def test_cannot_begin_twice(self) -> None:
        clock = Clock()
        clock.begin_transition(random.Random(3))
        assert not clock.begin_transition(random.Random(3))
        clock.cancel_transition()
        assert clock.transition_state == "idle"


class TestDeadlinePressure:
    def test_buckets(self) -> None:
        assert deadline_pressure_for(0, "critical") == 100
        assert deadline_pressure_for(-3, "critical") == 100
        assert deadline_pressure_for(7, "critical") == 90
        assert deadline_pressure_for(30, "critical") == 70
        assert deadline_pressure_for(90, "critical") == 40
        assert deadline_pressure_for(91, "critical") == 10

    def test_severity_weights(self) -> None:
        assert deadline_pressure_for(5, "major") == pytest.approx(72)
        assert deadline_pressure_for(5, "minor") == pytest.approx(45)

    def test_worst_deadline_wins(self) -> None:
        clock = Clock(GameDate(2024, 1, 1))
        clock.add_deadline(DeadlineTracker("far", "Far", GameDate(2024, 12, 1), "critical"))
        clock.add_deadline(DeadlineTracker("near", "Near", GameDate(2024, 1, 5), "major"))
        assert clock.update_deadline_pressure() == 72
        assert clock.remove_deadline("near")
        assert clock.update_deadline_pressure() == 10
        assert not clock.remove_deadline("near")

    def test_no_deadlines_no_pressure(self) -> None:
        clock = Clock()
        clock.deadline_pressure = 50
        assert clock.update_deadline_pressure() == 0


class TestQuietPeriod:
    def test_start_and_end(self) -> None:
        clock = Clock(GameDate(2024, 4, 10))
        clock.start_quiet_period(20)
        assert clock.is_quiet_period
        assert clock.quiet_period_start == GameDate(2024, 4, 10)
        clock.end_quiet_period()
        assert not clock.is_quiet_period
        assert clock.quiet_period_days == 0

    def test_empty_period_rejected(self) -> None:
        with pytest.raises(ValueError):
            Clock().start_quiet_period(0)


class TestSnapshot:
    def test_restore_matches_snapshot(self) -> None:
        clock = Clock(GameDate(2024, 1, 1))
        clock.advance(45)
        clock.set_speed(2)
        clock.set_advance_mode("auto")
        clock.add_deadline(DeadlineTracker("bio", "Biometrics", GameDate(2024, 3, 1)))
        clock.start_quiet_period(10)
        snap = clock.snapshot()

        restored = Clock()
        restored.restore(snap)
        assert restored.snapshot() == snap

    def test_invalid_speed_rejected(self) -> None:
        snap = Clock().snapshot()
        snap["speed"] = 3
        with pytest.raises(ValueError):
            Clock().restore(snap)

    def test_display(self) -> None:
        clock = Clock(GameDate(2024, 12, 5))
        assert clock.month_name == "December"
        assert clock.format_date() == "December 2024"
        assert clock.is_year_end
