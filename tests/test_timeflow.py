"""Tests for pending.timeflow.TimeFlowController."""
from __future__ import annotations

from typing import Any

from pending import signals
from pending.catalog import ContentCatalog
from pending.config import EventPacing, SimulationConfig
from pending.content import CharacterProfile, GameEvent
from pending.dates import GameDate
from pending.game import Game

PROFILE = CharacterProfile.from_dict({
    "id": "maria",
    "name": "Maria",
    "initialStatus": "undocumented",
    "initialFinances": {"bankBalance": 3200, "monthlyIncome": 4000, "monthlyExpenses": 2800},
})

WELCOME = GameEvent.from_dict({
    "id": "welcome",
    "title": "Welcome",
    "timing": {"type": "immediate"},
    "choices": [{"id": "ok", "text": "OK", "outcomes": []}],
})

RAID = GameEvent.from_dict({
    "id": "raid",
    "title": "Workplace Raid",
    "timing": {"type": "triggered"},
    "choices": [{"id": "hide", "text": "Hide", "outcomes": []}],
})

RUMOR = GameEvent.from_dict({
    "id": "rumor",
    "title": "Rumors at Work",
    "timing": {"type": "random"},
    "choices": [{"id": "listen", "text": "Listen", "outcomes": []}],
})

# Never rolls a random event before the guarantee.
NO_RANDOM = SimulationConfig(pacing=EventPacing(base_event_chance=0.0,
                                                guaranteed_event_days=10_000))


def _setup(*events: GameEvent, config: SimulationConfig | None = None, seed: int = 1) -> Game:
    game = Game(ContentCatalog(events=events, profiles=[PROFILE]), config=config, seed=seed)
    game.new_game(PROFILE)
    return game


class TestTick:
    def test_advances_one_day(self) -> None:
        game = _setup()
        assert not game.controller.process_tick()
        assert game.ctx.today == GameDate(2024, 1, 2)
        assert game.ctx.clock.days_elapsed == 1

    def test_month_end_processing(self) -> None:
        game = _setup()
        months: list[Any] = []
        game.ctx.bus.subscribe(signals.MONTH_ENDED, lambda name, data: months.append(data["date"]))
        for _ in range(31):
            game.controller.process_tick()
        assert game.ctx.today == GameDate(2024, 2, 1)
        assert game.ctx.finance.bank_balance == 4400
        assert len(game.ctx.finance.monthly_summaries) == 1
        assert months == [GameDate(2024, 1, 31)]
        assert game.ctx.character.status.unlawful_presence_days == 31

    def test_reentrant_tick_is_dropped(self) -> None:
        game = _setup()
        nested: list[bool] = []
        game.ctx.bus.subscribe(
            signals.DAY_ADVANCED,
            lambda name, data: nested.append(game.controller.process_tick()),
        )
        game.controller.process_tick()
        assert nested == [False]
        assert game.ctx.clock.days_elapsed == 1

    def test_queued_event_surfaces_and_pauses(self) -> None:
        game = _setup(WELCOME)
        shown: list[str] = []
        game.ctx.bus.subscribe(signals.EVENT_SHOWN, lambda name, data: shown.append(data["event_id"]))
        assert game.controller.process_tick()
        assert game.ctx.events.current_event is WELCOME
        assert game.ctx.clock.is_paused
        assert game.ctx.clock.days_since_last_event == 0
        assert shown == ["welcome"]

    def test_critical_interrupt_wins(self) -> None:
        game = _setup(WELCOME, RAID)
        game.ctx.events.add_interrupt("raid", "critical", game.ctx.today)
        assert game.controller.process_tick()
        assert game.ctx.events.current_event is RAID
        assert not game.ctx.events.has_interrupts

    def test_normal_interrupt_waits_for_roll(self) -> None:
        game = _setup(RAID, config=NO_RANDOM)
        game.ctx.events.add_interrupt("raid", "normal", game.ctx.today)
        for _ in range(5):
            assert not game.controller.process_tick()
        assert game.ctx.events.has_interrupts

    def test_ineligible_queued_event_does_not_bypass_roll(self) -> None:
        game = _setup(RAID, RUMOR, config=NO_RANDOM)
        game.ctx.events.complete_event("raid", "hide", game.ctx.today, [])
        game.ctx.events.queue_event("raid")
        assert not game.controller.process_tick()
        assert game.ctx.events.current_event is None
        assert game.ctx.events.queue == []

    def test_ineligible_queued_event_does_not_jump_interrupt(self) -> None:
        game = _setup(WELCOME, RAID, RUMOR, config=NO_RANDOM)
        game.ctx.events.complete_event("welcome", "ok", game.ctx.today, [])
        game.ctx.events.add_interrupt("raid", "ambient", game.ctx.today)
        for _ in range(3):
            assert not game.controller.process_tick()
        assert game.ctx.events.current_event is None
        assert game.ctx.events.has_interrupts

    def test_no_tick_after_game_over(self) -> None:
        game = _setup()
        game.ctx.session.screen = "ending"
        assert not game.controller.process_tick()
        assert game.ctx.clock.days_elapsed == 0


class TestQuietPeriod:
    def test_skip_matches_sequential_ticks(self) -> None:
        skipped = _setup(config=NO_RANDOM)
        stepped = _setup(config=NO_RANDOM)

        skipped.ctx.clock.start_quiet_period(45)
        assert skipped.controller.process_quiet_period() == 45
        for _ in range(45):
            stepped.controller.process_tick()

        assert skipped.ctx.clock.snapshot() == stepped.ctx.clock.snapshot()
        assert skipped.ctx.finance.snapshot() == stepped.ctx.finance.snapshot()
        assert skipped.ctx.character.snapshot() == stepped.ctx.character.snapshot()
        assert skipped.ctx.today == GameDate(2024, 2, 15)

    def test_no_quiet_period_no_skip(self) -> None:
        game = _setup()
        assert game.controller.process_quiet_period() == 0
        assert game.ctx.clock.days_elapsed == 0


class TestManualAdvance:
    def test_advances_in_manual_mode(self) -> None:
        game = _setup()
        assert game.controller.manual_advance()
        assert game.ctx.clock.days_elapsed == 1

    def test_no_op_in_auto_mode(self) -> None:
        game = _setup()
        game.controller.set_advance_mode("auto")
        assert not game.controller.manual_advance()
        assert game.ctx.clock.days_elapsed == 0

    def test_no_op_while_event_shown(self) -> None:
        game = _setup(WELCOME)
        game.controller.manual_advance()
        assert game.ctx.events.current_event is WELCOME
        assert not game.controller.manual_advance()
        assert game.ctx.clock.days_elapsed == 1

    def test_takes_pending_quiet_skip(self) -> None:
        game = _setup()
        game.ctx.clock.start_quiet_period(10)
        assert game.controller.manual_advance()
        assert game.ctx.clock.days_elapsed == 10
        assert not game.ctx.clock.is_quiet_period

    def test_ceremony(self) -> None:
        game = _setup()
        clock = game.ctx.clock
        settings = game.ctx.config.time
        assert game.controller.ceremonial_advance()
        assert clock.transition_state == "teasing"
        assert clock.teaser_message is not None
        assert not game.controller.manual_advance()

        game.scheduler.advance(settings.teaser_ms)
        assert clock.transition_state == "revealing"
        assert clock.days_elapsed == 1

        game.scheduler.advance(settings.reveal_ms)
        assert clock.transition_state == "idle"
        assert clock.can_advance
        assert game.controller.manual_advance()


class TestAutoMode:
    def _auto(self, *events: GameEvent) -> Game:
        game = _setup(*events, config=NO_RANDOM)
        game.controller.set_advance_mode("auto")
        game.controller.start()
        assert game.controller.resume()
        return game

    def test_timer_drives_ticks(self) -> None:
        game = self._auto()
        assert game.controller.is_running
        game.scheduler.advance(3 * game.ctx.config.time.tick_duration_ms)
        assert game.ctx.clock.days_elapsed == 3

    def test_event_stops_the_timer(self) -> None:
        game = self._auto(WELCOME)
        game.scheduler.advance(10_000)
        assert game.ctx.clock.days_elapsed == 1
        assert game.ctx.events.current_event is WELCOME
        assert not game.controller.is_running
        assert game.scheduler.pending == 0

    def test_resume_refused_while_event_shown(self) -> None:
        game = self._auto(WELCOME)
        game.scheduler.advance(1_000)
        assert not game.controller.resume()
        assert game.ctx.clock.is_paused

    def test_dismiss_resumes(self) -> None:
        game = self._auto(WELCOME)
        game.scheduler.advance(1_000)
        game.select_choice("ok")
        game.dismiss()
        assert game.ctx.events.current_event is None
        assert game.controller.is_running
        game.scheduler.advance(2_000)
        assert game.ctx.clock.days_elapsed == 3

    def test_switch_to_manual_pauses_and_cancels(self) -> None:
        game = self._auto()
        assert game.scheduler.pending == 1
        game.controller.set_advance_mode("manual")
        assert game.ctx.clock.is_paused
        assert game.scheduler.pending == 0
        game.scheduler.advance(10_000)
        assert game.ctx.clock.days_elapsed == 0

    def test_pause_and_toggle(self) -> None:
        game = self._auto()
        assert not game.controller.toggle_pause()
        assert not game.controller.is_running
        assert game.controller.toggle_pause()
        assert game.controller.is_running

    def test_speed_shortens_ticks(self) -> None:
        game = self._auto()
        game.controller.set_speed(4)
        game.scheduler.advance(1_000)
        assert game.ctx.clock.days_elapsed == 4

    def test_stop_cancels_everything(self) -> None:
        game = self._auto()
        game.controller.stop()
        game.scheduler.advance(10_000)
        assert game.ctx.clock.days_elapsed == 0
        assert game.ctx.clock.is_paused

    def test_toggle_advance_mode(self) -> None:
        game = self._auto()
        assert game.controller.toggle_advance_mode() == "manual"
        assert game.controller.toggle_advance_mode() == "auto"


class TestForeshadowing:
    def test_hint_change_published_once(self) -> None:
        game = _setup(WELCOME)
        hints: list[Any] = []
        game.ctx.bus.subscribe(signals.HINT_CHANGED, lambda name, data: hints.append(data["hint"]))
        game.ctx.events.schedule_event("welcome", GameDate(2024, 3, 1))
        game.controller.update_foreshadowing()
        game.controller.update_foreshadowing()
        assert len(hints) == 1
        assert game.ctx.clock.upcoming_hint == hints[0]
