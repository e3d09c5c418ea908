"""TimeFlowController — drives the clock, month-end processing and event triggering.

Auto mode runs a one-shot timer per tick through the injected scheduler.
Manual mode never schedules ticks; the host calls ``manual_advance()`` or
``ceremonial_advance()`` in response to the player.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pending import signals

if TYPE_CHECKING:
    from pending.content import GameEvent
    from pending.context import GameContext
    from pending.dates import GameDate
    from pending.engine import EventEngine
    from pending.events import PendingInterrupt
    from pending.scheduler import Scheduler, TimerHandle
    from pending.traps import TrapMonitor

logger = logging.getLogger(__name__)


class TimeFlowController:
    def __init__(
        self,
        ctx: GameContext,
        engine: EventEngine,
        traps: TrapMonitor,
        scheduler: Scheduler,
    ) -> None:
        self._ctx = ctx
        self._engine = engine
        self._traps = traps
        self._scheduler = scheduler
        self._processing = False
        self._started = False
        self._timer: TimerHandle | None = None
        self._ceremony: TimerHandle | None = None

    # --- Tick ---

    def process_tick(self) -> bool:
        """Advance one day. Returns whether an event surfaced.

        A call made while another tick is in flight is dropped and returns
        False.
        """
        if self._processing or self._ctx.session.is_over:
            return False
        self._processing = True
        try:
            surfaced = self._tick()
            self._ctx.bus.flush()
        finally:
            self._processing = False
        return surfaced

    def _tick(self) -> bool:
        ctx = self._ctx
        for month_end in ctx.clock.advance(1):
            self._process_month_end(month_end)
        ctx.bus.publish(signals.DAY_ADVANCED, date=ctx.clock.today)
        if ctx.session.is_over:
            return False
        self._update_pressure()

        events = ctx.events
        top = events.next_interrupt()
        if top is not None and events.should_pause_for_interrupt(ctx.config.time.auto_pause_on_important):
            return self._surface_interrupt(top)

        if self._engine.has_pending_event():
            event = self._engine.select_pending_event()
            if event is not None:
                return self._surface(event)

        if not self._engine.should_attempt_event():
            return False
        if top is not None:
            return self._surface_interrupt(top)
        event = self._engine.select_next_event()
        if event is None:
            return False
        return self._surface(event)

    def _process_month_end(self, date: GameDate) -> None:
        ctx = self._ctx
        summary = ctx.finance.process_month_end(date)
        decisions = ctx.applications.process_monthly_applications(
            date, ctx.rng, ctx.config.applications,
        )
        ctx.applications.apply_decisions(decisions, date)
        if ctx.character.accrues_unlawful_presence():
            ctx.character.add_unlawful_presence_days(date.day)
        logger.debug("month end %s: balance %.2f, %d decisions",
                     date, summary.ending_balance, len(decisions))
        ctx.bus.publish(signals.MONTH_ENDED, date=date, summary=summary)
        self._traps.check(date)
        self._engine.check_endings()

    def _update_pressure(self) -> None:
        clock = self._ctx.clock
        before = clock.deadline_pressure
        after = clock.update_deadline_pressure()
        if after != before:
            self._ctx.bus.publish(signals.PRESSURE_CHANGED, pressure=after, previous=before)

    def _surface_interrupt(self, interrupt: PendingInterrupt) -> bool:
        ctx = self._ctx
        ctx.events.remove_interrupt(interrupt.event_id)
        ctx.bus.publish(
            signals.INTERRUPT_CONSUMED,
            event_id=interrupt.event_id, priority=interrupt.priority,
        )
        event = ctx.catalog.get_event(interrupt.event_id)
        if event is None:
            logger.warning("interrupt for unknown event %r", interrupt.event_id)
            return False
        logger.debug("surfacing %s interrupt %r", interrupt.priority, event.id)
        return self._surface(event)

    def _surface(self, event: GameEvent) -> bool:
        self._ctx.clock.pause()
        self._cancel_timer()
        self._engine.show_event(event)
        logger.debug("event %r surfaced on %s", event.id, self._ctx.clock.today)
        return True

    # --- Quiet periods ---

    def process_quiet_period(self) -> int:
        """Batch-advance a flagged quiet period. Returns the days skipped."""
        clock = self._ctx.clock
        if self._processing or not clock.is_quiet_period or clock.quiet_period_days <= 0:
            return 0
        self._processing = True
        try:
            days = clock.quiet_period_days
            for month_end in clock.advance(days):
                self._process_month_end(month_end)
                if self._ctx.session.is_over:
                    break
            clock.end_quiet_period()
            self._update_pressure()
            logger.debug("skipped %d quiet days to %s", days, clock.today)
            self._ctx.bus.publish(signals.QUIET_PERIOD_SKIPPED, days=days, date=clock.today)
            self._ctx.bus.flush()
        finally:
            self._processing = False
        return days

    # --- Manual advance ---

    def _can_advance_manually(self) -> bool:
        ctx = self._ctx
        return (
            ctx.clock.advance_mode == "manual"
            and ctx.events.current_event is None
            and not self._processing
            and ctx.clock.transition_state == "idle"
            and not ctx.session.is_over
        )

    def _advance_once(self) -> bool:
        if self._ctx.clock.is_quiet_period and self._ctx.clock.quiet_period_days > 0:
            self.process_quiet_period()
        else:
            self.process_tick()
        self.update_foreshadowing()
        return True

    def manual_advance(self) -> bool:
        """Perform one tick, or the pending quiet skip. Returns whether time moved."""
        if not self._can_advance_manually():
            return False
        return self._advance_once()

    def ceremonial_advance(self) -> bool:
        """Manual advance wrapped in the teasing, transitioning, revealing ceremony."""
        if not self._can_advance_manually():
            return False
        settings = self._ctx.config.time
        self._ctx.clock.begin_transition(self._ctx.rng)
        self._ceremony = self._scheduler.call_later(settings.teaser_ms, self._ceremony_advance)
        return True

    def _ceremony_advance(self) -> None:
        clock = self._ctx.clock
        clock.step_transition()
        self._advance_once()
        clock.step_transition()
        self._ceremony = self._scheduler.call_later(
            self._ctx.config.time.reveal_ms, self._ceremony_reveal,
        )

    def _ceremony_reveal(self) -> None:
        self._ceremony = None
        self._ctx.clock.step_transition()

    def _cancel_ceremony(self) -> None:
        if self._ceremony is not None:
            self._ceremony.cancel()
            self._ceremony = None
        self._ctx.clock.cancel_transition()

    # --- Timer ---

    def _should_run(self) -> bool:
        ctx = self._ctx
        return (
            self._started
            and ctx.clock.advance_mode == "auto"
            and not ctx.clock.is_paused
            and ctx.events.current_event is None
            and not ctx.session.is_over
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        self._cancel_timer()
        if not self._should_run():
            return
        delay = self._ctx.clock.effective_tick_duration(self._ctx.config.time)
        self._timer = self._scheduler.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if not self._should_run():
            return
        clock = self._ctx.clock
        if clock.is_quiet_period and self._ctx.config.time.quiet_period_auto_skip:
            self.process_quiet_period()
        else:
            self.process_tick()
        self._schedule()

    @property
    def is_running(self) -> bool:
        return self._should_run() and self._timer is not None

    # --- Lifecycle & controls ---

    def start(self) -> None:
        self._started = True
        self._schedule()
        self.update_foreshadowing()

    def stop(self) -> None:
        """Tear down: cancel every timer. No tick fires afterwards."""
        self._started = False
        self._cancel_timer()
        self._cancel_ceremony()
        self._ctx.clock.pause()

    def pause(self) -> None:
        self._ctx.clock.pause()
        self._cancel_timer()

    def resume(self) -> bool:
        """Resume flow. Refused while an event is shown."""
        if self._ctx.events.current_event is not None or self._ctx.session.is_over:
            return False
        self._ctx.clock.resume()
        self._schedule()
        return True

    def toggle_pause(self) -> bool:
        """Returns True when flow is running afterwards."""
        if self._ctx.clock.is_paused:
            return self.resume()
        self.pause()
        return False

    def set_speed(self, speed: int) -> None:
        self._ctx.clock.set_speed(speed)
        if self._timer is not None:
            self._schedule()

    def set_advance_mode(self, mode: str) -> None:
        """Switching to manual force-pauses and cancels the timer."""
        self._ctx.clock.set_advance_mode(mode)
        if mode == "manual":
            self.pause()
        else:
            self._cancel_ceremony()
            self._schedule()

    def toggle_advance_mode(self) -> str:
        mode = "manual" if self._ctx.clock.advance_mode == "auto" else "auto"
        self.set_advance_mode(mode)
        return mode

    def update_foreshadowing(self) -> str | None:
        clock = self._ctx.clock
        hint = self._engine.check_for_upcoming_events()
        if hint != clock.upcoming_hint:
            clock.upcoming_hint = hint
            self._ctx.bus.publish(signals.HINT_CHANGED, hint=hint)
        if not self._processing:
            self._ctx.bus.flush()
        return hint

    def dismiss_event(self) -> None:
        """Clear the shown event and outcome; in auto mode, resume the timer."""
        self._engine.dismiss()
        if self._ctx.clock.advance_mode == "auto" and self._started:
            self.resume()
        self._ctx.bus.flush()
