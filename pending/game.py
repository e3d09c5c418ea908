"""Game — wires the state owners, engine and controller into one session."""
from __future__ import annotations

import logging
import os
import random
from typing import Any

from pending.applications import ApplicationTracker
from pending.catalog import ContentCatalog
from pending.clock import DeadlineTracker
from pending.config import SimulationConfig
from pending.content import CharacterProfile
from pending.context import GameContext, GameSession
from pending.dates import GameDate
from pending.engine import EventEngine
from pending.events import CompletedEvent, EventState
from pending.finance import FinanceLedger, RecurringExpense
from pending.scheduler import ManualScheduler, Scheduler
from pending.snapshot import (
    SAVE_VERSION,
    deserialize_rng_state,
    seal,
    serialize_rng_state,
    verify,
)
from pending.statistics import GameStatistics, collect_statistics
from pending.timeflow import TimeFlowController
from pending.traps import TrapMonitor
from pending.types import SaveError

logger = logging.getLogger(__name__)


class Game:
    """One playthrough over a content catalog.

    Args:
        catalog: Read-only content tables.
        config: Tuning; defaults to ``SimulationConfig()``.
        seed: RNG seed; random when omitted.
        scheduler: Timer source for auto mode; a ``ManualScheduler`` when
            omitted, so nothing ticks until the host drives it.
    """

    def __init__(
        self,
        catalog: ContentCatalog,
        config: SimulationConfig | None = None,
        seed: int | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        config = config if config is not None else SimulationConfig()
        if seed is None:
            seed = int.from_bytes(os.urandom(8))
        self._seed = seed
        self._rng = random.Random(seed)
        self._games_started = 0
        self.ctx = GameContext(
            catalog=catalog,
            rng=self._rng,
            config=config,
            finance=FinanceLedger(config.debt),
        )
        self.scheduler = scheduler if scheduler is not None else ManualScheduler()
        self.engine = EventEngine(self.ctx)
        self.traps = TrapMonitor(self.ctx)
        self.controller = TimeFlowController(self.ctx, self.engine, self.traps, self.scheduler)

    @property
    def seed(self) -> int:
        return self._seed

    # --- New game ---

    def new_game(self, profile: CharacterProfile, start_date: GameDate | None = None) -> None:
        """Reset every state owner to *profile*'s starting conditions."""
        start = start_date if start_date is not None else GameDate(profile.game_start_year, 1, 1)
        ctx = self.ctx
        self.controller.stop()
        ctx.bus.clear()

        ctx.clock.initialize_time(start)
        ctx.character.initialize_character(profile, start)
        finances = profile.initial_finances
        expenses = []
        if finances.monthly_expenses > 0:
            expenses.append(RecurringExpense(
                id="living", name="Living expenses",
                amount=finances.monthly_expenses, category="living",
            ))
        ctx.finance.initialize(
            finances.bank_balance, finances.monthly_income, expenses, finances.debt,
        )
        ctx.relationships.initialize(profile.initial_relationships)
        ctx.applications = ApplicationTracker()
        ctx.events = EventState()

        self._games_started += 1
        ctx.session = GameSession(
            game_id=f"{self._seed:x}-{self._games_started}",
            character_id=profile.id,
            screen="game",
        )
        self._seed_timed_events(start)
        logger.debug("new game %s for %r at %s", ctx.session.game_id, profile.id, start)

    def _seed_timed_events(self, start: GameDate) -> None:
        """Queue immediate events and place scheduled and deadline events on the calendar."""
        ctx = self.ctx
        for event in ctx.catalog.events:
            timing = event.timing
            if timing.type == "immediate":
                if self.engine.is_event_eligible(event):
                    ctx.events.queue_event(event.id, event.priority)
            elif timing.type == "scheduled" and timing.year is not None:
                when = GameDate(timing.year, timing.month or 1)
                if when >= start:
                    ctx.events.schedule_event(event.id, when)
            elif timing.type == "deadline" and timing.deadline_date is not None:
                if timing.deadline_date >= start:
                    ctx.events.schedule_event(event.id, timing.deadline_date)
                    ctx.clock.add_deadline(DeadlineTracker(
                        id=event.id,
                        name=event.title,
                        deadline=timing.deadline_date,
                        severity="critical" if event.is_mandatory else "major",
                    ))
        ctx.clock.update_deadline_pressure()

    # --- Player actions ---

    def select_choice(self, choice_id: str) -> CompletedEvent | None:
        record = self.engine.select_choice(choice_id)
        self.ctx.bus.flush()
        return record

    def dismiss(self) -> None:
        self.controller.dismiss_event()

    def statistics(self) -> GameStatistics:
        return collect_statistics(self.ctx)

    # --- Persistence ---

    def snapshot(self) -> dict[str, Any]:
        """Sealed, JSON-compatible state of the whole game."""
        ctx = self.ctx
        return seal({
            "version": SAVE_VERSION,
            "seed": self._seed,
            "rng_state": serialize_rng_state(self._rng.getstate()),
            "session": ctx.session.to_dict(),
            "clock": ctx.clock.snapshot(),
            "character": ctx.character.snapshot(),
            "finance": ctx.finance.snapshot(),
            "relationships": ctx.relationships.snapshot(),
            "applications": ctx.applications.snapshot(),
            "events": ctx.events.snapshot(),
        })

    def restore(self, data: dict[str, Any]) -> None:
        """Replace the live state with *data*.

        The save is verified and applied to a scratch game first; on any
        failure SaveError is raised and the live state is untouched.
        """
        payload = verify(data)
        scratch = Game(self.ctx.catalog, self.ctx.config, seed=0)
        try:
            scratch._apply(payload)
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            logger.error("rejecting save: %s", exc)
            raise SaveError(f"malformed save data: {exc}") from exc
        self.controller.stop()
        self._apply(payload)

    def _apply(self, payload: dict[str, Any]) -> None:
        ctx = self.ctx
        rng_state = deserialize_rng_state(payload["rng_state"])
        session = GameSession.from_dict(payload["session"])
        self._rng.setstate(rng_state)
        self._seed = payload["seed"]
        ctx.clock.restore(payload["clock"])
        ctx.character.restore(payload["character"])
        ctx.finance.restore(payload["finance"])
        ctx.relationships.restore(payload["relationships"])
        ctx.applications.restore(payload["applications"])
        ctx.events.restore(payload["events"], ctx.catalog)
        ctx.session = session
        ctx.bus.clear()
