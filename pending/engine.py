"""EventEngine — eligibility, selection, choice resolution and foreshadowing."""
from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Sequence, TypeVar

from pending import conditions, outcomes, signals
from pending.character import stat_field
from pending.clock import FORESHADOWING_MESSAGES

if TYPE_CHECKING:
    from pending.content import (
        EventChain,
        EventChoice,
        EventCondition,
        EventOutcome,
        Ending,
        GameEvent,
    )
    from pending.context import GameContext
    from pending.dates import GameDate
    from pending.events import CompletedEvent

logger = logging.getLogger(__name__)

_W = TypeVar("_W")


def weighted_choice(items: Sequence[_W], rng: random.Random) -> _W | None:
    """Pick an item with probability proportional to its ``weight``.

    The first item whose cumulative weight passes the draw wins. Falls back
    to a uniform pick when every weight is zero.
    """
    if not items:
        return None
    total = sum(max(item.weight, 0) for item in items)  # type: ignore[attr-defined]
    if total <= 0:
        return rng.choice(items)
    draw = rng.random() * total
    cumulative = 0.0
    for item in items:
        cumulative += max(item.weight, 0)  # type: ignore[attr-defined]
        if draw < cumulative:
            return item
    return items[-1]


class EventEngine:
    """Decides which event surfaces and applies the consequences of choices."""

    def __init__(self, ctx: GameContext) -> None:
        self._ctx = ctx

    # --- Conditions ---

    def evaluate_condition(self, condition: EventCondition) -> bool:
        return conditions.evaluate_condition(self._ctx, condition)

    def evaluate_conditions(self, conds: Sequence[EventCondition]) -> bool:
        return conditions.evaluate_conditions(self._ctx, conds)

    # --- Eligibility ---

    def is_event_eligible(self, event: GameEvent) -> bool:
        ctx = self._ctx
        if not event.is_repeatable and ctx.events.has_completed(event.id):
            return False
        if event.character_ids and ctx.session.character_id not in event.character_ids:
            return False
        status = ctx.character.status_type
        if event.required_statuses and status not in event.required_statuses:
            return False
        if event.excluded_statuses and status in event.excluded_statuses:
            return False
        if not self.evaluate_conditions(event.conditions):
            return False
        if event.timing.type == "random" and not event.timing.in_window(ctx.clock.months_elapsed):
            return False
        return True

    def eligible_events(self) -> list[GameEvent]:
        return [e for e in self._ctx.catalog.events if self.is_event_eligible(e)]

    # --- Selection ---

    def _next_queued(self) -> GameEvent | None:
        events = self._ctx.events
        for queued in list(events.queue):
            event = self._ctx.catalog.get_event(queued.event_id)
            if event is None:
                logger.warning("dropping queued unknown event %r", queued.event_id)
                events.remove_queued(queued.event_id)
            elif self.is_event_eligible(event):
                return event
            else:
                logger.debug("dropping ineligible queued event %r", event.id)
                events.remove_queued(event.id)
        return None

    def _next_scheduled(self) -> GameEvent | None:
        events = self._ctx.events
        for entry in events.due_scheduled(self._ctx.clock.today):
            event = self._ctx.catalog.get_event(entry.event_id)
            if event is not None and self.is_event_eligible(event):
                return event
            logger.debug("dropping due scheduled event %r", entry.event_id)
            events.remove_scheduled(entry)
        return None

    def select_pending_event(self) -> GameEvent | None:
        """First eligible queued or due scheduled event. Never draws from the random pool."""
        return self._next_queued() or self._next_scheduled()

    def select_next_event(self) -> GameEvent | None:
        """Queued and due scheduled events first, then a weighted random pick."""
        event = self.select_pending_event()
        if event is not None:
            return event
        pool = [e for e in self.eligible_events() if e.timing.type == "random"]
        return weighted_choice(pool, self._ctx.rng)

    def event_chance(self) -> float:
        """Per-tick trigger chance, rising linearly to 1.0 at the guarantee ceiling."""
        pacing = self._ctx.config.pacing
        days = self._ctx.clock.days_since_last_event
        ramp = days / pacing.guaranteed_event_days
        return min(pacing.base_event_chance + ramp * (1.0 - pacing.base_event_chance), 1.0)

    def should_attempt_event(self) -> bool:
        if self._ctx.clock.days_since_last_event >= self._ctx.config.pacing.guaranteed_event_days:
            return True
        return self._ctx.rng.random() < self.event_chance()

    def has_pending_event(self) -> bool:
        events = self._ctx.events
        return bool(events.queue) or bool(events.due_scheduled(self._ctx.clock.today))

    # --- Display ---

    def show_event(self, event: GameEvent) -> None:
        ctx = self._ctx
        ctx.events.remove_queued(event.id)
        for entry in ctx.events.due_scheduled(ctx.clock.today):
            if entry.event_id == event.id:
                ctx.events.remove_scheduled(entry)
                break
        ctx.events.set_current_event(event)
        ctx.clock.mark_event()
        ctx.bus.publish(signals.EVENT_SHOWN, event_id=event.id, title=event.title)

    def available_choices(self, event: GameEvent) -> list[EventChoice]:
        """Choices whose requirements hold and whose money cost is affordable."""
        available = []
        for choice in event.choices:
            if not self.evaluate_conditions(choice.requirements):
                continue
            money = sum(c.amount for c in choice.costs if c.type == "money")
            if money > 0 and not self._ctx.finance.can_afford(money):
                continue
            available.append(choice)
        return available

    # --- Outcomes ---

    def process_outcome(
        self, outcome: EventOutcome, date: GameDate, event_id: str | None = None
    ) -> bool:
        return outcomes.apply_outcome(self._ctx, outcome, date, event_id)

    def _apply_costs(self, event: GameEvent, choice: EventChoice, date: GameDate) -> None:
        ctx = self._ctx
        for cost in choice.costs:
            if cost.type == "money":
                ctx.finance.add_expense(
                    cost.amount, cost.description or f"{event.title}: {choice.text}", date, "event",
                )
            elif cost.type == "stress":
                ctx.character.modify_stat("stress", cost.amount)
            elif cost.type == "stat" and cost.target is not None:
                if stat_field(cost.target) is not None:
                    ctx.character.modify_stat(cost.target, -cost.amount)
            elif cost.type == "relationship" and cost.target is not None:
                ctx.relationships.modify_relationship(
                    cost.target, -cost.amount, f"Cost of {choice.id}", date,
                )

    def _resolve(self, event: GameEvent, choice: EventChoice) -> CompletedEvent:
        ctx = self._ctx
        date = ctx.clock.today
        self._apply_costs(event, choice, date)
        applied = [o for o in choice.outcomes if self.process_outcome(o, date, event.id)]
        record = ctx.events.complete_event(event.id, choice.id, date, applied)
        ctx.clock.remove_deadline(event.id)
        ctx.events.show_outcome(choice.outcome_text)
        ctx.bus.publish(
            signals.OUTCOME_SHOWN,
            event_id=event.id, choice_id=choice.id, text=choice.outcome_text,
        )

        priority = ctx.config.pacing.chained_event_priority
        if choice.next_event_id is not None:
            if ctx.catalog.get_event(choice.next_event_id) is None:
                logger.warning("choice %r chains to unknown event %r",
                               choice.id, choice.next_event_id)
            else:
                ctx.events.queue_event(choice.next_event_id, priority)
        for chain in list(ctx.events.chains):
            if chain.event_ids[chain.position] == event.id:
                following = ctx.events.advance_chain(chain.chain_id)
                if following is not None:
                    ctx.events.queue_event(following, priority)
        return record

    def select_choice(self, choice_id: str) -> CompletedEvent | None:
        """Resolve *choice_id* on the shown event. None if nothing applies."""
        event = self._ctx.events.current_event
        if event is None or self._ctx.events.showing_outcome:
            return None
        choice = event.choice(choice_id)
        if choice is None or choice not in self.available_choices(event):
            return None
        return self._resolve(event, choice)

    def handle_choice_selection(self, event_id: str, choice_id: str) -> CompletedEvent | None:
        event = self._ctx.catalog.get_event(event_id)
        if event is None:
            return None
        choice = event.choice(choice_id)
        if choice is None:
            return None
        return self._resolve(event, choice)

    def dismiss(self) -> None:
        self._ctx.events.hide_outcome()
        self._ctx.events.clear_current_event()

    def start_chain(self, chain: EventChain) -> bool:
        first = self._ctx.events.start_chain(chain)
        if first is None:
            return False
        self._ctx.events.queue_event(first, self._ctx.config.pacing.chained_event_priority)
        return True

    # --- Foreshadowing ---

    def check_for_upcoming_events(self) -> str | None:
        """Advisory hint for the next few months. Never affects selection."""
        ctx = self._ctx
        pacing = ctx.config.pacing
        upcoming = ctx.events.upcoming(
            ctx.clock.today, pacing.foreshadow_min_months, pacing.foreshadow_max_months,
        )
        if upcoming:
            event = ctx.catalog.get_event(upcoming[0].event_id)
            if event is not None and event.hint:
                return event.hint
            return FORESHADOWING_MESSAGES["event"]
        if ctx.clock.deadline_pressure > pacing.hint_pressure_threshold:
            return FORESHADOWING_MESSAGES["deadline"]
        if any("important" in e.tags for e in self.eligible_events()):
            if ctx.rng.random() < pacing.generic_hint_chance:
                return FORESHADOWING_MESSAGES["important"]
        return None

    # --- Endings ---

    def check_endings(self) -> Ending | None:
        """End the game on the first ending whose trigger holds."""
        ctx = self._ctx
        if ctx.session.is_over:
            return None
        for ending in ctx.catalog.endings:
            by_conditions = bool(ending.trigger_conditions) and self.evaluate_conditions(
                ending.trigger_conditions
            )
            by_year = ending.trigger_year is not None and ctx.clock.today.year >= ending.trigger_year
            if by_conditions or by_year:
                outcomes.end_game(ctx, ending.id)
                return ending
        return None
