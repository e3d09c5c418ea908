"""Outcome application: one handler per outcome type, dispatched by tag.

Handlers return whether they changed state. Content problems (missing
targets, wrong value types) are logged and treated as no-ops so a bad
record never stops the simulation.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from pending import signals
from pending.applications import FORM_DATA
from pending.character import Document, stat_field
from pending.dates import GameDate

if TYPE_CHECKING:
    from pending.content import EventOutcome, PolicyTrap
    from pending.context import GameContext

logger = logging.getLogger(__name__)

OUTCOME_TYPES: tuple[str, ...] = (
    "status-change",
    "flag-set",
    "flag-increment",
    "finance-add",
    "finance-subtract",
    "relationship-change",
    "stat-change",
    "trigger-event",
    "queue-event",
    "file-application",
    "application-decision",
    "trigger-trap",
    "add-document",
    "remove-document",
    "end-game",
)

_Handler = Callable[["GameContext", "EventOutcome", GameDate, "str | None"], bool]


def _number(outcome: EventOutcome) -> float | None:
    value = outcome.value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("%s outcome on %r needs a numeric value, got %r",
                       outcome.type, outcome.target, value)
        return None
    return value


# --- Character ---

def _status_change(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    new_status = outcome.value if isinstance(outcome.value, str) else outcome.target
    if not new_status:
        logger.warning("status-change outcome without a status")
        return False
    reason = f"event {event_id}" if event_id else "outcome"
    return ctx.character.change_status(new_status, reason, date, event_id) is not None


def _flag_set(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    ctx.character.set_flag(outcome.target, True if outcome.value is None else outcome.value)
    return True


def _flag_increment(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    amount = 1 if outcome.value is None else _number(outcome)
    if amount is None:
        return False
    ctx.character.increment_flag(outcome.target, amount)
    return True


def _stat_change(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    if stat_field(outcome.target) is None:
        logger.warning("stat-change on unknown stat %r", outcome.target)
        return False
    delta = _number(outcome)
    if delta is None:
        return False
    ctx.character.modify_stat(outcome.target, delta)
    return True


def _add_document(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    if ctx.character.has_document(outcome.target):
        return False
    name = outcome.value if isinstance(outcome.value, str) else outcome.target
    ctx.character.add_document(Document(id=outcome.target, name=name))
    return True


def _remove_document(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    return ctx.character.remove_document(outcome.target)


# --- Finance & relationships ---

def _finance_add(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    amount = _number(outcome)
    if amount is None:
        return False
    ctx.finance.add_income(amount, outcome.target or "Event income", date)
    return True


def _finance_subtract(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    amount = _number(outcome)
    if amount is None:
        return False
    ctx.finance.add_expense(amount, outcome.target or "Event expense", date)
    return True


def _relationship_change(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    delta = _number(outcome)
    if delta is None:
        return False
    change = ctx.relationships.modify_relationship(outcome.target, delta, "Event outcome", date)
    if change is None:
        logger.warning("relationship-change on unknown relationship %r", outcome.target)
        return False
    return True


# --- Event flow ---

def _trigger_event(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    if ctx.catalog.get_event(outcome.target) is None:
        logger.warning("trigger-event on unknown event %r", outcome.target)
        return False
    ctx.events.queue_event(outcome.target, ctx.config.pacing.chained_event_priority)
    return True


def _queue_event(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    if ctx.catalog.get_event(outcome.target) is None:
        logger.warning("queue-event on unknown event %r", outcome.target)
        return False
    delay = outcome.delay_months or 0
    if delay > 0:
        ctx.events.schedule_event(outcome.target, date.add_months(delay))
    else:
        ctx.events.queue_event(outcome.target)
    return True


def _end_game(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    end_game(ctx, outcome.target or None)
    return True


# --- Applications ---

def _file_application(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    info = FORM_DATA.get(outcome.target)
    if info is None:
        logger.warning("file-application for unknown form %r", outcome.target)
        return False
    ctx.applications.file(outcome.target, date, ctx.rng)
    if info.filing_fee > 0:
        ctx.finance.add_pending_fee(
            "filing", info.filing_fee, f"{info.name} filing fee", form_id=outcome.target,
        )
    if info.biometrics_fee > 0:
        ctx.finance.add_pending_fee(
            "biometrics", info.biometrics_fee, f"{info.name} biometrics fee", form_id=outcome.target,
        )
    return True


def _application_decision(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    active = ctx.applications.active_for_form(outcome.target)
    if not active:
        logger.warning("application-decision with no active %r application", outcome.target)
        return False
    decision = outcome.value if isinstance(outcome.value, str) else "approved"
    ctx.applications.decide(active[-1].id, decision, "Event outcome", date)
    return True


# --- Traps ---

def _trigger_trap(ctx: GameContext, outcome: EventOutcome, date: GameDate, event_id: str | None) -> bool:
    trap = ctx.catalog.get_trap(outcome.target)
    if trap is None:
        logger.warning("trigger-trap on unknown trap %r", outcome.target)
        return False
    fire_trap(ctx, trap, date)
    return True


_HANDLERS: dict[str, _Handler] = {
    "status-change": _status_change,
    "flag-set": _flag_set,
    "flag-increment": _flag_increment,
    "finance-add": _finance_add,
    "finance-subtract": _finance_subtract,
    "relationship-change": _relationship_change,
    "stat-change": _stat_change,
    "trigger-event": _trigger_event,
    "queue-event": _queue_event,
    "file-application": _file_application,
    "application-decision": _application_decision,
    "trigger-trap": _trigger_trap,
    "add-document": _add_document,
    "remove-document": _remove_document,
    "end-game": _end_game,
}

_uncovered = set(OUTCOME_TYPES) ^ set(_HANDLERS)
if _uncovered:
    raise RuntimeError(f"outcome handler table out of sync: {sorted(_uncovered)}")


def apply_outcome(
    ctx: GameContext,
    outcome: EventOutcome,
    date: GameDate,
    event_id: str | None = None,
) -> bool:
    """Roll the probability gate, then dispatch. Returns whether it applied."""
    if outcome.probability is not None and ctx.rng.random() > outcome.probability:
        return False
    handler = _HANDLERS.get(outcome.type)
    if handler is None:
        logger.warning("unknown outcome type %r", outcome.type)
        return False
    return handler(ctx, outcome, date, event_id)


def fire_trap(ctx: GameContext, trap: PolicyTrap, date: GameDate) -> list[EventOutcome]:
    """Record *trap* as sprung and apply its consequences.

    Consequences cannot spring further traps. Returns the consequences
    that applied.
    """
    if trap.id not in ctx.session.fired_trap_ids:
        ctx.session.fired_trap_ids.append(trap.id)
    applied = []
    for consequence in trap.consequences:
        if consequence.type == "trigger-trap":
            logger.warning("trap %r cannot trigger trap %r", trap.id, consequence.target)
            continue
        if apply_outcome(ctx, consequence, date):
            applied.append(consequence)
    ctx.bus.publish(
        signals.TRAP_TRIGGERED, trap_id=trap.id, name=trap.name, severity=trap.severity,
    )
    return applied


def end_game(ctx: GameContext, ending_id: str | None) -> None:
    """Move the session to the ending screen and stop time."""
    if ctx.session.is_over:
        return
    ctx.session.screen = "ending"
    ctx.session.ending_id = ending_id
    ctx.clock.pause()
    ctx.bus.publish(signals.GAME_ENDED, ending_id=ending_id)
