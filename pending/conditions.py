"""Condition evaluation over live game state.

Each condition type has a resolver that reads one value from the context;
each operator compares that value against the condition's literal. Unknown
types or operators, and comparisons between incompatible values, evaluate
to ``False``. Evaluation never raises and never mutates state.

A missing relationship, an unknown stat or an unknown finance field resolves
to ``None`` rather than 0, so every comparison against it is ``False`` and
only ``not-exists`` holds. Content that wants "no relationship yet" must
test ``not-exists`` instead of ``<= 0``.
"""
from __future__ import annotations

import logging
import operator
from typing import TYPE_CHECKING, Any, Callable

from pending.character import stat_field

if TYPE_CHECKING:
    from pending.content import EventCondition
    from pending.context import GameContext

logger = logging.getLogger(__name__)

_Resolver = Callable[["GameContext", str], Any]
_Operator = Callable[[Any, Any], bool]


# --- Resolvers ---

def _status(ctx: GameContext, target: str) -> Any:
    return ctx.character.status_type


def _flag(ctx: GameContext, target: str) -> Any:
    return ctx.character.get_flag(target)


_FINANCE_FIELDS: dict[str, Callable[[GameContext], float]] = {
    "balance": lambda ctx: ctx.finance.bank_balance,
    "debt": lambda ctx: ctx.finance.total_debt,
    "income": lambda ctx: ctx.finance.monthly_income,
    "expenses": lambda ctx: ctx.finance.total_recurring(),
}


def _finance(ctx: GameContext, target: str) -> Any:
    getter = _FINANCE_FIELDS.get(target)
    return getter(ctx) if getter is not None else None


def _relationship(ctx: GameContext, target: str) -> Any:
    rel = ctx.relationships.get(target)
    return rel.level if rel is not None else None


def _stat(ctx: GameContext, target: str) -> Any:
    attr = stat_field(target)
    return getattr(ctx.character.stats, attr) if attr is not None else None


_DATE_FIELDS: dict[str, Callable[[GameContext], int]] = {
    "day": lambda ctx: ctx.clock.today.day,
    "month": lambda ctx: ctx.clock.today.month,
    "year": lambda ctx: ctx.clock.today.year,
    "months_elapsed": lambda ctx: ctx.clock.months_elapsed,
    "years_elapsed": lambda ctx: ctx.clock.years_elapsed,
}


def _date(ctx: GameContext, target: str) -> Any:
    getter = _DATE_FIELDS.get(target)
    return getter(ctx) if getter is not None else None


def _application(ctx: GameContext, target: str) -> Any:
    """Status of the most recently filed application for form *target*."""
    filed = [a for a in ctx.applications.applications if a.form_id == target]
    return filed[-1].status if filed else None


def _character(ctx: GameContext, target: str) -> Any:
    return ctx.session.character_id


RESOLVERS: dict[str, _Resolver] = {
    "status": _status,
    "flag": _flag,
    "finance": _finance,
    "relationship": _relationship,
    "stat": _stat,
    "date": _date,
    "application": _application,
    "character": _character,
}


# --- Operators ---

def _member(value: Any, options: Any) -> bool:
    return isinstance(options, (list, tuple)) and value in options


def _not_member(value: Any, options: Any) -> bool:
    return isinstance(options, (list, tuple)) and value not in options


OPERATORS: dict[str, _Operator] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "in": _member,
    "not-in": _not_member,
    "exists": lambda value, _: value is not None,
    "not-exists": lambda value, _: value is None,
}

_ORDERING = frozenset({">", "<", ">=", "<="})


def evaluate_condition(ctx: GameContext, condition: EventCondition) -> bool:
    resolver = RESOLVERS.get(condition.type)
    if resolver is None:
        logger.warning("unknown condition type %r", condition.type)
        return False
    compare = OPERATORS.get(condition.operator)
    if compare is None:
        logger.warning("unknown condition operator %r", condition.operator)
        return False

    value = resolver(ctx, condition.target)
    if condition.operator in _ORDERING and (value is None or condition.value is None):
        return False
    try:
        return bool(compare(value, condition.value))
    except TypeError:
        logger.warning(
            "cannot compare %s:%s value %r %s %r",
            condition.type, condition.target, value, condition.operator, condition.value,
        )
        return False


def evaluate_conditions(ctx: GameContext, conditions: tuple[EventCondition, ...] | list[EventCondition]) -> bool:
    """True when every condition holds. An empty list holds."""
    return all(evaluate_condition(ctx, c) for c in conditions)
