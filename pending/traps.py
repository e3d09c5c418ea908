"""TrapMonitor — springs policy traps whose triggers hold at month end."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pending import conditions, outcomes

if TYPE_CHECKING:
    from pending.content import PolicyTrap
    from pending.context import GameContext
    from pending.dates import GameDate

logger = logging.getLogger(__name__)


class TrapMonitor:
    """Each trap springs at most once through ``check``.

    A trap springs when every trigger holds and no avoidance condition
    holds. ``trigger`` bypasses both tests.
    """

    def __init__(self, ctx: GameContext) -> None:
        self._ctx = ctx

    @property
    def fired(self) -> list[str]:
        return list(self._ctx.session.fired_trap_ids)

    def is_avoided(self, trap: PolicyTrap) -> bool:
        return any(conditions.evaluate_condition(self._ctx, c) for c in trap.avoidance_conditions)

    def is_triggered(self, trap: PolicyTrap) -> bool:
        return bool(trap.triggers) and conditions.evaluate_conditions(self._ctx, trap.triggers)

    def check(self, date: GameDate) -> list[PolicyTrap]:
        sprung = []
        for trap in self._ctx.catalog.traps:
            if trap.id in self._ctx.session.fired_trap_ids:
                continue
            if not self.is_triggered(trap) or self.is_avoided(trap):
                continue
            logger.debug("trap %r sprung on %s", trap.id, date)
            outcomes.fire_trap(self._ctx, trap, date)
            sprung.append(trap)
        return sprung

    def trigger(self, trap_id: str, date: GameDate) -> bool:
        trap = self._ctx.catalog.get_trap(trap_id)
        if trap is None:
            logger.warning("cannot trigger unknown trap %r", trap_id)
            return False
        outcomes.fire_trap(self._ctx, trap, date)
        return True
