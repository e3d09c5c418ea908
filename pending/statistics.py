"""End-of-game statistics aggregated from the state owners."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pending.context import GameContext


@dataclass(frozen=True)
class GameStatistics:
    months_played: int
    years_played: int
    final_status: str | None
    status_changes: int
    total_earned: float
    total_spent: float
    immigration_costs: float
    legal_fees: float
    remittances: float
    peak_savings: float
    lowest_balance: float
    applications_filed: int
    applications_approved: int
    applications_denied: int
    total_waiting_months: int
    events_experienced: int
    decisions_made: int
    traps_triggered: int
    relationships_formed: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def collect_statistics(ctx: GameContext) -> GameStatistics:
    finance = ctx.finance
    today = ctx.clock.today
    amounts = [t.amount for t in finance.transactions]

    waiting = 0
    for app in ctx.applications.applications:
        end = app.actual_decision_date if app.actual_decision_date is not None else today
        waiting += max(app.filed_date.months_until(end), 0)

    return GameStatistics(
        months_played=ctx.clock.months_elapsed,
        years_played=ctx.clock.months_elapsed // 12,
        final_status=ctx.character.status_type,
        status_changes=len(ctx.character.status_history),
        total_earned=sum(a for a in amounts if a > 0),
        total_spent=-sum(a for a in amounts if a < 0),
        immigration_costs=-sum(
            t.amount for t in finance.transactions if t.type == "immigration-fee"
        ),
        legal_fees=-sum(t.amount for t in finance.transactions if t.type == "legal-fee"),
        remittances=finance.total_remittances_sent,
        peak_savings=finance.peak_balance,
        lowest_balance=finance.lowest_balance,
        applications_filed=len(ctx.applications.applications),
        applications_approved=len(ctx.applications.with_status("approved")),
        applications_denied=len(ctx.applications.with_status("denied")),
        total_waiting_months=waiting,
        events_experienced=len(ctx.events.completed_ids),
        decisions_made=len(ctx.events.history),
        traps_triggered=len(ctx.session.fired_trap_ids),
        relationships_formed=len(ctx.relationships.relationships),
    )
