"""Tests for pending.outcomes — per-type handlers, probability gate and traps."""
from __future__ import annotations

from pending import signals
from pending.catalog import ContentCatalog
from pending.content import CharacterProfile, EventOutcome, GameEvent, PolicyTrap
from pending.context import GameContext
from pending.dates import GameDate
from pending.game import Game
from pending.outcomes import OUTCOME_TYPES, apply_outcome, end_game, fire_trap

TODAY = GameDate(2024, 2, 10)

PROFILE = CharacterProfile.from_dict({
    "id": "maria",
    "name": "Maria",
    "initialStatus": "undocumented",
    "initialFinances": {"bankBalance": 1000, "monthlyIncome": 2000, "monthlyExpenses": 1200},
    "initialRelationships": [{"id": "ana", "name": "Ana", "type": "sibling", "level": 50}],
})

FOLLOW_UP = GameEvent.from_dict({
    "id": "follow-up",
    "timing": {"type": "triggered"},
    "choices": [{"id": "ok", "outcomes": []}],
})

AUDIT = PolicyTrap.from_dict({
    "id": "audit",
    "name": "Tax Audit",
    "triggers": [{"type": "flag", "target": "cash_job", "operator": "exists"}],
    "consequences": [
        {"type": "finance-subtract", "target": "Back taxes", "value": 300},
        {"type": "trigger-trap", "target": "audit"},
    ],
})


def _setup() -> GameContext:
    catalog = ContentCatalog(events=[FOLLOW_UP], traps=[AUDIT], profiles=[PROFILE])
    game = Game(catalog, seed=5)
    game.new_game(PROFILE)
    return game.ctx


def _apply(ctx: GameContext, type: str, target: str = "", value=None, **kw) -> bool:
    return apply_outcome(ctx, EventOutcome(type, target, value, **kw), TODAY, "evt-1")


class TestCharacterOutcomes:
    def test_status_change(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "status-change", value="daca")
        assert ctx.character.status_type == "daca"
        assert ctx.character.status_history[-1].event_id == "evt-1"

    def test_flags(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "flag-set", "met_lawyer")
        assert ctx.character.get_flag("met_lawyer") is True
        assert _apply(ctx, "flag-increment", "missed_checkins", 2)
        assert _apply(ctx, "flag-increment", "missed_checkins")
        assert ctx.character.get_flag("missed_checkins") == 3

    def test_stat_change_clamps(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "stat-change", "stress", 500)
        assert ctx.character.stats.stress == 100

    def test_stat_change_unknown_stat(self) -> None:
        ctx = _setup()
        assert not _apply(ctx, "stat-change", "charisma", 5)

    def test_documents(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "add-document", "passport", "Passport")
        assert not _apply(ctx, "add-document", "passport")
        assert ctx.character.documents[0].name == "Passport"
        assert _apply(ctx, "remove-document", "passport")
        assert not ctx.character.has_document("passport")


class TestFinanceOutcomes:
    def test_add_and_subtract(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "finance-add", "Tips", 250)
        assert _apply(ctx, "finance-subtract", "Rent", 1500)
        assert ctx.finance.bank_balance == -250

    def test_non_numeric_value_is_a_no_op(self) -> None:
        ctx = _setup()
        assert not _apply(ctx, "finance-add", "Tips", "lots")
        assert not _apply(ctx, "finance-add", "Tips", True)
        assert ctx.finance.bank_balance == 1000

    def test_relationship_change(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "relationship-change", "ana", 80)
        assert ctx.relationships.get("ana").level == 100
        assert len(ctx.relationships.changes) == 1
        assert not _apply(ctx, "relationship-change", "nobody", 10)


class TestEventFlowOutcomes:
    def test_trigger_event_queues_at_chained_priority(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "trigger-event", "follow-up")
        assert ctx.events.queue[0].event_id == "follow-up"
        assert ctx.events.queue[0].priority == ctx.config.pacing.chained_event_priority

    def test_queue_event_with_delay_schedules(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "queue-event", "follow-up", delay_months=3)
        assert ctx.events.scheduled[-1].date == GameDate(2024, 5, 10)
        assert ctx.events.queue == []

    def test_unknown_event_target(self) -> None:
        ctx = _setup()
        assert not _apply(ctx, "trigger-event", "nope")
        assert not _apply(ctx, "queue-event", "nope")

    def test_end_game(self) -> None:
        ctx = _setup()
        ctx.clock.resume()
        assert _apply(ctx, "end-game", "deported")
        assert ctx.session.is_over
        assert ctx.session.ending_id == "deported"
        assert ctx.clock.is_paused


class TestApplicationOutcomes:
    def test_file_application_adds_fees(self) -> None:
        ctx = _setup()
        assert _apply(ctx, "file-application", "i-485")
        assert ctx.applications.applications[0].filed_date == TODAY
        fees = {(f.type, f.amount) for f in ctx.finance.pending_fees}
        assert fees == {("filing", 1225), ("biometrics", 85)}

    def test_unknown_form(self) -> None:
        ctx = _setup()
        assert not _apply(ctx, "file-application", "i-999")
        assert ctx.applications.applications == []

    def test_decision_targets_latest_active(self) -> None:
        ctx = _setup()
        _apply(ctx, "file-application", "i-765")
        _apply(ctx, "file-application", "i-765")
        assert _apply(ctx, "application-decision", "i-765", "denied")
        statuses = [a.status for a in ctx.applications.applications]
        assert statuses == ["pending", "denied"]

    def test_decision_without_application(self) -> None:
        assert not _apply(_setup(), "application-decision", "i-130", "approved")


class TestProbabilityGate:
    def test_zero_probability_never_applies(self) -> None:
        ctx = _setup()
        for _ in range(50):
            assert not _apply(ctx, "flag-increment", "n", probability=0.0)
        assert not ctx.character.has_flag("n")

    def test_certain_probability_always_applies(self) -> None:
        ctx = _setup()
        for _ in range(50):
            assert _apply(ctx, "flag-increment", "n", probability=1.0)
        assert ctx.character.get_flag("n") == 50

    def test_unknown_type(self) -> None:
        assert not _apply(_setup(), "summon-lawyer", "x")

    def test_every_type_has_a_handler(self) -> None:
        assert len(OUTCOME_TYPES) == 15


class TestTraps:
    def test_fire_trap_skips_nested_traps(self) -> None:
        ctx = _setup()
        applied = fire_trap(ctx, AUDIT, TODAY)
        assert [o.type for o in applied] == ["finance-subtract"]
        assert ctx.finance.bank_balance == 700
        assert ctx.session.fired_trap_ids == ["audit"]

    def test_trigger_trap_outcome_publishes(self) -> None:
        ctx = _setup()
        seen: list[str] = []
        ctx.bus.subscribe(signals.TRAP_TRIGGERED, lambda name, data: seen.append(data["trap_id"]))
        assert _apply(ctx, "trigger-trap", "audit")
        ctx.bus.flush()
        assert seen == ["audit"]

    def test_end_game_only_once(self) -> None:
        ctx = _setup()
        end_game(ctx, "first")
        end_game(ctx, "second")
        assert ctx.session.ending_id == "first"
