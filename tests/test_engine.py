"""Tests for pending.engine — eligibility, selection and choice resolution."""
from __future__ import annotations

import random
from dataclasses import dataclass

import pytest

from pending.catalog import ContentCatalog
from pending.clock import FORESHADOWING_MESSAGES, DeadlineTracker
from pending.content import CharacterProfile, EventChain, Ending, GameEvent
from pending.dates import GameDate
from pending.engine import weighted_choice
from pending.game import Game

PROFILE = CharacterProfile.from_dict({
    "id": "maria",
    "name": "Maria",
    "initialStatus": "undocumented",
    "initialStats": {"stress": 20},
    "initialFinances": {"bankBalance": 1000, "monthlyIncome": 2000, "monthlyExpenses": 1200},
    "initialRelationships": [{"id": "ana", "name": "Ana", "type": "sibling", "level": 50}],
})


def _event(event_id: str, **extra) -> GameEvent:
    data = {
        "id": event_id,
        "title": event_id.title(),
        "timing": {"type": "random"},
        "choices": [{"id": "ok", "text": "OK", "outcomes": []}],
    }
    data.update(extra)
    return GameEvent.from_dict(data)


RENT = _event(
    "rent-hike",
    choices=[
        {
            "id": "pay",
            "text": "Pay the increase",
            "outcomeText": "You pay.",
            "outcomes": [
                {"type": "finance-subtract", "target": "Rent increase", "value": 500},
                {"type": "stat-change", "target": "stress", "value": 10},
            ],
        },
        {
            "id": "lawyer",
            "text": "Hire a lawyer",
            "costs": [{"type": "money", "amount": 5000}],
            "outcomes": [],
        },
        {
            "id": "documented-only",
            "text": "Call the tenant union",
            "requirements": [{"type": "status", "operator": "!=", "value": "undocumented"}],
            "outcomes": [],
        },
        {
            "id": "move",
            "text": "Move in with Ana",
            "nextEventId": "moving-day",
            "costs": [
                {"type": "stress", "amount": 5},
                {"type": "relationship", "target": "ana", "amount": 10},
                {"type": "stat", "target": "health", "amount": 3},
            ],
            "outcomes": [],
        },
    ],
)
MOVING = _event("moving-day", timing={"type": "triggered"})


def _setup(*events: GameEvent, endings: tuple[Ending, ...] = (), seed: int = 3) -> Game:
    catalog = ContentCatalog(events=events or (RENT, MOVING), endings=endings, profiles=[PROFILE])
    game = Game(catalog, seed=seed)
    game.new_game(PROFILE)
    return game


@dataclass
class _Weighted:
    name: str
    weight: float


class TestWeightedChoice:
    def test_three_to_one(self) -> None:
        rng = random.Random(1234)
        items = [_Weighted("heavy", 3), _Weighted("light", 1)]
        trials = 10_000
        heavy = sum(1 for _ in range(trials) if weighted_choice(items, rng).name == "heavy")
        assert heavy / trials == pytest.approx(0.75, abs=0.02)

    def test_all_zero_weights_pick_uniformly(self) -> None:
        rng = random.Random(9)
        items = [_Weighted("a", 0), _Weighted("b", 0)]
        picks = {weighted_choice(items, rng).name for _ in range(100)}
        assert picks == {"a", "b"}

    def test_zero_weight_never_chosen_alongside_positive(self) -> None:
        rng = random.Random(9)
        items = [_Weighted("never", 0), _Weighted("always", 2)]
        assert {weighted_choice(items, rng).name for _ in range(200)} == {"always"}

    def test_empty(self) -> None:
        assert weighted_choice([], random.Random(0)) is None


class TestEligibility:
    def test_completed_event_never_eligible_again(self) -> None:
        game = _setup()
        assert game.engine.is_event_eligible(RENT)
        game.ctx.events.complete_event(RENT.id, "pay", game.ctx.today, [])
        for _ in range(5):
            assert not game.engine.is_event_eligible(RENT)

    def test_repeatable_stays_eligible(self) -> None:
        chore = _event("chore", isRepeatable=True)
        game = _setup(chore)
        game.ctx.events.complete_event("chore", "ok", game.ctx.today, [])
        assert game.engine.is_event_eligible(chore)

    def test_status_filters(self) -> None:
        game = _setup()
        assert not game.engine.is_event_eligible(_event("x", requiredStatuses=["daca"]))
        assert not game.engine.is_event_eligible(_event("y", excludedStatuses=["undocumented"]))
        assert game.engine.is_event_eligible(_event("z", requiredStatuses=["undocumented"]))

    def test_character_filter(self) -> None:
        game = _setup()
        assert not game.engine.is_event_eligible(_event("x", characterIds=["someone-else"]))
        assert game.engine.is_event_eligible(_event("y", characterIds=["maria"]))

    def test_random_window(self) -> None:
        game = _setup()
        late = _event("late", timing={"type": "random", "earliestMonth": 2, "latestMonth": 3})
        assert not game.engine.is_event_eligible(late)
        game.ctx.clock.advance(62)
        assert game.engine.is_event_eligible(late)
        game.ctx.clock.advance(70)
        assert not game.engine.is_event_eligible(late)

    def test_deterministic(self) -> None:
        game = _setup()
        gated = _event("gated", conditions=[{"type": "finance", "target": "balance",
                                             "operator": ">", "value": 500}])
        state = game.ctx.rng.getstate()
        assert all(game.engine.is_event_eligible(gated) for _ in range(10))
        assert game.ctx.rng.getstate() == state


class TestSelection:
    def test_queued_before_random(self) -> None:
        game = _setup()
        game.ctx.events.queue_event("moving-day")
        assert game.engine.select_next_event() is MOVING

    def test_ineligible_queued_entry_dropped(self) -> None:
        game = _setup()
        game.ctx.events.complete_event("moving-day", "ok", game.ctx.today, [])
        game.ctx.events.queue_event("moving-day")
        game.ctx.events.queue_event("ghost")
        assert game.engine.select_next_event() is RENT
        assert game.ctx.events.queue == []

    def test_due_scheduled_before_random(self) -> None:
        game = _setup()
        game.ctx.events.schedule_event("moving-day", game.ctx.today)
        assert game.engine.has_pending_event()
        assert game.engine.select_next_event() is MOVING

    def test_random_pool_excludes_triggered(self) -> None:
        game = _setup()
        picks = {game.engine.select_next_event().id for _ in range(30)}
        assert picks == {"rent-hike"}

    def test_nothing_eligible(self) -> None:
        game = _setup(MOVING)
        assert game.engine.select_next_event() is None

    def test_event_chance_ramps(self) -> None:
        game = _setup()
        assert game.engine.event_chance() == pytest.approx(0.1)
        game.ctx.clock.days_since_last_event = 15
        assert game.engine.event_chance() == pytest.approx(0.55)
        game.ctx.clock.days_since_last_event = 30
        assert game.engine.should_attempt_event()


class TestChoices:
    def test_available_choices_filter(self) -> None:
        game = _setup()
        ids = [c.id for c in game.engine.available_choices(RENT)]
        assert ids == ["pay", "move"]

    def test_outcomes_and_completion(self) -> None:
        game = _setup()
        game.engine.show_event(RENT)
        record = game.select_choice("pay")
        ctx = game.ctx
        assert record is not None
        assert ctx.finance.bank_balance == 500
        assert ctx.character.stats.stress == 30
        assert len(ctx.events.history) == 1
        assert len(record.outcomes) == 2
        assert ctx.events.showing_outcome
        assert ctx.events.outcome_text == "You pay."

    def test_reselection_refused_while_outcome_showing(self) -> None:
        game = _setup()
        game.engine.show_event(RENT)
        game.select_choice("pay")
        assert game.select_choice("pay") is None
        assert len(game.ctx.events.history) == 1

    def test_unavailable_choice_refused(self) -> None:
        game = _setup()
        game.engine.show_event(RENT)
        assert game.select_choice("lawyer") is None
        assert game.select_choice("nope") is None
        assert game.ctx.events.history == []

    def test_nothing_shown(self) -> None:
        assert _setup().select_choice("pay") is None

    def test_costs_and_next_event(self) -> None:
        game = _setup()
        game.engine.show_event(RENT)
        game.select_choice("move")
        ctx = game.ctx
        assert ctx.character.stats.stress == 25
        assert ctx.character.stats.health == 77
        assert ctx.relationships.get("ana").level == 40
        assert ctx.events.queue[0].event_id == "moving-day"

    def test_dismiss_clears_display(self) -> None:
        game = _setup()
        game.engine.show_event(RENT)
        game.select_choice("pay")
        game.engine.dismiss()
        assert game.ctx.events.current_event is None
        assert not game.ctx.events.showing_outcome

    def test_handle_choice_selection_by_id(self) -> None:
        game = _setup()
        record = game.engine.handle_choice_selection("rent-hike", "pay")
        assert record.choice_id == "pay"
        assert game.engine.handle_choice_selection("ghost", "pay") is None

    def test_resolving_clears_matching_deadline(self) -> None:
        game = _setup()
        game.ctx.clock.add_deadline(DeadlineTracker("rent-hike", "Rent", GameDate(2024, 1, 5)))
        game.engine.show_event(RENT)
        game.select_choice("pay")
        assert game.ctx.clock.deadlines == []


class TestChains:
    def test_chain_advances_on_completion(self) -> None:
        game = _setup()
        chain = EventChain(id="move-chain", name="Move", event_ids=("moving-day", "rent-hike"))
        assert game.engine.start_chain(chain)
        assert not game.engine.start_chain(chain)
        assert game.ctx.events.queue[0].event_id == "moving-day"

        game.engine.show_event(MOVING)
        game.select_choice("ok")
        assert game.ctx.events.queue[0].event_id == "rent-hike"
        assert game.ctx.events.is_chain_active("move-chain")

        game.engine.dismiss()
        game.engine.show_event(RENT)
        game.select_choice("pay")
        assert not game.ctx.events.is_chain_active("move-chain")


class TestForeshadowing:
    def test_upcoming_scheduled_hint(self) -> None:
        hinted = _event("hearing", timing={"type": "triggered"}, hint="A letter from court...")
        game = _setup(hinted)
        game.ctx.events.schedule_event("hearing", GameDate(2024, 3, 1))
        assert game.engine.check_for_upcoming_events() == "A letter from court..."

    def test_generic_event_message(self) -> None:
        game = _setup()
        game.ctx.events.schedule_event("moving-day", GameDate(2024, 2, 1))
        assert game.engine.check_for_upcoming_events() == FORESHADOWING_MESSAGES["event"]

    def test_deadline_message(self) -> None:
        game = _setup(MOVING)
        game.ctx.clock.deadline_pressure = 90
        assert game.engine.check_for_upcoming_events() == FORESHADOWING_MESSAGES["deadline"]

    def test_quiet(self) -> None:
        assert _setup(MOVING).engine.check_for_upcoming_events() is None


class TestEndings:
    def test_condition_ending(self) -> None:
        broke = Ending.from_dict({
            "id": "broke", "name": "Broke", "type": "financial",
            "triggerConditions": [{"type": "finance", "target": "balance",
                                   "operator": "<", "value": 0}],
        })
        game = _setup(endings=(broke,))
        assert game.engine.check_endings() is None
        game.ctx.finance.add_expense(2000, "Hospital", game.ctx.today)
        assert game.engine.check_endings() is broke
        assert game.ctx.session.ending_id == "broke"
        assert game.ctx.session.is_over

    def test_year_ending(self) -> None:
        limit = Ending(id="time-up", name="Time", type="timeout", trigger_year=2025)
        game = _setup(endings=(limit,))
        assert game.engine.check_endings() is None
        game.ctx.clock.advance(366)
        assert game.engine.check_endings() is limit
