"""Content records consumed by the engine. Immutable, loaded from plain dicts.

Loaders accept the camelCase keys used by the JSON content tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pending.character import CharacterStats
from pending.dates import GameDate, date_or_none
from pending.relationships import RelationshipData
from pending.types import ConditionValue, ContentError


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ContentError(f"{kind} record missing required key {key!r}") from None


def _freeze(value: Any) -> Any:
    return tuple(value) if isinstance(value, list) else value


@dataclass(frozen=True)
class EventCondition:
    type: str
    target: str
    operator: str
    value: ConditionValue | tuple | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventCondition:
        return cls(
            type=_require(data, "type", "condition"),
            target=data.get("target", ""),
            operator=_require(data, "operator", "condition"),
            value=_freeze(data.get("value")),
        )


@dataclass(frozen=True)
class EventOutcome:
    type: str
    target: str
    value: str | int | float | bool | None = None
    probability: float | None = None
    delay_months: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventOutcome:
        return cls(
            type=_require(data, "type", "outcome"),
            target=data.get("target", ""),
            value=data.get("value"),
            probability=data.get("probability"),
            delay_months=data.get("delayMonths"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "target": self.target,
            "value": self.value,
            "probability": self.probability,
            "delayMonths": self.delay_months,
        }


@dataclass(frozen=True)
class ChoiceCost:
    """Price of picking a choice. Types: money, stress, stat, relationship, time."""

    type: str
    amount: float
    target: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChoiceCost:
        return cls(
            type=_require(data, "type", "cost"),
            amount=_require(data, "amount", "cost"),
            target=data.get("target"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class EventChoice:
    id: str
    text: str
    outcomes: tuple[EventOutcome, ...]
    outcome_text: str = ""
    requirements: tuple[EventCondition, ...] = ()
    costs: tuple[ChoiceCost, ...] = ()
    next_event_id: str | None = None
    is_recommended: bool = False
    is_dangerous: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventChoice:
        return cls(
            id=_require(data, "id", "choice"),
            text=data.get("text", ""),
            outcomes=tuple(
                EventOutcome.from_dict(o) for o in _require(data, "outcomes", "choice")
            ),
            outcome_text=data.get("outcomeText", ""),
            requirements=tuple(
                EventCondition.from_dict(c) for c in data.get("requirements", [])
            ),
            costs=tuple(ChoiceCost.from_dict(c) for c in data.get("costs", [])),
            next_event_id=data.get("nextEventId"),
            is_recommended=data.get("isRecommended", False),
            is_dangerous=data.get("isDangerous", False),
        )


@dataclass(frozen=True)
class EventTiming:
    """When an event may fire.

    Attributes:
        type: immediate, scheduled, random, triggered or deadline.
        earliest_month: Random events only; months since game start.
        latest_month: Random events only; months since game start.
    """

    type: str = "random"
    month: int | None = None
    year: int | None = None
    earliest_month: int | None = None
    latest_month: int | None = None
    trigger_id: str | None = None
    deadline_date: GameDate | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventTiming:
        month = data.get("month")
        if month is not None and not (isinstance(month, int) and 1 <= month <= 12):
            raise ContentError(f"timing month must be in [1, 12], got {month!r}")
        try:
            deadline = date_or_none(data.get("deadlineDate"))
        except (KeyError, TypeError, ValueError) as exc:
            raise ContentError(f"invalid timing deadlineDate: {exc}") from exc
        return cls(
            type=data.get("type", "random"),
            month=month,
            year=data.get("year"),
            earliest_month=data.get("earliestMonth"),
            latest_month=data.get("latestMonth"),
            trigger_id=data.get("triggerId"),
            deadline_date=deadline,
        )

    def in_window(self, months_elapsed: int) -> bool:
        if self.earliest_month is not None and months_elapsed < self.earliest_month:
            return False
        if self.latest_month is not None and months_elapsed > self.latest_month:
            return False
        return True


@dataclass(frozen=True)
class GameEvent:
    id: str
    title: str
    description: str
    timing: EventTiming
    choices: tuple[EventChoice, ...]
    conditions: tuple[EventCondition, ...] = ()
    weight: float = 1.0
    character_ids: tuple[str, ...] = ()
    required_statuses: tuple[str, ...] = ()
    excluded_statuses: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    is_repeatable: bool = False
    is_mandatory: bool = False
    priority: int = 0
    chain_id: str | None = None
    hint: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameEvent:
        return cls(
            id=_require(data, "id", "event"),
            title=data.get("title", ""),
            description=data.get("description", ""),
            timing=EventTiming.from_dict(data.get("timing", {})),
            choices=tuple(EventChoice.from_dict(c) for c in data.get("choices", [])),
            conditions=tuple(
                EventCondition.from_dict(c) for c in data.get("conditions", [])
            ),
            weight=data.get("weight", 1.0),
            character_ids=tuple(data.get("characterIds") or ()),
            required_statuses=tuple(data.get("requiredStatuses") or ()),
            excluded_statuses=tuple(data.get("excludedStatuses") or ()),
            tags=tuple(data.get("tags", ())),
            is_repeatable=data.get("isRepeatable", False),
            is_mandatory=data.get("isMandatory", False),
            priority=data.get("priority", 0),
            chain_id=data.get("chainId"),
            hint=data.get("hint"),
        )

    def choice(self, choice_id: str) -> EventChoice | None:
        for c in self.choices:
            if c.id == choice_id:
                return c
        return None


@dataclass(frozen=True)
class PolicyTrap:
    id: str
    name: str
    triggers: tuple[EventCondition, ...]
    consequences: tuple[EventOutcome, ...]
    avoidance_conditions: tuple[EventCondition, ...] = ()
    severity: str = "moderate"
    is_recoverable: bool = True
    description: str = ""
    avoidance_hint: str | None = None
    recovery_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyTrap:
        return cls(
            id=_require(data, "id", "trap"),
            name=data.get("name", ""),
            triggers=tuple(
                EventCondition.from_dict(c) for c in _require(data, "triggers", "trap")
            ),
            consequences=tuple(
                EventOutcome.from_dict(o) for o in data.get("consequences", [])
            ),
            avoidance_conditions=tuple(
                EventCondition.from_dict(c)
                for c in data.get("avoidanceConditions") or ()
            ),
            severity=data.get("severity", "moderate"),
            is_recoverable=data.get("isRecoverable", True),
            description=data.get("description", ""),
            avoidance_hint=data.get("avoidanceHint"),
            recovery_path=data.get("recoveryPath"),
        )


@dataclass(frozen=True)
class Ending:
    id: str
    name: str
    type: str
    trigger_conditions: tuple[EventCondition, ...] = ()
    trigger_year: int | None = None
    title: str = ""
    description: str = ""
    is_positive: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ending:
        return cls(
            id=_require(data, "id", "ending"),
            name=data.get("name", ""),
            type=data.get("type", ""),
            trigger_conditions=tuple(
                EventCondition.from_dict(c) for c in data.get("triggerConditions", [])
            ),
            trigger_year=data.get("triggerYear"),
            title=data.get("title", ""),
            description=data.get("description", ""),
            is_positive=data.get("isPositive", False),
        )


@dataclass(frozen=True)
class EventChain:
    id: str
    name: str
    event_ids: tuple[str, ...]
    is_interruptible: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventChain:
        return cls(
            id=_require(data, "id", "chain"),
            name=data.get("name", ""),
            event_ids=tuple(_require(data, "eventIds", "chain")),
            is_interruptible=data.get("isInterruptible", True),
        )


@dataclass(frozen=True)
class InitialFinances:
    bank_balance: float
    monthly_income: float
    monthly_expenses: float
    debt: float = 0.0
    has_health_insurance: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InitialFinances:
        return cls(
            bank_balance=_require(data, "bankBalance", "finances"),
            monthly_income=_require(data, "monthlyIncome", "finances"),
            monthly_expenses=_require(data, "monthlyExpenses", "finances"),
            debt=data.get("debt", 0.0),
            has_health_insurance=data.get("hasHealthInsurance", False),
        )


@dataclass(frozen=True)
class CharacterProfile:
    """Starting conditions for a playable character."""

    id: str
    name: str
    initial_status: str
    initial_stats: CharacterStats
    initial_finances: InitialFinances
    initial_relationships: tuple[RelationshipData, ...] = ()
    game_start_year: int = 2024
    country_of_origin: str = ""
    difficulty: str = "standard"
    profile_event_ids: tuple[str, ...] = ()
    possible_ending_ids: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CharacterProfile:
        stats = data.get("initialStats", {})
        return cls(
            id=_require(data, "id", "profile"),
            name=data.get("name", ""),
            initial_status=_require(data, "initialStatus", "profile"),
            initial_stats=CharacterStats(
                health=stats.get("health", 80),
                stress=stats.get("stress", 20),
                english_proficiency=stats.get("englishProficiency", 50),
                community_connection=stats.get("communityConnection", 30),
            ),
            initial_finances=InitialFinances.from_dict(
                _require(data, "initialFinances", "profile")
            ),
            initial_relationships=tuple(
                RelationshipData.from_dict(r)
                for r in data.get("initialRelationships", [])
            ),
            game_start_year=data.get("gameStartYear", 2024),
            country_of_origin=data.get("countryOfOrigin", ""),
            difficulty=data.get("difficulty", "standard"),
            profile_event_ids=tuple(data.get("profileEventIds", ())),
            possible_ending_ids=tuple(data.get("possibleEndingIds", ())),
        )
