"""RelationshipGraph — named people with bounded affinity and immigration roles."""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from pending.dates import GameDate

LEVEL_MIN = -100
LEVEL_MAX = 100

# (inclusive upper bound, label), scanned in order.
_LEVEL_LABELS: tuple[tuple[int, str], ...] = (
    (-60, "hostile"),
    (-20, "strained"),
    (19, "neutral"),
    (59, "friendly"),
    (89, "close"),
)


def level_label_for(level: float) -> str:
    for bound, label in _LEVEL_LABELS:
        if level <= bound:
            return label
    return "devoted"


def _clamp_level(level: float) -> int:
    return int(round(min(max(level, LEVEL_MIN), LEVEL_MAX)))


@dataclass(frozen=True)
class RelationshipData:
    """One person in the character's life.

    ``citizenship_status`` is the other party's standing (usc, lpr,
    visa-holder, undocumented, abroad, unknown).
    """

    id: str
    name: str
    type: str
    citizenship_status: str = "unknown"
    location: str = "same-city"
    level: int = 0
    is_sponsor: bool = False
    is_petitioner: bool = False
    is_dependent: bool = False
    is_derived_from: bool = False
    age: int | None = None
    occupation: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RelationshipData:
        """Load from camelCase content keys or snake_case snapshot keys."""
        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            type=data.get("type", "friend"),
            citizenship_status=pick("citizenshipStatus", "citizenship_status", "unknown"),
            location=data.get("location", "same-city"),
            level=_clamp_level(data.get("level", 0)),
            is_sponsor=pick("isSponsor", "is_sponsor", False),
            is_petitioner=pick("isPetitioner", "is_petitioner", False),
            is_dependent=pick("isDependent", "is_dependent", False),
            is_derived_from=pick("isDerivedFrom", "is_derived_from", False),
            age=data.get("age"),
            occupation=data.get("occupation"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RelationshipChange:
    npc_id: str
    previous_level: int
    new_level: int
    date: GameDate
    reason: str


class RelationshipGraph:
    """Owns relationships and the audit trail of level changes."""

    def __init__(self) -> None:
        self.relationships: list[RelationshipData] = []
        self.changes: list[RelationshipChange] = []
        self._next_id: int = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"rel-{self._next_id}"

    def initialize(self, relationships: list[RelationshipData] | tuple[RelationshipData, ...]) -> None:
        self.relationships = [r if r.id else replace(r, id=self._new_id()) for r in relationships]
        self.changes = []

    def add_relationship(self, relationship: RelationshipData) -> RelationshipData:
        """Add *relationship* under a freshly assigned id."""
        added = replace(relationship, id=self._new_id(), level=_clamp_level(relationship.level))
        self.relationships.append(added)
        return added

    def remove_relationship(self, relationship_id: str) -> bool:
        before = len(self.relationships)
        self.relationships = [r for r in self.relationships if r.id != relationship_id]
        return len(self.relationships) < before

    def _index(self, relationship_id: str) -> int | None:
        for i, r in enumerate(self.relationships):
            if r.id == relationship_id:
                return i
        return None

    def modify_relationship(
        self, relationship_id: str, delta: float, reason: str, date: GameDate
    ) -> RelationshipChange | None:
        """Apply a clamped delta and append one audit record.

        Returns None (and changes nothing) for an unknown id.
        """
        i = self._index(relationship_id)
        if i is None:
            return None
        current = self.relationships[i]
        new_level = _clamp_level(current.level + delta)
        change = RelationshipChange(
            npc_id=relationship_id,
            previous_level=current.level,
            new_level=new_level,
            date=date,
            reason=reason,
        )
        self.relationships[i] = replace(current, level=new_level)
        self.changes.append(change)
        return change

    def set_level(self, relationship_id: str, level: float) -> None:
        i = self._index(relationship_id)
        if i is not None:
            self.relationships[i] = replace(self.relationships[i], level=_clamp_level(level))

    def update_relationship(self, relationship_id: str, **updates: Any) -> RelationshipData | None:
        i = self._index(relationship_id)
        if i is None:
            return None
        if "level" in updates:
            updates["level"] = _clamp_level(updates["level"])
        updates.pop("id", None)
        self.relationships[i] = replace(self.relationships[i], **updates)
        return self.relationships[i]

    # --- Queries ---

    def get(self, relationship_id: str) -> RelationshipData | None:
        i = self._index(relationship_id)
        return self.relationships[i] if i is not None else None

    def by_type(self, type: str) -> list[RelationshipData]:
        return [r for r in self.relationships if r.type == type]

    def spouse(self) -> RelationshipData | None:
        return next((r for r in self.relationships if r.type == "spouse"), None)

    def sponsor(self) -> RelationshipData | None:
        return next((r for r in self.relationships if r.is_sponsor), None)

    def petitioner(self) -> RelationshipData | None:
        return next((r for r in self.relationships if r.is_petitioner), None)

    def level_label(self, relationship_id: str) -> str:
        r = self.get(relationship_id)
        return level_label_for(r.level) if r is not None else "neutral"

    def has_usc_spouse(self) -> bool:
        s = self.spouse()
        return s is not None and s.citizenship_status == "usc"

    def has_usc_parent(self) -> bool:
        return any(r.type == "parent" and r.citizenship_status == "usc" for r in self.relationships)

    def has_usc_child(self) -> bool:
        return any(r.type == "child" and r.citizenship_status == "usc" for r in self.relationships)

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "relationships": [r.to_dict() for r in self.relationships],
            "changes": [{**asdict(c), "date": c.date.to_dict()} for c in self.changes],
            "next_id": self._next_id,
        }

    def restore(self, data: dict[str, Any]) -> None:
        relationships = [RelationshipData.from_dict(r) for r in data.get("relationships", [])]
        changes = [
            RelationshipChange(**{**c, "date": GameDate.from_dict(c["date"])})
            for c in data.get("changes", [])
        ]
        self.relationships = relationships
        self.changes = changes
        self._next_id = data.get("next_id", 0)
