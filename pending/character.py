"""Character state: immigration status, stats, documents and the flag bag."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from pending import status as rules
from pending.dates import GameDate, date_or_none, dump_date
from pending.types import FlagValue

if TYPE_CHECKING:
    from pending.content import CharacterProfile

logger = logging.getLogger(__name__)

# Content refers to stats in camelCase; attributes are snake_case.
_STAT_FIELDS: dict[str, str] = {
    "health": "health",
    "stress": "stress",
    "englishProficiency": "english_proficiency",
    "english_proficiency": "english_proficiency",
    "communityConnection": "community_connection",
    "community_connection": "community_connection",
}

STAT_MIN = 0
STAT_MAX = 100


def stat_field(name: str) -> str | None:
    """Resolve a content stat name to a CharacterStats attribute, or None."""
    return _STAT_FIELDS.get(name)


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


@dataclass
class CharacterStats:
    """Four bounded [0, 100] stats."""

    health: int = 80
    stress: int = 20
    english_proficiency: int = 50
    community_connection: int = 30

    def to_dict(self) -> dict[str, int]:
        return {
            "health": self.health,
            "stress": self.stress,
            "english_proficiency": self.english_proficiency,
            "community_connection": self.community_connection,
        }


@dataclass(frozen=True)
class ImmigrationStatus:
    type: str
    start_date: GameDate
    expiration_date: GameDate | None = None
    work_authorized: bool = False
    work_authorization_type: str = "none"
    employer_name: str | None = None
    can_travel: bool = False
    advance_parole_required: bool = False
    reentry_risk: str = "none"
    valid_transitions: tuple[str, ...] = ()
    in_removal_proceedings: bool = False
    has_ead: bool = False
    has_advance_parole: bool = False
    unlawful_presence_days: int = 0

    @classmethod
    def derive(cls, status_type: str, start_date: GameDate, **overrides: Any) -> ImmigrationStatus:
        """Build a status with defaults from the rule tables."""
        values: dict[str, Any] = {
            "work_authorized": rules.work_authorized(status_type),
            "work_authorization_type": rules.work_authorization_type(status_type),
            "can_travel": rules.can_travel(status_type),
            "advance_parole_required": status_type == "daca",
            "reentry_risk": rules.reentry_risk(status_type),
            "valid_transitions": rules.valid_transitions(status_type),
            "in_removal_proceedings": status_type == "removal-proceedings",
            "has_ead": rules.work_authorization_type(status_type) == "ead",
        }
        values.update(overrides)
        return cls(type=status_type, start_date=start_date, **values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "start_date": self.start_date.to_dict(),
            "expiration_date": dump_date(self.expiration_date),
            "work_authorized": self.work_authorized,
            "work_authorization_type": self.work_authorization_type,
            "employer_name": self.employer_name,
            "can_travel": self.can_travel,
            "advance_parole_required": self.advance_parole_required,
            "reentry_risk": self.reentry_risk,
            "valid_transitions": list(self.valid_transitions),
            "in_removal_proceedings": self.in_removal_proceedings,
            "has_ead": self.has_ead,
            "has_advance_parole": self.has_advance_parole,
            "unlawful_presence_days": self.unlawful_presence_days,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImmigrationStatus:
        values = dict(data)
        values["start_date"] = GameDate.from_dict(data["start_date"])
        values["expiration_date"] = date_or_none(data.get("expiration_date"))
        values["valid_transitions"] = tuple(data.get("valid_transitions", ()))
        return cls(**values)


@dataclass(frozen=True)
class StatusChange:
    from_status: str
    to_status: str
    date: GameDate
    reason: str
    event_id: str | None = None


@dataclass
class Document:
    id: str
    name: str
    type: str = "other"
    expiration_date: GameDate | None = None
    is_valid: bool = True
    notes: str | None = None


class CharacterState:
    """Owns the player character's status, stats, documents and flags."""

    def __init__(self) -> None:
        self.profile_id: str | None = None
        self.name: str = ""
        self.status: ImmigrationStatus | None = None
        self.status_history: list[StatusChange] = []
        self.stats = CharacterStats()
        self.documents: list[Document] = []
        self.flags: dict[str, FlagValue] = {}

    def initialize_character(self, profile: CharacterProfile, start_date: GameDate) -> None:
        self.profile_id = profile.id
        self.name = profile.name
        self.status = ImmigrationStatus.derive(profile.initial_status, start_date)
        self.status_history = []
        self.stats = replace(profile.initial_stats)
        self.documents = []
        self.flags = {}

    # --- Status ---

    @property
    def status_type(self) -> str | None:
        return self.status.type if self.status is not None else None

    def update_status(
        self,
        new_status: ImmigrationStatus,
        reason: str,
        date: GameDate,
        event_id: str | None = None,
    ) -> StatusChange | None:
        """Supersede the current status and append to history."""
        if self.status is None:
            return None
        if new_status.type not in self.status.valid_transitions:
            logger.debug(
                "status %s -> %s is outside valid transitions (%s)",
                self.status.type, new_status.type, reason,
            )
        change = StatusChange(
            from_status=self.status.type,
            to_status=new_status.type,
            date=date,
            reason=reason,
            event_id=event_id,
        )
        self.status = new_status
        self.status_history.append(change)
        return change

    def change_status(
        self,
        status_type: str,
        reason: str,
        date: GameDate,
        event_id: str | None = None,
    ) -> StatusChange | None:
        """Move to *status_type* with rule-table defaults.

        Unlawful presence carries over; it is never reset by a status change.
        """
        if self.status is None:
            return None
        new_status = ImmigrationStatus.derive(
            status_type, date,
            unlawful_presence_days=self.status.unlawful_presence_days,
        )
        return self.update_status(new_status, reason, date, event_id)

    def accrues_unlawful_presence(self) -> bool:
        return self.status is not None and rules.accrues_unlawful_presence(self.status.type)

    def add_unlawful_presence_days(self, days: int) -> None:
        if self.status is None:
            return
        self.status = replace(
            self.status,
            unlawful_presence_days=self.status.unlawful_presence_days + days,
        )

    # --- Stats ---

    def get_stat(self, name: str) -> int:
        """Read a stat by content or attribute name. Raises KeyError if unknown."""
        attr = stat_field(name)
        if attr is None:
            raise KeyError(name)
        return getattr(self.stats, attr)

    def modify_stat(self, name: str, delta: float) -> int:
        """Apply a clamped delta. Raises KeyError if unknown."""
        return self.set_stat(name, self.get_stat(name) + delta)

    def set_stat(self, name: str, value: float) -> int:
        attr = stat_field(name)
        if attr is None:
            raise KeyError(name)
        clamped = int(round(_clamp(value, STAT_MIN, STAT_MAX)))
        setattr(self.stats, attr, clamped)
        return clamped

    # --- Documents ---

    def add_document(self, document: Document) -> None:
        self.documents.append(document)

    def remove_document(self, document_id: str) -> bool:
        before = len(self.documents)
        self.documents = [d for d in self.documents if d.id != document_id]
        return len(self.documents) < before

    def invalidate_document(self, document_id: str) -> None:
        for doc in self.documents:
            if doc.id == document_id:
                doc.is_valid = False

    def has_document(self, document_id: str) -> bool:
        return any(d.id == document_id for d in self.documents)

    # --- Flags ---

    def set_flag(self, key: str, value: FlagValue) -> None:
        self.flags[key] = value

    def get_flag(self, key: str) -> FlagValue | None:
        return self.flags.get(key)

    def has_flag(self, key: str) -> bool:
        return key in self.flags

    def increment_flag(self, key: str, amount: float = 1) -> FlagValue:
        current = self.flags.get(key)
        if isinstance(current, (int, float)) and not isinstance(current, bool):
            self.flags[key] = current + amount
        else:
            self.flags[key] = amount
        return self.flags[key]

    def get_bool_flag(self, key: str, default: bool = False) -> bool:
        value = self.flags.get(key)
        return value if isinstance(value, bool) else default

    def get_number_flag(self, key: str, default: float = 0) -> float:
        value = self.flags.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        return default

    def get_str_flag(self, key: str, default: str = "") -> str:
        value = self.flags.get(key)
        return value if isinstance(value, str) else default

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "status": self.status.to_dict() if self.status is not None else None,
            "status_history": [
                {
                    "from_status": c.from_status,
                    "to_status": c.to_status,
                    "date": c.date.to_dict(),
                    "reason": c.reason,
                    "event_id": c.event_id,
                }
                for c in self.status_history
            ],
            "stats": self.stats.to_dict(),
            "documents": [
                {
                    "id": d.id,
                    "name": d.name,
                    "type": d.type,
                    "expiration_date": dump_date(d.expiration_date),
                    "is_valid": d.is_valid,
                    "notes": d.notes,
                }
                for d in self.documents
            ],
            "flags": dict(self.flags),
        }

    def restore(self, data: dict[str, Any]) -> None:
        status_data = data.get("status")
        status = ImmigrationStatus.from_dict(status_data) if status_data else None
        history = [
            StatusChange(
                from_status=c["from_status"],
                to_status=c["to_status"],
                date=GameDate.from_dict(c["date"]),
                reason=c["reason"],
                event_id=c.get("event_id"),
            )
            for c in data.get("status_history", [])
        ]
        stats = CharacterStats(**data["stats"])
        documents = [
            Document(
                id=d["id"],
                name=d["name"],
                type=d.get("type", "other"),
                expiration_date=date_or_none(d.get("expiration_date")),
                is_valid=d.get("is_valid", True),
                notes=d.get("notes"),
            )
            for d in data.get("documents", [])
        ]
        self.profile_id = data.get("profile_id")
        self.name = data.get("name", "")
        self.status = status
        self.status_history = history
        self.stats = stats
        self.documents = documents
        self.flags = dict(data.get("flags", {}))
