"""ContentCatalog — read-only, id-indexed content tables supplied by the host."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from pending.content import (
    CharacterProfile,
    Ending,
    EventChain,
    GameEvent,
    PolicyTrap,
)
from pending.types import ContentError

_T = TypeVar("_T")


def _index(records: Iterable[_T], kind: str) -> dict[str, _T]:
    table: dict[str, _T] = {}
    for record in records:
        record_id = record.id  # type: ignore[attr-defined]
        if record_id in table:
            raise ContentError(f"duplicate {kind} id {record_id!r}")
        table[record_id] = record
    return table


class ContentCatalog:
    """Events, traps, endings, chains and profiles. Declaration order is kept."""

    def __init__(
        self,
        events: Iterable[GameEvent] = (),
        traps: Iterable[PolicyTrap] = (),
        endings: Iterable[Ending] = (),
        chains: Iterable[EventChain] = (),
        profiles: Iterable[CharacterProfile] = (),
    ) -> None:
        self._events = _index(events, "event")
        self._traps = _index(traps, "trap")
        self._endings = _index(endings, "ending")
        self._chains = _index(chains, "chain")
        self._profiles = _index(profiles, "profile")

    # --- Lookup ---

    def get_event(self, event_id: str) -> GameEvent | None:
        return self._events.get(event_id)

    def get_trap(self, trap_id: str) -> PolicyTrap | None:
        return self._traps.get(trap_id)

    def get_ending(self, ending_id: str) -> Ending | None:
        return self._endings.get(ending_id)

    def get_chain(self, chain_id: str) -> EventChain | None:
        return self._chains.get(chain_id)

    def get_profile(self, profile_id: str) -> CharacterProfile | None:
        return self._profiles.get(profile_id)

    # --- Iteration ---

    @property
    def events(self) -> list[GameEvent]:
        return list(self._events.values())

    @property
    def traps(self) -> list[PolicyTrap]:
        return list(self._traps.values())

    @property
    def endings(self) -> list[Ending]:
        return list(self._endings.values())

    @property
    def chains(self) -> list[EventChain]:
        return list(self._chains.values())

    @property
    def profiles(self) -> list[CharacterProfile]:
        return list(self._profiles.values())

    # --- Loading ---

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentCatalog:
        """Build from ``{"events": [...], "traps": [...], ...}`` with camelCase records."""
        def load(key: str, loader: Callable[[dict[str, Any]], _T]) -> list[_T]:
            records = data.get(key, [])
            if not isinstance(records, list):
                raise ContentError(f"{key!r} must be a list")
            return [loader(r) for r in records]

        return cls(
            events=load("events", GameEvent.from_dict),
            traps=load("traps", PolicyTrap.from_dict),
            endings=load("endings", Ending.from_dict),
            chains=load("chains", EventChain.from_dict),
            profiles=load("profiles", CharacterProfile.from_dict),
        )


def load_catalog(path: str | Path) -> ContentCatalog:
    """Read a JSON content file. I/O errors propagate; malformed content raises ContentError."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ContentError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ContentError(f"{path}: top level must be an object")
    return ContentCatalog.from_dict(data)
