"""GameContext — the explicit bundle of state owners passed to engine code."""
from __future__ import annotations

import random as _random
from dataclasses import dataclass, field
from typing import Any

from pending.applications import ApplicationTracker
from pending.catalog import ContentCatalog
from pending.character import CharacterState
from pending.clock import Clock
from pending.config import SimulationConfig
from pending.dates import GameDate
from pending.events import EventState
from pending.finance import FinanceLedger
from pending.relationships import RelationshipGraph
from pending.signals import SignalBus


@dataclass
class GameSession:
    """Which game is being played and where the player is in it."""

    game_id: str = ""
    character_id: str | None = None
    screen: str = "title"
    ending_id: str | None = None
    fired_trap_ids: list[str] = field(default_factory=list)

    @property
    def is_over(self) -> bool:
        return self.screen == "ending"

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "character_id": self.character_id,
            "screen": self.screen,
            "ending_id": self.ending_id,
            "fired_trap_ids": list(self.fired_trap_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameSession:
        return cls(
            game_id=data.get("game_id", ""),
            character_id=data.get("character_id"),
            screen=data.get("screen", "title"),
            ending_id=data.get("ending_id"),
            fired_trap_ids=list(data.get("fired_trap_ids", [])),
        )


@dataclass
class GameContext:
    catalog: ContentCatalog
    rng: _random.Random
    config: SimulationConfig = field(default_factory=SimulationConfig)
    clock: Clock = field(default_factory=Clock)
    character: CharacterState = field(default_factory=CharacterState)
    finance: FinanceLedger = field(default_factory=FinanceLedger)
    relationships: RelationshipGraph = field(default_factory=RelationshipGraph)
    applications: ApplicationTracker = field(default_factory=ApplicationTracker)
    events: EventState = field(default_factory=EventState)
    bus: SignalBus = field(default_factory=SignalBus)
    session: GameSession = field(default_factory=GameSession)

    @property
    def today(self) -> GameDate:
        return self.clock.today
