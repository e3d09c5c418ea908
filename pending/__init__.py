"""pending - simulation core for a narrative immigration-journey game."""

from pending.catalog import ContentCatalog, load_catalog
from pending.clock import Clock, DeadlineTracker
from pending.config import (
    ApplicationOdds,
    DebtPolicy,
    EventPacing,
    SimulationConfig,
    TimeFlowSettings,
)
from pending.content import (
    CharacterProfile,
    Ending,
    EventChain,
    EventChoice,
    EventCondition,
    EventOutcome,
    GameEvent,
    PolicyTrap,
)
from pending.dates import GameDate
from pending.engine import EventEngine
from pending.game import Game
from pending.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from pending.signals import SignalBus
from pending.statistics import GameStatistics
from pending.timeflow import TimeFlowController
from pending.types import ContentError, SaveError

__all__ = [
    "Game",
    "GameDate",
    "Clock",
    "DeadlineTracker",
    "ContentCatalog",
    "load_catalog",
    "CharacterProfile",
    "GameEvent",
    "EventChoice",
    "EventOutcome",
    "EventCondition",
    "EventChain",
    "PolicyTrap",
    "Ending",
    "EventEngine",
    "TimeFlowController",
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    "SignalBus",
    "GameStatistics",
    "SimulationConfig",
    "TimeFlowSettings",
    "EventPacing",
    "ApplicationOdds",
    "DebtPolicy",
    "SaveError",
    "ContentError",
]
