"""Shared type aliases, constants and exceptions for the simulation core."""
from __future__ import annotations

FlagValue = str | int | float | bool
ConditionValue = str | int | float | bool | list

STAT_NAMES: tuple[str, ...] = (
    "health",
    "stress",
    "englishProficiency",
    "communityConnection",
)

STATUS_TYPES: tuple[str, ...] = (
    # Undocumented / at-risk
    "undocumented",
    "undocumented-overstay",
    "daca",
    "tps",
    # Temporary
    "tourist-b1b2",
    "student-f1",
    "student-f1-opt",
    "student-f1-stem-opt",
    "h1b-pending",
    "h1b-active",
    "h4-dependent",
    "l1a-executive",
    "l1b-specialized",
    "o1-extraordinary",
    "j1-exchange",
    "k1-fiance",
    "e2-investor",
    # Asylum / refugee
    "asylum-pending",
    "asylum-granted",
    "refugee",
    "withholding-of-removal",
    # Family-based pending
    "i130-pending",
    "i485-pending",
    "consular-processing",
    # Permanent
    "green-card-conditional",
    "green-card-permanent",
    "naturalized-citizen",
    # Negative outcomes
    "removal-proceedings",
    "deportation-order",
    "voluntary-departure",
    "deported",
    # Special
    "vawa-pending",
    "sijs-pending",
)

INTERRUPT_PRIORITIES: dict[str, int] = {
    "critical": 100,
    "important": 75,
    "normal": 50,
    "ambient": 25,
}

SEVERITY_WEIGHTS: dict[str, float] = {
    "critical": 1.0,
    "major": 0.8,
    "minor": 0.5,
}


class SaveError(Exception):
    """Raised when persisted state is corrupt, incompatible or malformed."""


class ContentError(ValueError):
    """Raised when a content record cannot be loaded."""
