"""Rule tables deriving the defaults of an ImmigrationStatus from its tag."""
from __future__ import annotations

_WORK_AUTHORIZED = frozenset({
    "daca", "tps", "h1b-active", "l1a-executive", "l1b-specialized",
    "o1-extraordinary", "green-card-conditional", "green-card-permanent",
    "naturalized-citizen", "asylum-granted", "refugee",
    "student-f1-opt", "student-f1-stem-opt", "e2-investor",
})

_NO_TRAVEL = frozenset({
    "undocumented", "undocumented-overstay", "daca", "tps",
    "asylum-pending", "removal-proceedings", "deportation-order",
})

_UNLAWFUL_PRESENCE = frozenset({"undocumented", "undocumented-overstay"})

_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "undocumented": ("removal-proceedings", "vawa-pending", "i485-pending", "daca"),
    "undocumented-overstay": ("removal-proceedings", "i485-pending", "voluntary-departure"),
    "daca": ("daca", "undocumented", "removal-proceedings", "i485-pending"),
    "tps": ("tps", "undocumented", "i485-pending"),
    "student-f1": ("student-f1-opt", "h1b-pending", "undocumented-overstay"),
    "student-f1-opt": ("student-f1-stem-opt", "h1b-pending", "undocumented-overstay"),
    "student-f1-stem-opt": ("h1b-pending", "undocumented-overstay"),
    "h1b-pending": ("h1b-active", "student-f1-opt", "undocumented-overstay"),
    "h1b-active": ("h1b-active", "i485-pending", "undocumented-overstay"),
    "asylum-pending": ("asylum-granted", "removal-proceedings"),
    "asylum-granted": ("i485-pending",),
    "refugee": ("i485-pending",),
    "i130-pending": ("i485-pending", "consular-processing"),
    "i485-pending": ("green-card-conditional", "green-card-permanent", "removal-proceedings"),
    "consular-processing": ("green-card-conditional", "green-card-permanent"),
    "green-card-conditional": ("green-card-permanent", "removal-proceedings"),
    "green-card-permanent": ("naturalized-citizen",),
    "removal-proceedings": ("deportation-order", "voluntary-departure", "withholding-of-removal"),
    "deportation-order": ("deported",),
}


def work_authorized(status: str) -> bool:
    return status in _WORK_AUTHORIZED


def work_authorization_type(status: str) -> str:
    if status in ("naturalized-citizen", "green-card-permanent", "green-card-conditional"):
        return "unrestricted"
    if status in ("h1b-active", "l1a-executive", "l1b-specialized"):
        return "employer-specific"
    if status in ("daca", "tps", "asylum-granted", "refugee"):
        return "ead"
    if status in ("student-f1-opt", "student-f1-stem-opt"):
        return "limited"
    return "none"


def can_travel(status: str) -> bool:
    return status not in _NO_TRAVEL


def reentry_risk(status: str) -> str:
    if status in ("undocumented", "undocumented-overstay", "asylum-pending"):
        return "extreme"
    if status in ("daca", "tps", "removal-proceedings"):
        return "high"
    if status.endswith("-pending"):
        return "medium"
    return "none"


def valid_transitions(status: str) -> tuple[str, ...]:
    return _TRANSITIONS.get(status, ())


def accrues_unlawful_presence(status: str) -> bool:
    return status in _UNLAWFUL_PRESENCE
