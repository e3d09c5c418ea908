"""ApplicationTracker — filed forms, RFEs, interviews and randomized decisions."""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Any

from pending.config import ApplicationOdds
from pending.dates import GameDate, date_or_none, dump_date


@dataclass(frozen=True)
class FormInfo:
    name: str
    filing_fee: float
    biometrics_fee: float
    avg_processing_months: int
    processing_range: tuple[int, int]

    @property
    def total_fee(self) -> float:
        return self.filing_fee + self.biometrics_fee


FORM_DATA: dict[str, FormInfo] = {
    "i-130": FormInfo("Petition for Alien Relative", 625, 0, 12, (6, 24)),
    "i-485": FormInfo("Adjustment of Status", 1225, 85, 18, (12, 36)),
    "i-765": FormInfo("Employment Authorization", 410, 0, 5, (3, 7)),
    "i-131": FormInfo("Travel Document", 630, 0, 5, (3, 7)),
    "i-821d": FormInfo("DACA Request", 495, 0, 6, (4, 8)),
    "i-589": FormInfo("Asylum Application", 0, 0, 48, (36, 72)),
    "i-360": FormInfo("VAWA Self-Petition", 0, 0, 18, (12, 24)),
    "i-601a": FormInfo("Provisional Waiver", 630, 85, 12, (6, 24)),
    "i-751": FormInfo("Remove Conditions", 595, 85, 18, (12, 24)),
    "i-90": FormInfo("Green Card Renewal", 540, 85, 8, (6, 12)),
    "n-400": FormInfo("Naturalization", 760, 85, 12, (8, 14)),
    "ds-160": FormInfo("Nonimmigrant Visa", 185, 0, 2, (1, 6)),
    "ds-260": FormInfo("Immigrant Visa", 325, 0, 6, (3, 12)),
    "i-140": FormInfo("Immigrant Petition", 715, 0, 6, (4, 12)),
    "i-129": FormInfo("H-1B Petition", 780, 0, 4, (2, 8)),
    "i-539": FormInfo("Change of Status", 400, 85, 6, (4, 10)),
}

RECEIPT_PREFIXES = ("MSC", "LIN", "SRC", "WAC", "EAC")

TERMINAL_STATUSES = frozenset({"approved", "denied", "withdrawn"})


@dataclass(frozen=True)
class RFE:
    """Request for Evidence placed on an application."""

    id: str
    application_id: str
    issued_date: GameDate
    due_date: GameDate
    description: str = ""
    requested_evidence: tuple[str, ...] = ()
    responded: bool = False
    response_date: GameDate | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "issued_date": self.issued_date.to_dict(),
            "due_date": self.due_date.to_dict(),
            "description": self.description,
            "requested_evidence": list(self.requested_evidence),
            "responded": self.responded,
            "response_date": dump_date(self.response_date),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RFE:
        return cls(
            id=data["id"],
            application_id=data["application_id"],
            issued_date=GameDate.from_dict(data["issued_date"]),
            due_date=GameDate.from_dict(data["due_date"]),
            description=data.get("description", ""),
            requested_evidence=tuple(data.get("requested_evidence", ())),
            responded=data.get("responded", False),
            response_date=date_or_none(data.get("response_date")),
        )


@dataclass(frozen=True)
class Application:
    id: str
    form_id: str
    filed_date: GameDate
    receipt_number: str
    estimated_decision_date: GameDate
    status: str = "pending"
    actual_decision_date: GameDate | None = None
    interview_date: GameDate | None = None
    interview_location: str | None = None
    rfe: RFE | None = None
    decision: str | None = None
    decision_reason: str | None = None
    fees_paid: float = 0.0
    legal_fees_paid: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_unanswered_rfe(self) -> bool:
        return self.rfe is not None and not self.rfe.responded

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "form_id": self.form_id,
            "filed_date": self.filed_date.to_dict(),
            "receipt_number": self.receipt_number,
            "estimated_decision_date": self.estimated_decision_date.to_dict(),
            "status": self.status,
            "actual_decision_date": dump_date(self.actual_decision_date),
            "interview_date": dump_date(self.interview_date),
            "interview_location": self.interview_location,
            "rfe": self.rfe.to_dict() if self.rfe is not None else None,
            "decision": self.decision,
            "decision_reason": self.decision_reason,
            "fees_paid": self.fees_paid,
            "legal_fees_paid": self.legal_fees_paid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Application:
        rfe = data.get("rfe")
        return cls(
            id=data["id"],
            form_id=data["form_id"],
            filed_date=GameDate.from_dict(data["filed_date"]),
            receipt_number=data["receipt_number"],
            estimated_decision_date=GameDate.from_dict(data["estimated_decision_date"]),
            status=data.get("status", "pending"),
            actual_decision_date=date_or_none(data.get("actual_decision_date")),
            interview_date=date_or_none(data.get("interview_date")),
            interview_location=data.get("interview_location"),
            rfe=RFE.from_dict(rfe) if rfe is not None else None,
            decision=data.get("decision"),
            decision_reason=data.get("decision_reason"),
            fees_paid=data.get("fees_paid", 0.0),
            legal_fees_paid=data.get("legal_fees_paid", 0.0),
        )


def receipt_number(rng: random.Random) -> str:
    return f"{rng.choice(RECEIPT_PREFIXES)}{rng.randint(1_000_000_000, 9_999_999_999)}"


class ApplicationTracker:
    """Owns filed applications. Status moves one way toward a terminal state.

    Every mutating call on an unknown or terminal application is a no-op
    returning None.
    """

    def __init__(self) -> None:
        self.applications: list[Application] = []
        self._next_id: int = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    # --- Filing ---

    def file(self, form_id: str, filed_date: GameDate, rng: random.Random) -> Application:
        """File *form_id*. Raises KeyError for a form missing from FORM_DATA."""
        info = FORM_DATA[form_id]
        low, high = info.processing_range
        width = high - low
        months = info.avg_processing_months + (rng.randrange(width) if width > 0 else 0)
        application = Application(
            id=self._new_id("app"),
            form_id=form_id,
            filed_date=filed_date,
            receipt_number=receipt_number(rng),
            estimated_decision_date=filed_date.add_months(months),
            fees_paid=info.total_fee,
        )
        self.applications.append(application)
        return application

    def _index(self, app_id: str) -> int | None:
        for i, app in enumerate(self.applications):
            if app.id == app_id:
                return i
        return None

    def _update(self, app_id: str, **changes: Any) -> Application | None:
        i = self._index(app_id)
        if i is None or self.applications[i].is_terminal:
            return None
        updated = replace(self.applications[i], **changes)
        self.applications[i] = updated
        return updated

    # --- Lifecycle ---

    def issue_rfe(
        self,
        app_id: str,
        issued_date: GameDate,
        due_date: GameDate,
        description: str = "",
        requested_evidence: tuple[str, ...] = (),
    ) -> Application | None:
        rfe = RFE(
            id=f"rfe-{app_id}",
            application_id=app_id,
            issued_date=issued_date,
            due_date=due_date,
            description=description,
            requested_evidence=tuple(requested_evidence),
        )
        return self._update(app_id, status="rfe-issued", rfe=rfe)

    def respond_to_rfe(self, app_id: str, response_date: GameDate) -> Application | None:
        app = self.get(app_id)
        if app is None or app.rfe is None:
            return None
        rfe = replace(app.rfe, responded=True, response_date=response_date)
        return self._update(app_id, status="rfe-responded", rfe=rfe)

    def schedule_interview(
        self, app_id: str, date: GameDate, location: str = ""
    ) -> Application | None:
        return self._update(
            app_id, status="interview-scheduled",
            interview_date=date, interview_location=location,
        )

    def decide(
        self, app_id: str, outcome: str, reason: str, date: GameDate
    ) -> Application | None:
        """Approve when *outcome* is ``approved``, deny otherwise."""
        status = "approved" if outcome == "approved" else "denied"
        return self._update(
            app_id, status=status, decision=outcome,
            decision_reason=reason, actual_decision_date=date,
        )

    def withdraw(self, app_id: str, date: GameDate) -> Application | None:
        return self._update(app_id, status="withdrawn", actual_decision_date=date)

    # --- Queries ---

    def get(self, app_id: str) -> Application | None:
        i = self._index(app_id)
        return self.applications[i] if i is not None else None

    @property
    def active(self) -> list[Application]:
        return [a for a in self.applications if not a.is_terminal]

    def with_status(self, status: str) -> list[Application]:
        return [a for a in self.applications if a.status == status]

    def active_for_form(self, form_id: str) -> list[Application]:
        return [a for a in self.active if a.form_id == form_id]

    def total_fees(self, form_id: str) -> float:
        return FORM_DATA[form_id].total_fee

    # --- Monthly sweep ---

    def process_monthly_applications(
        self,
        date: GameDate,
        rng: random.Random,
        odds: ApplicationOdds | None = None,
    ) -> list[tuple[str, str]]:
        """Roll decisions for active applications at or past their estimate.

        Returns ``(app_id, outcome)`` pairs; nothing is applied here.
        """
        odds = odds if odds is not None else ApplicationOdds()
        decisions: list[tuple[str, str]] = []
        for app in self.active:
            overdue = app.estimated_decision_date.months_until(date)
            if overdue < 0:
                continue
            chance = min(
                odds.base_decision_chance + overdue * odds.overdue_decision_step,
                odds.max_decision_chance,
            )
            if rng.random() >= chance:
                continue
            approval = odds.base_approval_rate
            if app.has_unanswered_rfe:
                approval *= odds.unanswered_rfe_penalty
            decisions.append((app.id, "approved" if rng.random() < approval else "denied"))
        return decisions

    def apply_decisions(
        self, decisions: list[tuple[str, str]], date: GameDate
    ) -> list[Application]:
        applied = []
        for app_id, outcome in decisions:
            app = self.decide(app_id, outcome, "Processing complete", date)
            if app is not None:
                applied.append(app)
        return applied

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "applications": [a.to_dict() for a in self.applications],
            "next_id": self._next_id,
        }

    def restore(self, data: dict[str, Any]) -> None:
        applications = [Application.from_dict(a) for a in data.get("applications", [])]
        self.applications = applications
        self._next_id = data.get("next_id", len(applications))
