"""EventState — queue, scheduled events, interrupts, history, chains and display."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pending.content import EventChain, EventOutcome, GameEvent
from pending.dates import GameDate
from pending.types import INTERRUPT_PRIORITIES, SaveError

if TYPE_CHECKING:
    from pending.catalog import ContentCatalog


@dataclass(frozen=True)
class QueuedEvent:
    event_id: str
    priority: int = 0


@dataclass(frozen=True)
class ScheduledEvent:
    event_id: str
    date: GameDate


@dataclass(frozen=True)
class PendingInterrupt:
    event_id: str
    priority: str
    date: GameDate

    @property
    def rank(self) -> int:
        return INTERRUPT_PRIORITIES[self.priority]


@dataclass(frozen=True)
class CompletedEvent:
    """A resolved event. ``outcomes`` holds only the outcomes actually applied."""

    event_id: str
    choice_id: str
    date: GameDate
    outcomes: tuple[EventOutcome, ...]


@dataclass
class ActiveChain:
    chain_id: str
    event_ids: tuple[str, ...]
    position: int = 0


class EventState:
    """Tracks everything about events except the catalog itself."""

    def __init__(self) -> None:
        self.queue: list[QueuedEvent] = []
        self.scheduled: list[ScheduledEvent] = []
        self.interrupts: list[PendingInterrupt] = []
        self.history: list[CompletedEvent] = []
        self.completed_ids: set[str] = set()
        self.chains: list[ActiveChain] = []
        self.current_event: GameEvent | None = None
        self.outcome_text: str | None = None
        self.showing_outcome: bool = False

    # --- Queue ---

    def queue_event(self, event_id: str, priority: int = 0) -> bool:
        """Queue *event_id* unless already queued. Higher priority first, FIFO within a priority."""
        if any(q.event_id == event_id for q in self.queue):
            return False
        self.queue.append(QueuedEvent(event_id, priority))
        self.queue.sort(key=lambda q: -q.priority)
        return True

    def pop_queued(self) -> QueuedEvent | None:
        return self.queue.pop(0) if self.queue else None

    def remove_queued(self, event_id: str) -> bool:
        before = len(self.queue)
        self.queue = [q for q in self.queue if q.event_id != event_id]
        return len(self.queue) < before

    # --- Scheduled ---

    def schedule_event(self, event_id: str, date: GameDate) -> None:
        self.scheduled.append(ScheduledEvent(event_id, date))

    def due_scheduled(self, date: GameDate) -> list[ScheduledEvent]:
        """Entries due on or before *date*, earliest first."""
        return sorted((s for s in self.scheduled if s.date <= date), key=lambda s: s.date)

    def remove_scheduled(self, entry: ScheduledEvent) -> None:
        if entry in self.scheduled:
            self.scheduled.remove(entry)

    def upcoming(self, date: GameDate, min_months: int, max_months: int) -> list[ScheduledEvent]:
        """Entries between *min_months* and *max_months* ahead, nearest first."""
        return sorted(
            (s for s in self.scheduled if min_months <= date.months_until(s.date) <= max_months),
            key=lambda s: s.date,
        )

    # --- Interrupts ---

    def add_interrupt(self, event_id: str, priority: str, date: GameDate) -> bool:
        if priority not in INTERRUPT_PRIORITIES:
            raise ValueError(f"unknown interrupt priority {priority!r}")
        if any(i.event_id == event_id for i in self.interrupts):
            return False
        self.interrupts.append(PendingInterrupt(event_id, priority, date))
        self.interrupts.sort(key=lambda i: -i.rank)
        return True

    def next_interrupt(self) -> PendingInterrupt | None:
        return self.interrupts[0] if self.interrupts else None

    def remove_interrupt(self, event_id: str) -> None:
        self.interrupts = [i for i in self.interrupts if i.event_id != event_id]

    def clear_interrupts(self) -> None:
        self.interrupts = []

    @property
    def has_interrupts(self) -> bool:
        return bool(self.interrupts)

    def should_pause_for_interrupt(self, auto_pause_on_important: bool) -> bool:
        top = self.next_interrupt()
        if top is None:
            return False
        if top.priority == "critical":
            return True
        return top.priority == "important" and auto_pause_on_important

    # --- History ---

    def complete_event(
        self,
        event_id: str,
        choice_id: str,
        date: GameDate,
        outcomes: list[EventOutcome] | tuple[EventOutcome, ...],
    ) -> CompletedEvent:
        record = CompletedEvent(event_id, choice_id, date, tuple(outcomes))
        self.history.append(record)
        self.completed_ids.add(event_id)
        self.remove_queued(event_id)
        return record

    def has_completed(self, event_id: str) -> bool:
        return event_id in self.completed_ids

    # --- Display ---

    def set_current_event(self, event: GameEvent) -> None:
        self.current_event = event
        self.outcome_text = None
        self.showing_outcome = False

    def clear_current_event(self) -> None:
        self.current_event = None
        self.outcome_text = None
        self.showing_outcome = False

    def show_outcome(self, text: str) -> None:
        self.outcome_text = text
        self.showing_outcome = True

    def hide_outcome(self) -> None:
        self.showing_outcome = False

    # --- Chains ---

    def start_chain(self, chain: EventChain) -> str | None:
        """Activate *chain* and return its first event id."""
        if not chain.event_ids or self.is_chain_active(chain.id):
            return None
        self.chains.append(ActiveChain(chain.id, chain.event_ids))
        return chain.event_ids[0]

    def advance_chain(self, chain_id: str) -> str | None:
        """Step *chain_id* forward. Returns the next event id, None when finished."""
        for chain in self.chains:
            if chain.chain_id != chain_id:
                continue
            chain.position += 1
            if chain.position >= len(chain.event_ids):
                self.chains.remove(chain)
                return None
            return chain.event_ids[chain.position]
        return None

    def is_chain_active(self, chain_id: str) -> bool:
        return any(c.chain_id == chain_id for c in self.chains)

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "queue": [{"event_id": q.event_id, "priority": q.priority} for q in self.queue],
            "scheduled": [
                {"event_id": s.event_id, "date": s.date.to_dict()} for s in self.scheduled
            ],
            "interrupts": [
                {"event_id": i.event_id, "priority": i.priority, "date": i.date.to_dict()}
                for i in self.interrupts
            ],
            "history": [
                {
                    "event_id": c.event_id,
                    "choice_id": c.choice_id,
                    "date": c.date.to_dict(),
                    "outcomes": [o.to_dict() for o in c.outcomes],
                }
                for c in self.history
            ],
            "completed_ids": sorted(self.completed_ids),
            "chains": [
                {"chain_id": c.chain_id, "event_ids": list(c.event_ids), "position": c.position}
                for c in self.chains
            ],
            "current_event_id": self.current_event.id if self.current_event else None,
            "outcome_text": self.outcome_text,
            "showing_outcome": self.showing_outcome,
        }

    def restore(self, data: dict[str, Any], catalog: ContentCatalog) -> None:
        """Restore from a snapshot. The shown event is resolved through *catalog*."""
        current_id = data.get("current_event_id")
        current = catalog.get_event(current_id) if current_id is not None else None
        if current_id is not None and current is None:
            raise SaveError(f"snapshot references unknown event {current_id!r}")

        queue = [QueuedEvent(q["event_id"], q.get("priority", 0)) for q in data.get("queue", [])]
        scheduled = [
            ScheduledEvent(s["event_id"], GameDate.from_dict(s["date"]))
            for s in data.get("scheduled", [])
        ]
        interrupts = [
            PendingInterrupt(i["event_id"], i["priority"], GameDate.from_dict(i["date"]))
            for i in data.get("interrupts", [])
        ]
        if any(i.priority not in INTERRUPT_PRIORITIES for i in interrupts):
            raise SaveError("snapshot contains an unknown interrupt priority")
        history = [
            CompletedEvent(
                c["event_id"],
                c["choice_id"],
                GameDate.from_dict(c["date"]),
                tuple(EventOutcome.from_dict(o) for o in c.get("outcomes", [])),
            )
            for c in data.get("history", [])
        ]
        chains = [
            ActiveChain(c["chain_id"], tuple(c["event_ids"]), c.get("position", 0))
            for c in data.get("chains", [])
        ]

        self.queue = queue
        self.scheduled = scheduled
        self.interrupts = interrupts
        self.history = history
        self.completed_ids = set(data.get("completed_ids", []))
        self.chains = chains
        self.current_event = current
        self.outcome_text = data.get("outcome_text")
        self.showing_outcome = data.get("showing_outcome", False)
