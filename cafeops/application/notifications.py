"""
Per-staff notification feed.

There is no event stream: every poll re-derives the current events from the
order snapshot, and the durable seen set decides which of them still light
up a badge. Ids are "<kind>-<orderId>", so the same order produces the same
event on every poll and on every reload.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from cafeops.application.assignment import shared_pool
from cafeops.application.views import TableReferencePolicy, staff_visible
from cafeops.domain.enums import OrderStatus, Slot, StaffRole
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot
from cafeops.interfaces.ISeenStore import ISeenStore

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    NEW_ORDER = "NEW_ORDER"                  # kitchen pool gained an order
    READY_FOR_SERVICE = "READY_FOR_SERVICE"  # service pool gained an order
    ADMIN_ASSIGNED = "ADMIN_ASSIGNED"        # kitchen slot filled for me but not started


@dataclass(frozen=True)
class StaffEvent:
    kind: EventKind
    order_id: int

    @property
    def event_id(self) -> str:
        return f"{self.kind.value}-{self.order_id}"


def parse_event_id(event_id: str) -> Optional[EventKind]:
    kind, sep, _ = event_id.rpartition("-")
    if not sep:
        return None
    try:
        return EventKind(kind)
    except ValueError:
        return None


def derive_events(orders: Iterable[OrderSnapshot], me: StaffSnapshot,
                  policy: TableReferencePolicy) -> List[StaffEvent]:
    visible = staff_visible(orders, policy)
    events: List[StaffEvent] = []
    if me.role in (StaffRole.CHEF, StaffRole.ADMIN):
        events.extend(StaffEvent(EventKind.NEW_ORDER, o.id) for o in shared_pool(visible, Slot.KITCHEN))
    if me.role == StaffRole.CHEF:
        # A chef who claims an order starts it straight away, so a PENDING order
        # held by me was put there by an admin
        events.extend(
            StaffEvent(EventKind.ADMIN_ASSIGNED, o.id)
            for o in visible
            if o.kitchen_worker_id == me.id and o.status == OrderStatus.PENDING
        )
    if me.role == StaffRole.WAITER:
        events.extend(StaffEvent(EventKind.READY_FOR_SERVICE, o.id) for o in shared_pool(visible, Slot.SERVICE))
    return events


def compute_unseen(events: Iterable[StaffEvent], seen: Set[str]) -> List[StaffEvent]:
    return [e for e in events if e.event_id not in seen]


class SeenTracker:
    """Seen set for one staff identity, cached in memory and written through to the store."""

    def __init__(self, store: ISeenStore, staff_id: int):
        self.store = store
        self.staff_id = staff_id
        self._cache: Dict[EventKind, Set[str]] = {}
        # Read every kind up front, while the backing store is known to answer
        for kind in EventKind:
            self.seen(kind)

    def seen(self, kind: EventKind) -> Set[str]:
        if kind not in self._cache:
            self._cache[kind] = set(self.store.load(self.staff_id, kind.value))
        return self._cache[kind]

    def seen_ids(self) -> Set[str]:
        ids: Set[str] = set()
        for kind in EventKind:
            ids |= self.seen(kind)
        return ids

    def unseen(self, events: Iterable[StaffEvent]) -> List[StaffEvent]:
        return [e for e in events if e.event_id not in self.seen(e.kind)]

    def mark_seen(self, event_ids: Iterable[str]) -> None:
        """Union ids into the seen set. Never removes anything."""
        by_kind: Dict[EventKind, Set[str]] = {}
        for event_id in event_ids:
            kind = parse_event_id(event_id)
            if kind is None:
                logger.warning(f"Ignoring malformed event id {event_id!r}")
                continue
            by_kind.setdefault(kind, set()).add(event_id)

        for kind, ids in by_kind.items():
            new_ids = ids - self.seen(kind)
            if not new_ids:
                continue
            self.store.add(self.staff_id, kind.value, new_ids)
            self._cache[kind].update(new_ids)

    def open_view(self, kind: EventKind, events: Iterable[StaffEvent]) -> None:
        """The user opened the tab for ``kind``: everything of that kind now on screen is seen."""
        self.mark_seen(e.event_id for e in events if e.kind == kind)

    def reset(self, kind: Optional[EventKind] = None) -> None:
        for k in ([kind] if kind else list(EventKind)):
            self.store.clear(self.staff_id, k.value)
            self._cache.pop(k, None)
