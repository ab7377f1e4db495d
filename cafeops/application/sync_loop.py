"""
Client synchronisation: each staff client periodically pulls the full order
list and staff directory and re-derives everything from that snapshot.
A failed pull keeps the previous snapshot on screen and simply tries again
on the next tick.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from cafeops.application.notifications import SeenTracker, StaffEvent, derive_events
from cafeops.application.state_machine import FORWARD_PATH
from cafeops.application.views import TableReferencePolicy, derive_view
from cafeops.core.config import settings
from cafeops.domain.enums import ELIGIBLE_STAFF_STATUSES, OrderStatus, Slot
from cafeops.domain.errors import CafeOpsError, NotOwner
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot
from cafeops.interfaces.IOrderStore import IOrderStore
from cafeops.interfaces.IStaffDirectory import IStaffDirectory

logger = logging.getLogger(__name__)


def reflects(current: OrderSnapshot, written: OrderSnapshot) -> bool:
    """Whether a polled order shows (or has moved past) what our write returned."""
    for slot in Slot:
        holder = written.slot_holder(slot)
        if holder is not None and current.slot_holder(slot) != holder:
            return False
    if current.payment_status != written.payment_status:
        return False
    if current.status == written.status or current.status == OrderStatus.CANCELLED:
        return True
    if current.status in FORWARD_PATH and written.status in FORWARD_PATH:
        return FORWARD_PATH.index(current.status) > FORWARD_PATH.index(written.status)
    return False


@dataclass
class StaffSession:
    """Everything one logged-in staff client knows. Passed around explicitly."""

    staff: StaffSnapshot
    policy: TableReferencePolicy
    orders: List[OrderSnapshot] = field(default_factory=list)
    staff_list: List[StaffSnapshot] = field(default_factory=list)
    view: object = None
    events: List[StaffEvent] = field(default_factory=list)
    unseen: List[StaffEvent] = field(default_factory=list)
    last_synced_at: Optional[datetime] = None
    last_error: Optional[CafeOpsError] = None
    # Set after a blocking error; no mutation until a fresh poll has landed
    needs_resync: bool = False
    # Our own writes, keyed by order id, until a poll shows them
    unconfirmed: Dict[int, OrderSnapshot] = field(default_factory=dict)

    @classmethod
    def open(cls, directory: IStaffDirectory, staff_id: int,
             policy: Optional[TableReferencePolicy] = None) -> "StaffSession":
        staff = directory.get_staff(staff_id)
        if staff.status not in ELIGIBLE_STAFF_STATUSES:
            raise NotOwner(f"Staff {staff_id} is {staff.status.value}")
        return cls(staff=staff, policy=policy or TableReferencePolicy.from_settings())

    @property
    def staff_id(self) -> int:
        return self.staff.id

    def record_write(self, order: OrderSnapshot) -> None:
        self.unconfirmed[order.id] = order

    def is_confirmed(self, order_id: int) -> bool:
        return order_id not in self.unconfirmed

    def apply_snapshot(self, orders: List[OrderSnapshot], staff_list: List[StaffSnapshot],
                       tracker: SeenTracker, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        self.orders = list(orders)
        self.staff_list = list(staff_list)
        for member in self.staff_list:
            if member.id == self.staff.id:
                self.staff = member

        self.view = derive_view(self.orders, self.staff_list, self.staff, self.policy, now)
        self.events = derive_events(self.orders, self.staff, self.policy)
        self.unseen = tracker.unseen(self.events)

        by_id = {o.id: o for o in self.orders}
        for order_id, written in list(self.unconfirmed.items()):
            current = by_id.get(order_id)
            if current is None or reflects(current, written):
                self.unconfirmed.pop(order_id)

        self.last_synced_at = now
        self.last_error = None
        self.needs_resync = False


class SyncLoop:
    def __init__(self, store: IOrderStore, directory: IStaffDirectory, session: StaffSession,
                 tracker: SeenTracker, interval: Optional[float] = None):
        self.store = store
        self.directory = directory
        self.session = session
        self.tracker = tracker
        self.interval = settings.SYNC_INTERVAL_SECONDS if interval is None else interval

    async def sync(self) -> bool:
        """One pull-and-rederive pass. Returns False (state untouched) on failure."""
        try:
            orders, staff_list = await asyncio.gather(
                asyncio.to_thread(self.store.list_orders),
                asyncio.to_thread(self.directory.list_staff),
            )
        except CafeOpsError as e:
            self.session.last_error = e
            logger.warning(f"Sync failed for staff {self.session.staff_id}: {e.code} {e.message}")
            return False

        self.session.apply_snapshot(orders, staff_list, self.tracker)
        return True

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info(f"Sync loop started for staff {self.session.staff_id} every {self.interval}s")
        while not stop_event.is_set():
            try:
                await self.sync()
            except Exception as e:
                # keep polling whatever happened on this tick
                logger.error(f"Unexpected sync error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info(f"Sync loop stopped for staff {self.session.staff_id}")
