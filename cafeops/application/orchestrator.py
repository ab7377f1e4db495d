import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from cafeops.application.notifications import EventKind, SeenTracker
from cafeops.application.sync_loop import StaffSession, SyncLoop
from cafeops.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, Slot
from cafeops.domain.errors import CafeOpsError, SyncFailure
from cafeops.domain.schemas import OrderSnapshot
from cafeops.interfaces.IOrderStore import IOrderStore
from cafeops.interfaces.IStaffDirectory import IStaffDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    action: str
    order: Optional[OrderSnapshot] = None
    error: Optional[CafeOpsError] = None

    @property
    def notice(self) -> Optional[str]:
        """Non-blocking message (lost race, store unreachable)."""
        if self.error is not None and self.error.recoverable:
            return self.error.message
        return None

    @property
    def blocking(self) -> bool:
        return self.error is not None and not self.error.recoverable


class StaffOrchestrator:
    """
    Staff-facing actions. Every action is a single attempt: the result is
    reported, the session re-syncs, and the user decides whether to try again.
    """

    def __init__(self, store: IOrderStore, directory: IStaffDirectory,
                 session: StaffSession, tracker: SeenTracker, loop: Optional[SyncLoop] = None):
        self.store = store
        self.session = session
        self.tracker = tracker
        self.loop = loop or SyncLoop(store, directory, session, tracker)

    @property
    def me(self) -> int:
        return self.session.staff_id

    # --- KITCHEN ---

    async def accept_order(self, order_id: int) -> ActionResult:
        """Claim the kitchen slot, then start cooking. Both steps are safe to repeat."""
        def claim_and_start():
            self.store.claim_slot(order_id, Slot.KITCHEN, self.me)
            return self.store.set_status(order_id, OrderStatus.IN_PROGRESS, self.me)
        return await self._perform("accept_order", order_id, claim_and_start)

    async def start_order(self, order_id: int) -> ActionResult:
        """Start an order an admin assigned to me."""
        return await self._perform(
            "start_order", order_id,
            lambda: self.store.set_status(order_id, OrderStatus.IN_PROGRESS, self.me),
        )

    async def mark_ready(self, order_id: int) -> ActionResult:
        return await self._perform(
            "mark_ready", order_id,
            lambda: self.store.set_status(order_id, OrderStatus.READY, self.me),
        )

    # --- SERVICE ---

    async def accept_ready_order(self, order_id: int) -> ActionResult:
        return await self._perform(
            "accept_ready_order", order_id,
            lambda: self.store.claim_slot(order_id, Slot.SERVICE, self.me),
        )

    async def mark_served(self, order_id: int) -> ActionResult:
        return await self._perform(
            "mark_served", order_id,
            lambda: self.store.set_status(order_id, OrderStatus.SERVED, self.me),
        )

    async def mark_paid(self, order_id: int, method: PaymentMethod = PaymentMethod.CASH) -> ActionResult:
        return await self._perform(
            "mark_paid", order_id,
            lambda: self.store.set_payment(order_id, method, PaymentStatus.PAID),
        )

    # --- ADMIN ---

    async def assign_staff(self, order_id: int, slot: Slot, staff_id: int) -> ActionResult:
        return await self._perform(
            "assign_staff", order_id,
            lambda: self.store.assign_slot(order_id, slot, staff_id, self.me),
        )

    async def cancel_order(self, order_id: int) -> ActionResult:
        return await self._perform(
            "cancel_order", order_id,
            lambda: self.store.cancel(order_id, self.me),
        )

    # --- NOTIFICATIONS ---

    def open_view(self, kind: EventKind) -> None:
        """Opening a tab marks what it shows as seen; events in background lists stay unread."""
        self.tracker.open_view(kind, self.session.events)
        self.session.unseen = self.tracker.unseen(self.session.events)

    def unseen_count(self, kind: Optional[EventKind] = None) -> int:
        return sum(1 for e in self.session.unseen if kind is None or e.kind == kind)

    # --- INTERNALS ---

    async def _perform(self, action: str, order_id: int,
                       operation: Callable[[], OrderSnapshot]) -> ActionResult:
        if self.session.needs_resync and not await self.loop.sync():
            # Still looking at a view we know is stale; don't act on it
            return ActionResult(ok=False, action=action,
                                error=SyncFailure("Refresh failed; try again once the view has updated",
                                                  order_id=order_id))
        try:
            order = await asyncio.to_thread(operation)
        except CafeOpsError as e:
            result = ActionResult(ok=False, action=action, error=e)
            if e.recoverable:
                logger.info(f"{action} on order {order_id} by staff {self.me}: {e.code}")
            else:
                self.session.needs_resync = True
                logger.warning(f"{action} on order {order_id} by staff {self.me} rejected: {e.code} {e.message}")
        else:
            # Not trusted until a poll shows it
            self.session.record_write(order)
            result = ActionResult(ok=True, action=action, order=order)

        await self.loop.sync()
        return result
