"""
Claim rules for the two assignment slots.

An order sits in the shared pool of every eligible worker of a role until its
slot is filled; the pool is never partitioned by identity. The store turns a
successful validation into a conditional write ("slot still empty, status
still X"), so only one claimant can ever win.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from cafeops.domain.enums import (
    ELIGIBLE_STAFF_STATUSES,
    SLOT_ROLE,
    OrderStatus,
    Slot,
    StaffRole,
)
from cafeops.domain.errors import AlreadyClaimed, InvalidState, NotOwner
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot

# Status an order must be in for its slot to be claimable
CLAIMABLE_STATUS = {
    Slot.KITCHEN: OrderStatus.PENDING,
    Slot.SERVICE: OrderStatus.READY,
}

SLOT_COLUMN = {
    Slot.KITCHEN: "kitchen_worker_id",
    Slot.SERVICE: "service_worker_id",
}


def check_eligible(staff: StaffSnapshot, slot: Slot) -> None:
    expected = SLOT_ROLE[slot]
    if staff.role != expected:
        raise NotOwner(f"{staff.role.value} staff {staff.id} cannot take the {slot.value.lower()} slot")
    if staff.status not in ELIGIBLE_STAFF_STATUSES:
        raise NotOwner(f"Staff {staff.id} is {staff.status.value}")


def check_admin(staff: StaffSnapshot) -> None:
    if staff.role != StaffRole.ADMIN or staff.status not in ELIGIBLE_STAFF_STATUSES:
        raise NotOwner(f"Staff {staff.id} is not an active admin")


def is_held_by(order: OrderSnapshot, slot: Slot, staff_id: int) -> bool:
    return order.slot_holder(slot) == staff_id


def validate_claim(order: OrderSnapshot, slot: Slot, staff_id: int) -> bool:
    """
    Returns True when the claim still has to be written, False when ``staff_id``
    already holds the slot (a retried claim). Raises AlreadyClaimed / InvalidState.
    """
    holder = order.slot_holder(slot)
    if holder == staff_id:
        return False
    if holder is not None:
        raise AlreadyClaimed(
            f"Order {order.id} {slot.value.lower()} slot is held by staff {holder}",
            order_id=order.id,
        )
    required = CLAIMABLE_STATUS[slot]
    if order.status != required:
        raise InvalidState(
            f"Order {order.id} is {order.status.value}; {slot.value.lower()} claims need {required.value}",
            order_id=order.id,
        )
    return True


def claim_changes(slot: Slot, staff_id: int, now: Optional[datetime] = None) -> dict:
    changes = {SLOT_COLUMN[slot]: staff_id}
    if slot == Slot.SERVICE:
        # start of service responsibility, used for serving-time metrics
        changes["accepted_at"] = now or datetime.now(timezone.utc)
    return changes


def in_pool(order: OrderSnapshot, slot: Slot) -> bool:
    return order.slot_holder(slot) is None and order.status == CLAIMABLE_STATUS[slot]


def shared_pool(orders: Iterable[OrderSnapshot], slot: Slot) -> List[OrderSnapshot]:
    return [o for o in orders if in_pool(o, slot)]
