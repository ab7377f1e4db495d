"""
Order lifecycle: PENDING -> IN_PROGRESS -> READY -> SERVED, with CANCELLED
reachable from any non-terminal status by an administrator.

Each forward edge belongs to one slot: the kitchen worker holding the order
starts and finishes cooking, the service worker holding it serves it. The
functions here are pure; the store applies their verdict with a conditional
write so a stale caller cannot overwrite a newer status.
"""
from datetime import datetime, timezone
from typing import Dict, Optional

from cafeops.domain.enums import OrderStatus, Slot, StaffRole, TERMINAL_STATUSES
from cafeops.domain.errors import InvalidTransition, NotOwner
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot

FORWARD_PATH = (
    OrderStatus.PENDING,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY,
    OrderStatus.SERVED,
)

TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Which slot holder may drive each forward edge
EDGE_SLOT = {
    (OrderStatus.PENDING, OrderStatus.IN_PROGRESS): Slot.KITCHEN,
    (OrderStatus.IN_PROGRESS, OrderStatus.READY): Slot.KITCHEN,
    (OrderStatus.READY, OrderStatus.SERVED): Slot.SERVICE,
}


def can_transition(src: OrderStatus, dst: OrderStatus) -> bool:
    return dst in TRANSITIONS.get(src, frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_forward_subsequence(history) -> bool:
    """True when ``history`` only ever moves forward one edge at a time,
    optionally ending in CANCELLED."""
    previous = None
    for status in history:
        if previous is not None and status != previous and not can_transition(previous, status):
            return False
        previous = status
    return True


def required_slot(src: OrderStatus, dst: OrderStatus) -> Optional[Slot]:
    return EDGE_SLOT.get((src, dst))


def is_idempotent_retry(order: OrderSnapshot, target: OrderStatus, staff_id: int) -> bool:
    """A repeated request for the status the order already has, by the worker
    who drove the edge into it, is answered with the current order."""
    if order.status != target:
        return False
    index = FORWARD_PATH.index(target) if target in FORWARD_PATH else 0
    if index == 0:
        return False
    slot = EDGE_SLOT[(FORWARD_PATH[index - 1], target)]
    return order.slot_holder(slot) == staff_id


def validate_transition(order: OrderSnapshot, target: OrderStatus, staff_id: int) -> Slot:
    """
    Check a forward edge and the actor's right to drive it.
    Returns the slot that authorises it; raises InvalidTransition / NotOwner.
    """
    if target == OrderStatus.CANCELLED:
        raise InvalidTransition(
            f"Order {order.id}: cancellation is an administrative action", order_id=order.id
        )
    if not can_transition(order.status, target):
        raise InvalidTransition(
            f"Order {order.id}: {order.status.value} -> {target.value} is not allowed",
            order_id=order.id,
        )
    slot = EDGE_SLOT[(order.status, target)]
    if order.slot_holder(slot) != staff_id:
        raise NotOwner(
            f"Staff {staff_id} does not hold the {slot.value.lower()} slot of order {order.id}",
            order_id=order.id,
        )
    return slot


def validate_cancel(order: OrderSnapshot, actor: StaffSnapshot) -> None:
    if actor.role != StaffRole.ADMIN:
        raise NotOwner(f"Only an admin may cancel order {order.id}", order_id=order.id)
    if is_terminal(order.status):
        raise InvalidTransition(
            f"Order {order.id} is already {order.status.value}", order_id=order.id
        )


def transition_changes(target: OrderStatus, now: Optional[datetime] = None) -> dict:
    """Column values written together with a status change.
    servedAt is stamped exactly when the order becomes SERVED."""
    changes = {"status": target.value}
    if target == OrderStatus.SERVED:
        changes["served_at"] = now or datetime.now(timezone.utc)
    return changes
