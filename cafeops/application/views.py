"""
Role views derived from one order snapshot. These are pure functions of the
snapshot, so the polling transport can be swapped without touching them.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional

from cafeops.application.assignment import shared_pool
from cafeops.application.workload import cafe_timezone, report_timestamp, workload_summary
from cafeops.core.config import settings
from cafeops.domain.enums import OrderStatus, PaymentStatus, Slot, StaffRole
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot, WorkloadSample


class TableReferencePolicy(str, Enum):
    """
    Whether orders without a table reference reach staff views.
    REQUIRE_TABLE hides them (they stay in the raw snapshot); ALLOW_MISSING
    shows them, e.g. for takeaway orders.
    """
    REQUIRE_TABLE = "REQUIRE_TABLE"
    ALLOW_MISSING = "ALLOW_MISSING"

    @classmethod
    def from_settings(cls) -> "TableReferencePolicy":
        return cls.REQUIRE_TABLE if settings.REQUIRE_TABLE_REFERENCE else cls.ALLOW_MISSING


def staff_visible(orders: Iterable[OrderSnapshot], policy: TableReferencePolicy) -> List[OrderSnapshot]:
    if policy == TableReferencePolicy.ALLOW_MISSING:
        return list(orders)
    return [o for o in orders if o.table_number is not None]


KITCHEN_ACTIVE = frozenset({OrderStatus.PENDING, OrderStatus.IN_PROGRESS})
KITCHEN_DONE = frozenset({OrderStatus.READY, OrderStatus.SERVED, OrderStatus.CANCELLED})


@dataclass(frozen=True)
class KitchenView:
    pool: List[OrderSnapshot] = field(default_factory=list)
    active: List[OrderSnapshot] = field(default_factory=list)
    history: List[OrderSnapshot] = field(default_factory=list)
    done_today: List[OrderSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceView:
    pool: List[OrderSnapshot] = field(default_factory=list)
    active: List[OrderSnapshot] = field(default_factory=list)
    history: List[OrderSnapshot] = field(default_factory=list)
    awaiting_payment: List[OrderSnapshot] = field(default_factory=list)
    served_today: List[OrderSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class AdminView:
    orders: List[OrderSnapshot] = field(default_factory=list)
    unassigned: Dict[Slot, int] = field(default_factory=dict)
    kitchen_workload: List[WorkloadSample] = field(default_factory=list)
    service_workload: List[WorkloadSample] = field(default_factory=list)


def _is_today(order: OrderSnapshot, now: datetime, tz) -> bool:
    moment = report_timestamp(order)
    return moment is not None and moment.astimezone(tz).date() == now.astimezone(tz).date()


def kitchen_view(orders: Iterable[OrderSnapshot], staff_id: int, now: datetime, tz=None) -> KitchenView:
    tz = tz or cafe_timezone()
    orders = list(orders)
    mine = [o for o in orders if o.kitchen_worker_id == staff_id]
    history = [o for o in mine if o.status in KITCHEN_DONE]
    return KitchenView(
        pool=shared_pool(orders, Slot.KITCHEN),
        active=[o for o in mine if o.status in KITCHEN_ACTIVE],
        history=history,
        done_today=[o for o in history if o.status != OrderStatus.CANCELLED and _is_today(o, now, tz)],
    )


def service_view(orders: Iterable[OrderSnapshot], staff_id: int, now: datetime, tz=None) -> ServiceView:
    tz = tz or cafe_timezone()
    orders = list(orders)
    mine = [o for o in orders if o.service_worker_id == staff_id]
    served = [o for o in mine if o.status == OrderStatus.SERVED]
    return ServiceView(
        pool=shared_pool(orders, Slot.SERVICE),
        active=[o for o in mine if o.status == OrderStatus.READY],
        history=served,
        awaiting_payment=[o for o in served if o.payment_status == PaymentStatus.PENDING],
        served_today=[o for o in served if _is_today(o, now, tz)],
    )


def admin_view(orders: Iterable[OrderSnapshot], staff: Iterable[StaffSnapshot]) -> AdminView:
    orders = list(orders)
    staff = list(staff)
    return AdminView(
        orders=orders,
        unassigned={slot: len(shared_pool(orders, slot)) for slot in Slot},
        kitchen_workload=workload_summary(orders, staff, Slot.KITCHEN),
        service_workload=workload_summary(orders, staff, Slot.SERVICE),
    )


def derive_view(orders: Iterable[OrderSnapshot], staff: Iterable[StaffSnapshot], me: StaffSnapshot,
                policy: TableReferencePolicy, now: Optional[datetime] = None, tz=None):
    """The view for ``me``'s role, computed from the policy-filtered snapshot."""
    now = now or datetime.now(timezone.utc)
    visible = staff_visible(orders, policy)
    if me.role == StaffRole.CHEF:
        return kitchen_view(visible, me.id, now, tz)
    if me.role == StaffRole.WAITER:
        return service_view(visible, me.id, now, tz)
    return admin_view(visible, staff)
