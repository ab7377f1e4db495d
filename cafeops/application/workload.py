"""
Read-side aggregation over an order snapshot: per-worker load, serving time,
revenue and reporting windows. Nothing here writes. An order without a
timestamp only counts towards all-time figures; it never fails a report.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import pytz

from cafeops.core.config import settings
from cafeops.domain.enums import (
    ELIGIBLE_STAFF_STATUSES,
    ROLE_SLOT,
    SLOT_ROLE,
    OrderStatus,
    Slot,
    StaffRole,
)
from cafeops.domain.schemas import OrderSnapshot, StaffSnapshot, WorkloadSample

# An order counts against its slot holder while it is in one of these
ACTIVE_STATUSES = {
    Slot.KITCHEN: frozenset({OrderStatus.PENDING, OrderStatus.IN_PROGRESS}),
    Slot.SERVICE: frozenset({OrderStatus.READY}),
}


def cafe_timezone():
    return pytz.timezone(settings.CAFE_TIMEZONE)


# ---------------------------------------------------------
# WORKLOAD
# ---------------------------------------------------------

def compute_workload(orders: Iterable[OrderSnapshot], staff_id: int, role: StaffRole) -> WorkloadSample:
    slot = ROLE_SLOT[role]
    active = ACTIVE_STATUSES[slot]
    count = sum(1 for o in orders if o.slot_holder(slot) == staff_id and o.status in active)
    return WorkloadSample(staff_id=staff_id, active_order_count=count)


def workload_summary(orders: Iterable[OrderSnapshot], staff: Iterable[StaffSnapshot],
                     slot: Slot) -> List[WorkloadSample]:
    """Load of every eligible worker for ``slot``, least loaded first."""
    orders = list(orders)
    role = SLOT_ROLE[slot]
    samples = [
        compute_workload(orders, member.id, role)
        for member in staff
        if member.role == role and member.status in ELIGIBLE_STAFF_STATUSES
    ]
    return sorted(samples, key=lambda s: (s.active_order_count, s.staff_id))


def least_loaded(orders: Iterable[OrderSnapshot], staff: Iterable[StaffSnapshot],
                 slot: Slot) -> Optional[int]:
    summary = workload_summary(orders, staff, slot)
    return summary[0].staff_id if summary else None


# ---------------------------------------------------------
# REPORTING WINDOWS
# ---------------------------------------------------------

class WindowKind(str, Enum):
    ALL = "ALL"
    TODAY = "TODAY"
    LAST_7D = "7D"
    LAST_30D = "30D"
    CUSTOM = "CUSTOM"


WINDOW_DAYS = {WindowKind.TODAY: 1, WindowKind.LAST_7D: 7, WindowKind.LAST_30D: 30}


@dataclass(frozen=True)
class ReportingWindow:
    kind: WindowKind = WindowKind.ALL
    start: Optional[date] = None   # CUSTOM only, inclusive
    end: Optional[date] = None     # CUSTOM only, inclusive

    @classmethod
    def custom(cls, start: date, end: date) -> "ReportingWindow":
        if end < start:
            raise ValueError("window end precedes start")
        return cls(WindowKind.CUSTOM, start, end)

    def days(self, now: datetime, tz=None) -> Optional[List[date]]:
        """Calendar days covered, oldest first; None for ALL."""
        tz = tz or cafe_timezone()
        if self.kind == WindowKind.ALL:
            return None
        if self.kind == WindowKind.CUSTOM:
            first, last = self.start, self.end
        else:
            last = now.astimezone(tz).date()
            first = last - timedelta(days=WINDOW_DAYS[self.kind] - 1)
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    def bounds(self, now: datetime, tz=None) -> Tuple[Optional[datetime], Optional[datetime]]:
        """[start, end) in UTC. Rolling windows start at local midnight and stay open-ended."""
        tz = tz or cafe_timezone()
        days = self.days(now, tz)
        if days is None:
            return None, None
        start = tz.localize(datetime.combine(days[0], time.min)).astimezone(timezone.utc)
        if self.kind != WindowKind.CUSTOM:
            return start, None
        end = tz.localize(datetime.combine(days[-1] + timedelta(days=1), time.min))
        return start, end.astimezone(timezone.utc)

    def contains(self, moment: Optional[datetime], now: datetime, tz=None) -> bool:
        if self.kind == WindowKind.ALL:
            return True
        if moment is None:
            return False
        start, end = self.bounds(now, tz)
        if start is not None and moment < start:
            return False
        if end is not None and moment >= end:
            return False
        return True


def report_timestamp(order: OrderSnapshot) -> Optional[datetime]:
    return order.served_at or order.created_at


def filter_window(orders: Iterable[OrderSnapshot], window: ReportingWindow,
                  now: Optional[datetime] = None, tz=None) -> List[OrderSnapshot]:
    now = now or datetime.now(timezone.utc)
    return [o for o in orders if window.contains(report_timestamp(o), now, tz)]


def local_day(order: OrderSnapshot, tz) -> Optional[date]:
    moment = report_timestamp(order)
    return moment.astimezone(tz).date() if moment is not None else None


def _per_day(totals: Dict[date, object], window: ReportingWindow, now: datetime, tz,
             empty) -> List[Tuple[date, object]]:
    days = window.days(now, tz)
    if days is None:
        return sorted(totals.items())
    return [(day, totals.get(day, empty)) for day in days]


def orders_per_day(orders: Iterable[OrderSnapshot], window: ReportingWindow,
                   now: Optional[datetime] = None, tz=None) -> List[Tuple[date, int]]:
    """Daily counts for charts. Bounded windows list every day, empty ones as 0;
    ALL lists only days that have orders."""
    now = now or datetime.now(timezone.utc)
    tz = tz or cafe_timezone()
    days = (local_day(o, tz) for o in filter_window(orders, window, now, tz))
    counts = Counter(day for day in days if day is not None)
    return _per_day(counts, window, now, tz, 0)


# ---------------------------------------------------------
# REVENUE & ITEMS
# ---------------------------------------------------------

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ItemStat:
    name: str
    quantity: int
    revenue: Decimal


def billable(orders: Iterable[OrderSnapshot]) -> List[OrderSnapshot]:
    return [o for o in orders if o.status != OrderStatus.CANCELLED]


def revenue_per_day(orders: Iterable[OrderSnapshot], window: ReportingWindow,
                    now: Optional[datetime] = None, tz=None) -> List[Tuple[date, Decimal]]:
    now = now or datetime.now(timezone.utc)
    tz = tz or cafe_timezone()
    totals: Dict[date, Decimal] = {}
    for order in billable(filter_window(orders, window, now, tz)):
        day = local_day(order, tz)
        if day is not None:
            totals[day] = totals.get(day, Decimal("0")) + order.total
    return _per_day(totals, window, now, tz, Decimal("0"))


def revenue_summary(orders: Iterable[OrderSnapshot], window: ReportingWindow,
                    now: Optional[datetime] = None, tz=None) -> Dict[str, object]:
    """Headline figures. The daily average is over days that had orders."""
    now = now or datetime.now(timezone.utc)
    tz = tz or cafe_timezone()
    in_window = filter_window(orders, window, now, tz)
    paid_for = billable(in_window)
    total = sum((o.total for o in paid_for), Decimal("0"))
    active_days = {d for d in (local_day(o, tz) for o in paid_for) if d is not None}
    return {
        "totalRevenue": total.quantize(CENT),
        "totalOrders": len(in_window),
        "activeDays": len(active_days),
        "avgRevenuePerDay": (total / (len(active_days) or 1)).quantize(CENT),
    }


def status_counts(orders: Iterable[OrderSnapshot], window: ReportingWindow,
                  now: Optional[datetime] = None, tz=None) -> Dict[OrderStatus, int]:
    counts = Counter(o.status for o in filter_window(orders, window, now, tz))
    return {status: counts.get(status, 0) for status in OrderStatus}


def top_items(orders: Iterable[OrderSnapshot], window: ReportingWindow,
              now: Optional[datetime] = None, tz=None, limit: int = 5) -> List[ItemStat]:
    """Best sellers by quantity; lines without a name are grouped by menu item id."""
    quantity: Counter = Counter()
    revenue: Dict[str, Decimal] = {}
    for order in billable(filter_window(orders, window, now, tz)):
        for line in order.items:
            name = line.name or f"#{line.menu_item_id or '?'}"
            quantity[name] += line.quantity
            revenue[name] = revenue.get(name, Decimal("0")) + line.unit_price * line.quantity
    ranked = sorted(quantity.items(), key=lambda item: (-item[1], item[0]))
    return [ItemStat(name, qty, revenue[name].quantize(CENT)) for name, qty in ranked[:limit]]


# ---------------------------------------------------------
# SERVING TIME
# ---------------------------------------------------------

def serving_minutes(order: OrderSnapshot, ceiling: Optional[float] = None) -> Optional[float]:
    """Minutes from service claim to served, or None when the sample is unusable
    (missing stamps, clock skew, or longer than the ceiling)."""
    ceiling = settings.SERVING_TIME_CEILING_MINUTES if ceiling is None else ceiling
    if order.status != OrderStatus.SERVED or order.accepted_at is None or order.served_at is None:
        return None
    minutes = (order.served_at - order.accepted_at).total_seconds() / 60.0
    if minutes <= 0 or minutes > ceiling:
        return None
    return minutes


def average_serving_minutes(orders: Iterable[OrderSnapshot], window: ReportingWindow = ReportingWindow(),
                            now: Optional[datetime] = None, ceiling: Optional[float] = None,
                            tz=None) -> Optional[float]:
    samples = [
        m for m in (serving_minutes(o, ceiling) for o in filter_window(orders, window, now, tz))
        if m is not None
    ]
    if not samples:
        return None
    return sum(samples) / len(samples)


def served_by(orders: Iterable[OrderSnapshot], staff_id: int) -> List[OrderSnapshot]:
    return [o for o in orders if o.service_worker_id == staff_id and o.status == OrderStatus.SERVED]


def staff_report(orders: Iterable[OrderSnapshot], staff: StaffSnapshot, window: ReportingWindow,
                 now: Optional[datetime] = None, tz=None) -> Dict[str, object]:
    """Per-worker figures the dashboards show for the selected window."""
    orders = list(orders)
    now = now or datetime.now(timezone.utc)
    slot = ROLE_SLOT.get(staff.role)
    if slot is None:
        return {}
    mine = [o for o in orders if o.slot_holder(slot) == staff.id]
    finished = [o for o in mine if o.status not in ACTIVE_STATUSES[slot]
                and o.status != OrderStatus.CANCELLED]
    in_window = filter_window(finished, window, now, tz)
    days = window.days(now, tz)
    report = {
        "staffId": staff.id,
        "activeOrders": compute_workload(orders, staff.id, staff.role).active_order_count,
        "finishedInWindow": len(in_window),
        "avgPerDay": round(len(in_window) / len(days), 1) if days else float(len(in_window)),
    }
    if slot == Slot.SERVICE:
        report["avgServingMinutes"] = average_serving_minutes(mine, window, now, tz=tz)
    return report
