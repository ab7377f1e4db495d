from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytz

from cafeops.application import workload
from cafeops.application.workload import ReportingWindow, WindowKind
from cafeops.domain.enums import OrderStatus, Slot, StaffRole, StaffStatus

from conftest import CROISSANT, LATTE, NOW, make_order, make_staff

K1, K2, W1 = 11, 12, 21


def served(order_id, accepted_minutes_ago, served_minutes_ago, waiter=W1):
    return make_order(
        order_id,
        status=OrderStatus.SERVED,
        kitchen_worker_id=K1,
        service_worker_id=waiter,
        accepted_at=NOW - timedelta(minutes=accepted_minutes_ago),
        served_at=NOW - timedelta(minutes=served_minutes_ago),
    )


class TestWorkload:

    def test_kitchen_counts_pending_and_in_progress_only(self):
        orders = [
            make_order(1, kitchen_worker_id=K1),
            make_order(2, OrderStatus.IN_PROGRESS, kitchen_worker_id=K1),
            make_order(3, OrderStatus.READY, kitchen_worker_id=K1),
            make_order(4, OrderStatus.SERVED, kitchen_worker_id=K1, service_worker_id=W1),
            make_order(5, OrderStatus.CANCELLED, kitchen_worker_id=K1),
            make_order(6, OrderStatus.IN_PROGRESS, kitchen_worker_id=K2),
        ]
        sample = workload.compute_workload(orders, K1, StaffRole.CHEF)
        assert sample.staff_id == K1
        assert sample.active_order_count == 2

    def test_service_counts_ready_until_served(self):
        orders = [
            make_order(1, OrderStatus.READY, kitchen_worker_id=K1, service_worker_id=W1),
            make_order(2, OrderStatus.SERVED, kitchen_worker_id=K1, service_worker_id=W1),
        ]
        assert workload.compute_workload(orders, W1, StaffRole.WAITER).active_order_count == 1

    def test_summary_only_eligible_staff_least_loaded_first(self):
        staff = [
            make_staff(K1, StaffRole.CHEF),
            make_staff(K2, StaffRole.CHEF, StaffStatus.INVITED),
            make_staff(13, StaffRole.CHEF, StaffStatus.INACTIVE),
            make_staff(W1, StaffRole.WAITER),
        ]
        orders = [
            make_order(1, OrderStatus.IN_PROGRESS, kitchen_worker_id=K1),
            make_order(2, kitchen_worker_id=K1),
        ]
        summary = workload.workload_summary(orders, staff, Slot.KITCHEN)
        assert [(s.staff_id, s.active_order_count) for s in summary] == [(K2, 0), (K1, 2)]
        assert workload.least_loaded(orders, staff, Slot.KITCHEN) == K2
        assert workload.least_loaded(orders, [], Slot.SERVICE) is None


class TestServingTime:

    def test_minutes_between_accept_and_serve(self):
        assert workload.serving_minutes(served(1, 20, 5)) == pytest.approx(15.0)

    @pytest.mark.parametrize("order", [
        served(1, 5, 20),                      # served before accepted: clock skew
        served(2, 10, 10),                     # zero duration
        served(3, 300, 0),                     # over the ceiling
        make_order(4, OrderStatus.SERVED, served_at=NOW),   # never accepted
        make_order(5, OrderStatus.READY, accepted_at=NOW),  # not served yet
    ])
    def test_unusable_samples_are_dropped(self, order):
        assert workload.serving_minutes(order, ceiling=180) is None

    def test_average_ignores_dropped_samples(self):
        orders = [served(1, 20, 10), served(2, 40, 10), served(3, 500, 0)]
        avg = workload.average_serving_minutes(orders, now=NOW, ceiling=180)
        assert avg == pytest.approx(20.0)

    def test_average_without_samples(self):
        assert workload.average_serving_minutes([], now=NOW) is None


class TestReportingWindow:

    def test_seven_days_starts_at_local_midnight_six_days_ago(self):
        start, end = ReportingWindow(WindowKind.LAST_7D).bounds(NOW, pytz.utc)
        assert start == datetime(2026, 10, 13, tzinfo=timezone.utc)
        assert end is None

    def test_window_uses_cafe_timezone(self):
        tz = pytz.timezone("America/Guayaquil")  # UTC-5
        start, _ = ReportingWindow(WindowKind.LAST_7D).bounds(NOW, tz)
        assert start == datetime(2026, 10, 13, 5, tzinfo=timezone.utc)

    def test_custom_range_is_inclusive_of_end_day(self):
        window = ReportingWindow.custom(date(2026, 10, 1), date(2026, 10, 2))
        start, end = window.bounds(NOW, pytz.utc)
        assert start == datetime(2026, 10, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 10, 3, tzinfo=timezone.utc)
        assert window.contains(datetime(2026, 10, 2, 23, 59, tzinfo=timezone.utc), NOW, pytz.utc)
        assert not window.contains(datetime(2026, 10, 3, tzinfo=timezone.utc), NOW, pytz.utc)

    def test_custom_range_must_be_ordered(self):
        with pytest.raises(ValueError):
            ReportingWindow.custom(date(2026, 10, 2), date(2026, 10, 1))

    def test_all_time_keeps_every_order(self):
        window = ReportingWindow()
        assert window.contains(datetime(2001, 1, 1, tzinfo=timezone.utc), NOW, pytz.utc)
        assert window.contains(None, NOW, pytz.utc)
        assert not ReportingWindow(WindowKind.LAST_7D).contains(None, NOW, pytz.utc)

    def test_orders_per_day_fills_empty_days(self):
        orders = [served(1, 30, 10), served(2, 60 * 24 * 2 + 30, 60 * 24 * 2)]
        counts = workload.orders_per_day(orders, ReportingWindow(WindowKind.LAST_7D), NOW, pytz.utc)
        assert len(counts) == 7
        assert counts[-1] == (date(2026, 10, 19), 1)
        assert counts[-3] == (date(2026, 10, 17), 1)
        assert sum(n for _, n in counts) == 2

    def test_orders_per_day_all_time_lists_only_active_days(self):
        orders = [served(1, 30, 10), served(2, 60 * 24 * 40 + 30, 60 * 24 * 40)]
        counts = workload.orders_per_day(orders, ReportingWindow(), NOW, pytz.utc)
        assert [n for _, n in counts] == [1, 1]
        assert counts[0][0] < counts[1][0]

    def test_thirty_day_window_excludes_older_orders(self):
        orders = [served(1, 30, 10), served(2, 60 * 24 * 40 + 30, 60 * 24 * 40)]
        kept = workload.filter_window(orders, ReportingWindow(WindowKind.LAST_30D), NOW, pytz.utc)
        assert [o.id for o in kept] == [1]


def test_staff_report_for_waiter():
    waiter = make_staff(W1, StaffRole.WAITER)
    orders = [
        served(1, 20, 10),
        served(2, 30, 10),
        make_order(3, OrderStatus.READY, kitchen_worker_id=K1, service_worker_id=W1, accepted_at=NOW),
    ]
    report = workload.staff_report(orders, waiter, ReportingWindow(WindowKind.LAST_7D), NOW, pytz.utc)
    assert report["activeOrders"] == 1
    assert report["finishedInWindow"] == 2
    assert report["avgPerDay"] == pytest.approx(0.3)
    assert report["avgServingMinutes"] == pytest.approx(15.0)


class TestRevenue:
    """Two billable days in the last week, one cancellation and one untimed order."""

    ORDERS = [
        served(1, 30, 10),
        make_order(2, items=[LATTE, CROISSANT], total=Decimal("12.25")),
        make_order(3, OrderStatus.SERVED, kitchen_worker_id=K1, service_worker_id=W1,
                   served_at=NOW - timedelta(days=2), total=Decimal("8.75")),
        make_order(4, OrderStatus.CANCELLED),
        make_order(5, items=[CROISSANT], total=Decimal("3.25"), created_at=None),
    ]
    WEEK = ReportingWindow(WindowKind.LAST_7D)

    def test_summary_skips_cancelled_revenue(self):
        summary = workload.revenue_summary(self.ORDERS, self.WEEK, NOW, pytz.utc)
        assert summary == {
            "totalRevenue": Decimal("30.00"),
            "totalOrders": 4,
            "activeDays": 2,
            "avgRevenuePerDay": Decimal("15.00"),
        }

    def test_all_time_includes_untimed_orders(self):
        summary = workload.revenue_summary(self.ORDERS, ReportingWindow(), NOW, pytz.utc)
        assert summary["totalRevenue"] == Decimal("33.25")
        assert summary["totalOrders"] == 5
        assert workload.orders_per_day(self.ORDERS, ReportingWindow(), NOW, pytz.utc) == [
            (date(2026, 10, 17), 1),
            (date(2026, 10, 19), 3),
        ]

    def test_revenue_per_day(self):
        per_day = workload.revenue_per_day(self.ORDERS, self.WEEK, NOW, pytz.utc)
        assert len(per_day) == 7
        assert per_day[-1] == (date(2026, 10, 19), Decimal("21.25"))
        assert per_day[-3] == (date(2026, 10, 17), Decimal("8.75"))
        assert per_day[0][1] == 0

    def test_today_window(self):
        per_day = workload.revenue_per_day(self.ORDERS, ReportingWindow(WindowKind.TODAY), NOW, pytz.utc)
        assert per_day == [(date(2026, 10, 19), Decimal("21.25"))]

    def test_status_counts(self):
        counts = workload.status_counts(self.ORDERS, self.WEEK, NOW, pytz.utc)
        assert counts == {
            OrderStatus.PENDING: 1,
            OrderStatus.IN_PROGRESS: 0,
            OrderStatus.READY: 0,
            OrderStatus.SERVED: 2,
            OrderStatus.CANCELLED: 1,
        }

    def test_top_items(self):
        top = workload.top_items(self.ORDERS, self.WEEK, NOW, pytz.utc)
        assert [(i.name, i.quantity, i.revenue) for i in top] == [
            ("Latte", 6, Decimal("27.00")),
            ("Croissant", 1, Decimal("3.25")),
        ]
        assert [i.name for i in workload.top_items(self.ORDERS, self.WEEK, NOW, pytz.utc, limit=1)] == ["Latte"]
