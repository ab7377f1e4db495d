from cafeops.application.notifications import (
    EventKind,
    SeenTracker,
    StaffEvent,
    compute_unseen,
    derive_events,
    parse_event_id,
)
from cafeops.application.views import TableReferencePolicy
from cafeops.domain.enums import OrderStatus, StaffRole
from cafeops.infrastructure.seen_store import JsonFileSeenStore

from conftest import make_order, make_staff

K1, W1 = 11, 21
REQUIRE = TableReferencePolicy.REQUIRE_TABLE

ORDERS = [
    make_order(1),
    make_order(2, kitchen_worker_id=K1),
    make_order(3, OrderStatus.IN_PROGRESS, kitchen_worker_id=K1),
    make_order(4, OrderStatus.READY, kitchen_worker_id=K1),
    make_order(5, table_number=None),
]


def event_ids(events):
    return sorted(e.event_id for e in events)


class TestDeriveEvents:

    def test_chef_events(self):
        events = derive_events(ORDERS, make_staff(K1, StaffRole.CHEF), REQUIRE)
        assert event_ids(events) == ["ADMIN_ASSIGNED-2", "NEW_ORDER-1"]

    def test_waiter_events(self):
        events = derive_events(ORDERS, make_staff(W1, StaffRole.WAITER), REQUIRE)
        assert event_ids(events) == ["READY_FOR_SERVICE-4"]

    def test_same_snapshot_gives_same_ids(self):
        me = make_staff(K1, StaffRole.CHEF)
        assert derive_events(ORDERS, me, REQUIRE) == derive_events(list(ORDERS), me, REQUIRE)

    def test_policy_applies_to_events(self):
        events = derive_events(ORDERS, make_staff(K1, StaffRole.CHEF), TableReferencePolicy.ALLOW_MISSING)
        assert "NEW_ORDER-5" in event_ids(events)

    def test_parse_event_id(self):
        assert parse_event_id("READY_FOR_SERVICE-42") == EventKind.READY_FOR_SERVICE
        assert parse_event_id("garbage") is None
        assert parse_event_id("UNKNOWN-3") is None


class TestSeenTracker:

    def _tracker(self, tmp_path, staff_id=K1):
        return SeenTracker(JsonFileSeenStore(tmp_path / "seen.json"), staff_id)

    def test_compute_unseen(self):
        events = [StaffEvent(EventKind.NEW_ORDER, 1), StaffEvent(EventKind.NEW_ORDER, 2)]
        assert compute_unseen(events, {"NEW_ORDER-1"}) == [StaffEvent(EventKind.NEW_ORDER, 2)]

    def test_mark_seen_is_idempotent(self, tmp_path):
        tracker = self._tracker(tmp_path)
        tracker.mark_seen(["NEW_ORDER-1", "NEW_ORDER-2"])
        once = tracker.seen_ids()
        tracker.mark_seen(["NEW_ORDER-1", "NEW_ORDER-2"])
        assert tracker.seen_ids() == once == {"NEW_ORDER-1", "NEW_ORDER-2"}

    def test_unseen_count_never_increases_without_new_events(self, tmp_path):
        tracker = self._tracker(tmp_path)
        events = derive_events(ORDERS, make_staff(K1, StaffRole.CHEF), REQUIRE)
        counts = [len(tracker.unseen(events))]
        for event in events:
            tracker.mark_seen([event.event_id])
            counts.append(len(tracker.unseen(events)))
        tracker.mark_seen([])
        counts.append(len(tracker.unseen(events)))
        assert counts == sorted(counts, reverse=True)
        assert counts[-1] == 0

    def test_survives_restart(self, tmp_path):
        self._tracker(tmp_path).mark_seen(["NEW_ORDER-1"])
        reloaded = self._tracker(tmp_path)
        events = [StaffEvent(EventKind.NEW_ORDER, 1), StaffEvent(EventKind.NEW_ORDER, 2)]
        assert reloaded.unseen(events) == [StaffEvent(EventKind.NEW_ORDER, 2)]

    def test_seen_state_is_per_staff(self, tmp_path):
        self._tracker(tmp_path, K1).mark_seen(["NEW_ORDER-1"])
        other = self._tracker(tmp_path, 99)
        assert other.unseen([StaffEvent(EventKind.NEW_ORDER, 1)]) == [StaffEvent(EventKind.NEW_ORDER, 1)]

    def test_open_view_only_marks_that_kind(self, tmp_path):
        tracker = self._tracker(tmp_path)
        events = derive_events(ORDERS, make_staff(K1, StaffRole.CHEF), REQUIRE)
        tracker.open_view(EventKind.NEW_ORDER, events)
        assert event_ids(tracker.unseen(events)) == ["ADMIN_ASSIGNED-2"]

    def test_malformed_ids_are_ignored(self, tmp_path):
        tracker = self._tracker(tmp_path)
        tracker.mark_seen(["nonsense"])
        assert tracker.seen_ids() == set()

    def test_reset_is_explicit(self, tmp_path):
        tracker = self._tracker(tmp_path)
        tracker.mark_seen(["NEW_ORDER-1", "ADMIN_ASSIGNED-2"])
        tracker.reset(EventKind.NEW_ORDER)
        assert tracker.seen_ids() == {"ADMIN_ASSIGNED-2"}
        tracker.reset()
        assert tracker.seen_ids() == set()
