import os

# Must happen before cafeops.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_CONNECT_RETRIES", "1")
os.environ.setdefault("DB_CONNECT_WAIT_SECONDS", "0")
os.environ.setdefault("CAFE_TIMEZONE", "UTC")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from cafeops.domain import models  # noqa: F401
from cafeops.domain.enums import OrderStatus, StaffRole, StaffStatus
from cafeops.domain.schemas import OrderLine, OrderSnapshot, StaffCreate, StaffSnapshot
from cafeops.infrastructure.database import Base, build_engine
from cafeops.infrastructure.repositories.order_repository import SqlOrderStore
from cafeops.infrastructure.repositories.staff_repository import SqlStaffDirectory

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

LATTE = OrderLine(menu_item_id=1, name="Latte", quantity=2, unit_price=Decimal("4.50"))
CROISSANT = OrderLine(menu_item_id=7, name="Croissant", quantity=1, unit_price=Decimal("3.25"))


def make_order(order_id=1, status=OrderStatus.PENDING, **overrides) -> OrderSnapshot:
    """In-memory snapshot for the pure-function tests."""
    fields = dict(
        id=order_id,
        status=status,
        items=[LATTE],
        total=Decimal("9.00"),
        table_number=4,
        created_at=NOW - timedelta(minutes=30),
    )
    fields.update(overrides)
    return OrderSnapshot(**fields)


def make_staff(staff_id, role, status=StaffStatus.ACTIVE, name=None) -> StaffSnapshot:
    return StaffSnapshot(id=staff_id, name=name or f"staff-{staff_id}", role=role, status=status)


@pytest.fixture
def engine(tmp_path):
    # File-backed so the sync loop's worker threads each get their own connection
    engine = build_engine(f"sqlite:///{tmp_path / 'cafe.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return SqlOrderStore(session_factory)


@pytest.fixture
def directory(session_factory):
    return SqlStaffDirectory(session_factory)


@pytest.fixture
def crew(directory):
    """Two chefs, two waiters, an admin and a chef who has left."""
    def add(name, role, status=StaffStatus.ACTIVE):
        return directory.add_staff(
            StaffCreate(name=name, email=f"{name.lower()}@cafe.test", role=role, status=status)
        )

    return {
        "K1": add("Kira", StaffRole.CHEF),
        "K2": add("Kofi", StaffRole.CHEF, StaffStatus.INVITED),
        "W1": add("Wren", StaffRole.WAITER),
        "W2": add("Wes", StaffRole.WAITER),
        "ADMIN": add("Ada", StaffRole.ADMIN),
        "GONE": add("Gus", StaffRole.CHEF, StaffStatus.INACTIVE),
    }


@pytest.fixture
def new_order(store):
    def create(table_number=4, items=None, created_at=None):
        return store.create_order(items or [LATTE, CROISSANT], table_number=table_number,
                                  created_at=created_at)
    return create
