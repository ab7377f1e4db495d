"""
Wire/snapshot types.

Everything the staff clients derive is computed from these immutable
snapshots, never from live ORM rows, so the same code runs against the SQL
store in-process and against the REST API over HTTP.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cafeops.domain.enums import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Slot,
    StaffRole,
    StaffStatus,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OrderLine(CamelModel):
    menu_item_id: Optional[int] = None
    name: str
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal = Field(ge=0)


class OrderSnapshot(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: int
    status: OrderStatus
    items: List[OrderLine] = []
    total: Decimal
    kitchen_worker_id: Optional[int] = None
    service_worker_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    table_number: Optional[int] = None
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    served_at: Optional[datetime] = None

    @field_validator("created_at", "accepted_at", "served_at")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)

    def slot_holder(self, slot: Slot) -> Optional[int]:
        if slot == Slot.KITCHEN:
            return self.kitchen_worker_id
        return self.service_worker_id


class StaffSnapshot(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: Optional[str] = None
    role: StaffRole
    status: StaffStatus = StaffStatus.INVITED

    @property
    def identity_ref(self) -> str:
        return self.email or self.name


# ---------------------------------------------------------
# REQUEST BODIES
# ---------------------------------------------------------

class OrderCreate(CamelModel):
    items: List[OrderLine] = Field(min_length=1)
    table_number: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.COD


class StatusUpdate(CamelModel):
    status: OrderStatus
    staff_id: int


class ClaimRequest(CamelModel):
    slot: Slot
    staff_id: int


class AssignRequest(CamelModel):
    slot: Slot
    staff_id: int
    admin_id: int


class CancelRequest(CamelModel):
    staff_id: int


class PaymentUpdate(CamelModel):
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PAID


class StaffCreate(CamelModel):
    name: str
    email: Optional[str] = None
    role: StaffRole
    status: StaffStatus = StaffStatus.INVITED


class WorkloadSample(CamelModel):
    model_config = ConfigDict(frozen=True)

    staff_id: int
    active_order_count: int
