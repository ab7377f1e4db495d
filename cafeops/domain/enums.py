from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"          # kitchen-complete, waiting for service
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED})


class Slot(str, Enum):
    KITCHEN = "KITCHEN"
    SERVICE = "SERVICE"


class StaffRole(str, Enum):
    CHEF = "CHEF"
    WAITER = "WAITER"
    ADMIN = "ADMIN"


class StaffStatus(str, Enum):
    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


# Invited staff may already work orders before finishing activation
ELIGIBLE_STAFF_STATUSES = frozenset({StaffStatus.ACTIVE, StaffStatus.INVITED})

SLOT_ROLE = {
    Slot.KITCHEN: StaffRole.CHEF,
    Slot.SERVICE: StaffRole.WAITER,
}

ROLE_SLOT = {role: slot for slot, role in SLOT_ROLE.items()}


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    COD = "COD"       # pay on delivery
    CASH = "CASH"
    CARD = "CARD"
    ONLINE = "ONLINE"
