from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime

from cafeops.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, Slot
from cafeops.domain.schemas import OrderLine, OrderSnapshot

class IOrderStore(ABC):
    """
    The durable record of orders. Only single-row atomic updates are assumed,
    so every mutation must be a conditional write.
    """

    @abstractmethod
    def list_orders(self) -> List[OrderSnapshot]:
        pass

    @abstractmethod
    def get_order(self, order_id: int) -> OrderSnapshot:
        pass

    @abstractmethod
    def create_order(self, items: List[OrderLine], table_number: Optional[int] = None,
                     payment_method: PaymentMethod = PaymentMethod.COD,
                     created_at: Optional[datetime] = None) -> OrderSnapshot:
        pass

    @abstractmethod
    def set_status(self, order_id: int, status: OrderStatus, staff_id: int) -> OrderSnapshot:
        pass

    @abstractmethod
    def claim_slot(self, order_id: int, slot: Slot, staff_id: int) -> OrderSnapshot:
        pass

    @abstractmethod
    def assign_slot(self, order_id: int, slot: Slot, staff_id: int, admin_id: int) -> OrderSnapshot:
        pass

    @abstractmethod
    def cancel(self, order_id: int, staff_id: int) -> OrderSnapshot:
        pass

    @abstractmethod
    def set_payment(self, order_id: int, method: PaymentMethod,
                    status: PaymentStatus = PaymentStatus.PAID) -> OrderSnapshot:
        pass
