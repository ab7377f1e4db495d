import logging
from datetime import datetime
from typing import List, Optional

import httpx
from pydantic import ValidationError

from cafeops.core.config import settings
from cafeops.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, Slot
from cafeops.domain.errors import ERRORS_BY_CODE, CafeOpsError, SyncFailure
from cafeops.domain.schemas import (
    AssignRequest,
    CancelRequest,
    ClaimRequest,
    OrderCreate,
    OrderLine,
    OrderSnapshot,
    PaymentUpdate,
    StaffSnapshot,
    StatusUpdate,
)
from cafeops.interfaces.IOrderStore import IOrderStore
from cafeops.interfaces.IStaffDirectory import IStaffDirectory

logger = logging.getLogger(__name__)


class HttpOrderStore(IOrderStore, IStaffDirectory):
    """
    Staff-client view of the Order Store over its REST API. Error bodies carry
    the same codes the server raised, so callers see the same exceptions as
    when talking to the SQL store directly.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(
            base_url=base_url or settings.ORDER_STORE_URL,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, body=None):
        payload = body.model_dump(mode="json", by_alias=True) if body is not None else None
        try:
            response = self.client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise SyncFailure(f"Order store request failed: {e}") from e

        if response.status_code >= 500:
            raise SyncFailure(f"Order store error {response.status_code} on {method} {path}")
        if response.is_error:
            raise self._error_from(response)
        try:
            return response.json()
        except ValueError as e:
            raise SyncFailure(f"Unreadable response to {method} {path}: {e}") from e

    @staticmethod
    def _validate(model, data):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Malformed {model.__name__} from order store: {e}")
            raise SyncFailure(f"Order store sent a malformed {model.__name__}") from e

    def _validate_all(self, model, data):
        if not isinstance(data, list):
            raise SyncFailure(f"Order store sent {type(data).__name__} where a list of {model.__name__} was expected")
        return [self._validate(model, item) for item in data]

    @staticmethod
    def _error_from(response: httpx.Response) -> CafeOpsError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        detail = body.get("detail") or response.text
        error_cls = ERRORS_BY_CODE.get(body.get("error"), CafeOpsError)
        return error_cls(str(detail), order_id=body.get("orderId"))

    # ---------------------------------------------------------
    # IOrderStore
    # ---------------------------------------------------------

    def list_orders(self) -> List[OrderSnapshot]:
        return self._validate_all(OrderSnapshot, self._request("GET", "/orders/all"))

    def get_order(self, order_id: int) -> OrderSnapshot:
        return self._validate(OrderSnapshot, self._request("GET", f"/orders/{order_id}"))

    def create_order(self, items: List[OrderLine], table_number: Optional[int] = None,
                     payment_method: PaymentMethod = PaymentMethod.COD,
                     created_at: Optional[datetime] = None) -> OrderSnapshot:
        # created_at is always assigned by the server here
        body = OrderCreate(items=items, table_number=table_number, payment_method=payment_method)
        return self._validate(OrderSnapshot, self._request("POST", "/orders", body))

    def set_status(self, order_id: int, status: OrderStatus, staff_id: int) -> OrderSnapshot:
        body = StatusUpdate(status=status, staff_id=staff_id)
        return self._validate(OrderSnapshot, self._request("PATCH", f"/orders/{order_id}/status", body))

    def claim_slot(self, order_id: int, slot: Slot, staff_id: int) -> OrderSnapshot:
        body = ClaimRequest(slot=slot, staff_id=staff_id)
        return self._validate(OrderSnapshot, self._request("PATCH", f"/orders/{order_id}/claim", body))

    def assign_slot(self, order_id: int, slot: Slot, staff_id: int, admin_id: int) -> OrderSnapshot:
        body = AssignRequest(slot=slot, staff_id=staff_id, admin_id=admin_id)
        return self._validate(OrderSnapshot, self._request("PATCH", f"/orders/{order_id}/assign-staff", body))

    def cancel(self, order_id: int, staff_id: int) -> OrderSnapshot:
        body = CancelRequest(staff_id=staff_id)
        return self._validate(OrderSnapshot, self._request("PATCH", f"/orders/{order_id}/cancel", body))

    def set_payment(self, order_id: int, method: PaymentMethod,
                    status: PaymentStatus = PaymentStatus.PAID) -> OrderSnapshot:
        body = PaymentUpdate(payment_method=method, payment_status=status)
        return self._validate(OrderSnapshot, self._request("PATCH", f"/orders/{order_id}/payment", body))

    # ---------------------------------------------------------
    # IStaffDirectory
    # ---------------------------------------------------------

    def list_staff(self) -> List[StaffSnapshot]:
        return self._validate_all(StaffSnapshot, self._request("GET", "/staff"))

    def get_staff(self, staff_id: int) -> StaffSnapshot:
        return self._validate(StaffSnapshot, self._request("GET", f"/staff/{staff_id}"))
