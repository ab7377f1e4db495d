from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import logging
from typing import List

from cafeops.application.workload import workload_summary
from cafeops.domain.enums import Slot
from cafeops.domain.errors import CafeOpsError, NotFound, NotOwner, SyncFailure
from cafeops.domain.schemas import (
    AssignRequest,
    CancelRequest,
    ClaimRequest,
    OrderCreate,
    OrderSnapshot,
    PaymentUpdate,
    StaffCreate,
    StaffSnapshot,
    StatusUpdate,
    WorkloadSample,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# Everything else (lost races, illegal edges, wrong status) is a 409 Conflict
HTTP_STATUS = {
    NotFound: 404,
    NotOwner: 403,
    SyncFailure: 503,
}


async def cafe_ops_error_handler(request: Request, exc: CafeOpsError):
    status_code = HTTP_STATUS.get(type(exc), 409)
    if exc.recoverable:
        logger.info(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message, "orderId": exc.order_id},
    )


# Stores are put on app.state by the composition root (main.py)
def get_order_store(request: Request):
    return request.app.state.order_store


def get_staff_directory(request: Request):
    return request.app.state.staff_directory


# ---------------------------------------------------------
# ORDERS
# ---------------------------------------------------------

@router.get("/orders/all", response_model=List[OrderSnapshot])
def list_orders(store=Depends(get_order_store)):
    return store.list_orders()


@router.get("/orders/{order_id}", response_model=OrderSnapshot)
def get_order(order_id: int, store=Depends(get_order_store)):
    return store.get_order(order_id)


@router.post("/orders", response_model=OrderSnapshot, status_code=201)
def create_order(payload: OrderCreate, store=Depends(get_order_store)):
    return store.create_order(payload.items, payload.table_number, payload.payment_method)


@router.patch("/orders/{order_id}/status", response_model=OrderSnapshot)
def set_status(order_id: int, payload: StatusUpdate, store=Depends(get_order_store)):
    return store.set_status(order_id, payload.status, payload.staff_id)


@router.patch("/orders/{order_id}/claim", response_model=OrderSnapshot)
def claim_slot(order_id: int, payload: ClaimRequest, store=Depends(get_order_store)):
    return store.claim_slot(order_id, payload.slot, payload.staff_id)


@router.patch("/orders/{order_id}/assign-staff", response_model=OrderSnapshot)
def assign_staff(order_id: int, payload: AssignRequest, store=Depends(get_order_store)):
    return store.assign_slot(order_id, payload.slot, payload.staff_id, payload.admin_id)


@router.patch("/orders/{order_id}/cancel", response_model=OrderSnapshot)
def cancel_order(order_id: int, payload: CancelRequest, store=Depends(get_order_store)):
    return store.cancel(order_id, payload.staff_id)


@router.patch("/orders/{order_id}/payment", response_model=OrderSnapshot)
def set_payment(order_id: int, payload: PaymentUpdate, store=Depends(get_order_store)):
    return store.set_payment(order_id, payload.payment_method, payload.payment_status)


# ---------------------------------------------------------
# STAFF
# ---------------------------------------------------------

@router.get("/staff", response_model=List[StaffSnapshot])
def list_staff(directory=Depends(get_staff_directory)):
    return directory.list_staff()


@router.get("/staff/{staff_id}", response_model=StaffSnapshot)
def get_staff(staff_id: int, directory=Depends(get_staff_directory)):
    return directory.get_staff(staff_id)


@router.post("/staff", response_model=StaffSnapshot, status_code=201)
def add_staff(payload: StaffCreate, directory=Depends(get_staff_directory)):
    return directory.add_staff(payload)


# ---------------------------------------------------------
# WORKLOAD (capacity hints for the admin assignment dropdown)
# ---------------------------------------------------------

@router.get("/admin/chefs/workload", response_model=List[WorkloadSample])
def chef_workload(store=Depends(get_order_store), directory=Depends(get_staff_directory)):
    return workload_summary(store.list_orders(), directory.list_staff(), Slot.KITCHEN)


@router.get("/admin/waiters/workload", response_model=List[WorkloadSample])
def waiter_workload(store=Depends(get_order_store), directory=Depends(get_staff_directory)):
    return workload_summary(store.list_orders(), directory.list_staff(), Slot.SERVICE)
