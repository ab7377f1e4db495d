import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from cafeops.application import assignment, state_machine
from cafeops.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, Slot
from cafeops.domain.errors import AlreadyClaimed, InvalidTransition, NotFound, SyncFailure
from cafeops.domain.models import Order, Staff
from cafeops.domain.schemas import OrderLine, OrderSnapshot, StaffSnapshot
from cafeops.infrastructure.database import SessionLocal
from cafeops.interfaces.IOrderStore import IOrderStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def order_total(items: List[OrderLine]) -> Decimal:
    return sum((line.unit_price * line.quantity for line in items), Decimal("0")).quantize(CENT)


class SqlOrderStore(IOrderStore):
    """
    Authoritative Order Store. Every mutation re-reads the row, validates the
    request against it, then issues an UPDATE whose WHERE clause repeats what
    was validated (status, slot emptiness, slot holder). A row count of zero
    means another writer got there first.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Order store DB error: {e}", exc_info=True)
            raise SyncFailure(f"Order store unavailable: {e}") from e
        finally:
            session.close()

    # ---------------------------------------------------------
    # READS
    # ---------------------------------------------------------

    def list_orders(self) -> List[OrderSnapshot]:
        with self._session() as session:
            rows = session.query(Order).order_by(desc(Order.created_at), desc(Order.id)).all()
            return [OrderSnapshot.model_validate(row) for row in rows]

    def get_order(self, order_id: int) -> OrderSnapshot:
        with self._session() as session:
            return self._load(session, order_id)

    def _load(self, session, order_id: int) -> OrderSnapshot:
        row = session.get(Order, order_id)
        if row is None:
            raise NotFound(f"Order {order_id} not found", order_id=order_id)
        return OrderSnapshot.model_validate(row)

    def _load_staff(self, session, staff_id: int) -> StaffSnapshot:
        row = session.get(Staff, staff_id)
        if row is None:
            raise NotFound(f"Staff {staff_id} not found")
        return StaffSnapshot.model_validate(row)

    def _conditional_update(self, session, order_id: int, conditions: list, changes: dict) -> bool:
        updated = (
            session.query(Order)
            .filter(Order.id == order_id, *conditions)
            .update(changes, synchronize_session=False)
        )
        if updated != 1:
            session.rollback()
            return False
        session.commit()
        return True

    # ---------------------------------------------------------
    # WRITES
    # ---------------------------------------------------------

    def create_order(self, items: List[OrderLine], table_number: Optional[int] = None,
                     payment_method: PaymentMethod = PaymentMethod.COD,
                     created_at: Optional[datetime] = None) -> OrderSnapshot:
        with self._session() as session:
            row = Order(
                status=OrderStatus.PENDING.value,
                items=[line.model_dump(mode="json", by_alias=True) for line in items],
                total=order_total(items),
                payment_method=payment_method.value,
                payment_status=PaymentStatus.PENDING.value,
                table_number=table_number,
                created_at=created_at or datetime.now(timezone.utc),
            )
            session.add(row)
            session.commit()
            logger.info(f"Order {row.id} created (table={table_number}, total={row.total})")
            return self._load(session, row.id)

    def set_status(self, order_id: int, status: OrderStatus, staff_id: int) -> OrderSnapshot:
        with self._session() as session:
            order = self._load(session, order_id)
            if state_machine.is_idempotent_retry(order, status, staff_id):
                return order
            slot = state_machine.validate_transition(order, status, staff_id)

            holder_column = getattr(Order, assignment.SLOT_COLUMN[slot])
            written = self._conditional_update(
                session,
                order_id,
                [Order.status == order.status.value, holder_column == staff_id],
                state_machine.transition_changes(status),
            )
            if not written:
                # Someone moved the order since we read it; report against the fresh row
                fresh = self._load(session, order_id)
                if state_machine.is_idempotent_retry(fresh, status, staff_id):
                    return fresh
                state_machine.validate_transition(fresh, status, staff_id)
                raise InvalidTransition(f"Order {order_id} changed concurrently", order_id=order_id)

            logger.info(f"Order {order_id}: {order.status.value} -> {status.value} by staff {staff_id}")
            return self._load(session, order_id)

    def claim_slot(self, order_id: int, slot: Slot, staff_id: int) -> OrderSnapshot:
        with self._session() as session:
            assignment.check_eligible(self._load_staff(session, staff_id), slot)
            return self._claim(session, order_id, slot, staff_id)

    def assign_slot(self, order_id: int, slot: Slot, staff_id: int, admin_id: int) -> OrderSnapshot:
        with self._session() as session:
            assignment.check_admin(self._load_staff(session, admin_id))
            assignment.check_eligible(self._load_staff(session, staff_id), slot)
            order = self._claim(session, order_id, slot, staff_id)
            logger.info(f"Admin {admin_id} assigned order {order_id} {slot.value} to staff {staff_id}")
            return order

    def _claim(self, session, order_id: int, slot: Slot, staff_id: int) -> OrderSnapshot:
        order = self._load(session, order_id)
        if not assignment.validate_claim(order, slot, staff_id):
            return order

        slot_column = getattr(Order, assignment.SLOT_COLUMN[slot])
        written = self._conditional_update(
            session,
            order_id,
            [slot_column.is_(None), Order.status == assignment.CLAIMABLE_STATUS[slot].value],
            assignment.claim_changes(slot, staff_id),
        )
        if not written:
            fresh = self._load(session, order_id)
            if not assignment.validate_claim(fresh, slot, staff_id):
                return fresh
            raise AlreadyClaimed(f"Order {order_id} was claimed concurrently", order_id=order_id)

        logger.info(f"Order {order_id} {slot.value} slot claimed by staff {staff_id}")
        return self._load(session, order_id)

    def cancel(self, order_id: int, staff_id: int) -> OrderSnapshot:
        with self._session() as session:
            actor = self._load_staff(session, staff_id)
            order = self._load(session, order_id)
            state_machine.validate_cancel(order, actor)
            written = self._conditional_update(
                session,
                order_id,
                [Order.status == order.status.value],
                {"status": OrderStatus.CANCELLED.value},
            )
            if not written:
                state_machine.validate_cancel(self._load(session, order_id), actor)
                raise InvalidTransition(f"Order {order_id} changed concurrently", order_id=order_id)
            logger.info(f"Order {order_id} cancelled by admin {staff_id}")
            return self._load(session, order_id)

    def set_payment(self, order_id: int, method: PaymentMethod,
                    status: PaymentStatus = PaymentStatus.PAID) -> OrderSnapshot:
        with self._session() as session:
            order = self._load(session, order_id)
            if order.payment_status == PaymentStatus.PAID and status != PaymentStatus.PAID:
                raise InvalidTransition(f"Order {order_id} is already paid", order_id=order_id)
            # PAID is final; only a write that keeps it PAID may touch a paid row
            conditions = []
            if status != PaymentStatus.PAID:
                conditions.append(Order.payment_status != PaymentStatus.PAID.value)
            written = self._conditional_update(
                session,
                order_id,
                conditions,
                {"payment_method": method.value, "payment_status": status.value},
            )
            if not written:
                current = self._load(session, order_id)
                raise InvalidTransition(
                    f"Order {order_id} was marked {current.payment_status.value} concurrently", order_id=order_id
                )
            return self._load(session, order_id)
