import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from cafeops.domain.errors import NotFound, SyncFailure
from cafeops.domain.models import Staff
from cafeops.domain.schemas import StaffCreate, StaffSnapshot
from cafeops.infrastructure.database import SessionLocal
from cafeops.interfaces.IStaffDirectory import IStaffDirectory

logger = logging.getLogger(__name__)

class SqlStaffDirectory(IStaffDirectory):

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def list_staff(self) -> List[StaffSnapshot]:
        session = self._session_factory()
        try:
            rows = session.query(Staff).order_by(Staff.id).all()
            return [StaffSnapshot.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Staff read error: {e}")
            raise SyncFailure(f"Staff directory unavailable: {e}") from e
        finally:
            session.close()

    def get_staff(self, staff_id: int) -> StaffSnapshot:
        session = self._session_factory()
        try:
            row = session.get(Staff, staff_id)
            if row is None:
                raise NotFound(f"Staff {staff_id} not found")
            return StaffSnapshot.model_validate(row)
        except SQLAlchemyError as e:
            logger.error(f"Staff read error: {e}")
            raise SyncFailure(f"Staff directory unavailable: {e}") from e
        finally:
            session.close()

    def add_staff(self, payload: StaffCreate) -> StaffSnapshot:
        """Seeding helper; the directory is otherwise maintained elsewhere."""
        session = self._session_factory()
        try:
            row = Staff(
                name=payload.name,
                email=payload.email,
                role=payload.role.value,
                status=payload.status.value,
            )
            session.add(row)
            session.commit()
            return StaffSnapshot.model_validate(row)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Staff write error: {e}")
            raise SyncFailure(f"Staff directory unavailable: {e}") from e
        finally:
            session.close()
