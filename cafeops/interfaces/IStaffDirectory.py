from abc import ABC, abstractmethod
from typing import List

from cafeops.domain.schemas import StaffSnapshot

class IStaffDirectory(ABC):
    @abstractmethod
    def list_staff(self) -> List[StaffSnapshot]:
        pass

    @abstractmethod
    def get_staff(self, staff_id: int) -> StaffSnapshot:
        pass
