from abc import ABC, abstractmethod
from typing import Iterable, Set

class ISeenStore(ABC):
    """Durable per-staff, per-event-kind sets of already surfaced event ids."""

    @abstractmethod
    def load(self, staff_id: int, kind: str) -> Set[str]:
        pass

    @abstractmethod
    def add(self, staff_id: int, kind: str, event_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    def clear(self, staff_id: int, kind: str) -> None:
        pass
