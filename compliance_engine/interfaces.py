# compliance_engine/interfaces.py
from abc import ABC, abstractmethod
from typing import List

from .criteria import QueryScope
from .models import AssignableUser, Kpi, TicketVersionRecord


# The "contract" for wherever ticket versions come from.
class TicketRecordStore(ABC):
    @abstractmethod
    def fetch_versions(self, scope: QueryScope) -> List[TicketVersionRecord]:
        """Returns every version row matching the scope, in no particular order."""


# The "contract" for the entities a report is grouped by.
class GroupDirectory(ABC):
    @abstractmethod
    def get_kpis(self) -> List[Kpi]:
        pass

    @abstractmethod
    def get_assignable_users(self) -> List[AssignableUser]:
        pass
