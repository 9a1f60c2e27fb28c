# compliance_engine/criteria.py
# Builds the query scope a group's ticket versions are fetched with.

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .models import ReportCriteria, TicketVersionRecord

# Columns of ticket_details_view that may appear in a WHERE clause.
FILTERABLE_COLUMNS = (
    'department_name',
    'vendor_code',
    'status_name',
    'assigned_to',
    'accountability',
    'kpi_name',
    'ticket_number',
)


@dataclass(frozen=True)
class QueryScope:
    """
    A conjunction of equality constraints plus an inclusive created_at range.
    Scopes are immutable: refining one returns a new scope.
    """
    equals: Tuple[Tuple[str, Any], ...] = ()
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @classmethod
    def for_group(cls, **keys: Any) -> "QueryScope":
        """Base scope for one group, e.g. QueryScope.for_group(kpi_name='Dock Turnaround')."""
        scope = cls()
        for column, value in keys.items():
            scope = scope.where(column, value)
        return scope

    def where(self, column: str, value: Any) -> "QueryScope":
        if column not in FILTERABLE_COLUMNS:
            raise ValueError(f"Column '{column}' cannot be filtered on.")
        return QueryScope(self.equals + ((column, value),), self.created_from, self.created_to)

    def created_between(self, start: Optional[datetime], end: Optional[datetime]) -> "QueryScope":
        return QueryScope(
            self.equals,
            start if start is not None else self.created_from,
            end if end is not None else self.created_to,
        )

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Renders the scope as a WHERE clause with %s placeholders and its parameters."""
        clauses = []
        params: List[Any] = []
        for column, value in self.equals:
            clauses.append(f"{column} = %s")
            params.append(value)
        if self.created_from is not None:
            clauses.append("created_at >= %s")
            params.append(self.created_from)
        if self.created_to is not None:
            clauses.append("created_at <= %s")
            params.append(self.created_to)
        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params

    def matches(self, record: TicketVersionRecord) -> bool:
        """Evaluates the same conjunction in memory against one version."""
        for column, value in self.equals:
            if getattr(record, column) != value:
                return False
        if self.created_from is not None and record.created_at < self.created_from:
            return False
        if self.created_to is not None and record.created_at > self.created_to:
            return False
        return True


def apply_criteria(scope: QueryScope, criteria: Optional[ReportCriteria]) -> QueryScope:
    """
    Narrows a group's scope by the report filters. This runs before version
    resolution, so a ticket is represented by its latest version that still
    satisfies the filters, not by its globally latest version.
    """
    if criteria is None or criteria.is_empty:
        return scope
    if criteria.department:
        scope = scope.where('department_name', criteria.department)
    if criteria.service_provider:
        scope = scope.where('vendor_code', criteria.service_provider)
    if criteria.status:
        scope = scope.where('status_name', criteria.status)
    return scope.created_between(criteria.start_date, criteria.end_date)
