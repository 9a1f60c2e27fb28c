# compliance_engine/models.py
# Defines the standard data classes (models) for the compliance engine.

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional


def to_utc(value: Any) -> Optional[datetime]:
    """
    Normalizes a timestamp coming from the database or a filter form into a
    timezone-aware UTC datetime. Naive values are taken as UTC and plain
    dates become midnight of that day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if not isinstance(value, datetime):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TicketVersionRecord:
    """
    One immutable snapshot of a ticket, as exposed by ticket_details_view.
    This class is the "contract" between the Data Access Layer and the
    resolver/scorer, so every timestamp on it is UTC-aware.
    """
    ticket_number: str
    version: int
    created_at: datetime
    status_name: Optional[str] = None
    due_date: Optional[datetime] = None
    incident_date: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None
    lead_time_days: Optional[float] = None
    assigned_to: Optional[str] = None
    accountability: Optional[str] = None
    department_name: Optional[str] = None
    kpi_name: Optional[str] = None
    vendor_code: Optional[str] = None

    def __post_init__(self):
        # Records built directly (not via from_row) get the same UTC normalization.
        for name in ('created_at', 'due_date', 'incident_date', 'status_changed_at'):
            object.__setattr__(self, name, to_utc(getattr(self, name)))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TicketVersionRecord":
        """Builds a record from a database row dict (column name -> value)."""
        ticket_number = row.get('ticket_number')
        if ticket_number is None:
            raise ValueError("Ticket row is missing 'ticket_number'.")
        created_at = to_utc(row.get('created_at'))
        if created_at is None:
            raise ValueError(f"Ticket {ticket_number} has a version without 'created_at'.")

        lead_time = row.get('lead_time_days')
        if isinstance(lead_time, Decimal):
            lead_time = float(lead_time)

        return cls(
            ticket_number=str(ticket_number),
            version=int(row.get('version') or 0),
            created_at=created_at,
            status_name=row.get('status_name'),
            due_date=row.get('due_date'),
            incident_date=row.get('incident_date'),
            status_changed_at=row.get('status_changed_at'),
            lead_time_days=lead_time,
            assigned_to=_as_key(row.get('assigned_to')),
            accountability=_as_key(row.get('accountability')),
            department_name=row.get('department_name'),
            kpi_name=row.get('kpi_name'),
            vendor_code=row.get('vendor_code'),
        )


def _as_key(value: Any) -> Optional[str]:
    # User ids come back as UNIQUEIDENTIFIER (uuid.UUID) from pytds.
    return None if value is None else str(value)


@dataclass(frozen=True)
class ReportCriteria:
    """Optional filters for a report. Any field left empty is not applied."""
    department: Optional[str] = None
    service_provider: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ReportCriteria":
        """
        Builds criteria from a filter form. Accepts both the camelCase keys
        used by the portal's filter panel and snake_case keys.
        """
        def pick(*keys):
            for key in keys:
                value = values.get(key)
                if value not in (None, ""):
                    return value
            return None

        return cls(
            department=pick('department'),
            service_provider=pick('serviceProvider', 'service_provider'),
            status=pick('status'),
            start_date=to_utc(pick('startDate', 'start_date')),
            end_date=to_utc(pick('endDate', 'end_date')),
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.department, self.service_provider, self.status,
                        self.start_date, self.end_date))


@dataclass(frozen=True)
class Kpi:
    id: str
    name: str
    department_name: str = ""

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class AssignableUser:
    id: str
    full_name: str

    @property
    def label(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class ReferenceItem:
    """A department, service provider or status offered in the filter panel."""
    id: str
    name: str


@dataclass
class MetricsRow:
    """
    One line of a performance report: the metrics for a single KPI, user,
    or KPI within a user. Created fresh for every report request.
    """
    group_id: str
    label: str
    department_name: str
    total: int
    resolved: int
    overdue: int
    avg_resolution_time: Optional[float]
    compliance_rate: float
    on_time_resolved: int = 0
    accountable: Optional[int] = None
    reopened: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            'group_id': self.group_id,
            'label': self.label,
            'department_name': self.department_name,
            'total': self.total,
            'resolved': self.resolved,
            'overdue': self.overdue,
            'avg_resolution_time': self.avg_resolution_time,
            'compliance_rate': self.compliance_rate,
            'on_time_resolved': self.on_time_resolved,
            'accountable': self.accountable,
            'reopened': self.reopened,
        }
