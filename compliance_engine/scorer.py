# compliance_engine/scorer.py
# Computes the per-group metrics and the weighted compliance rate.

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import TicketVersionRecord, to_utc
from .status import DEFAULT_CLASSIFIER, StatusClassifier

RESOLUTION_WEIGHT = 40
ON_TIME_WEIGHT = 30
NOT_OVERDUE_WEIGHT = 30
EMPTY_GROUP_COMPLIANCE = 100.0


@dataclass(frozen=True)
class TicketMetrics:
    total: int
    resolved: int
    overdue: int
    on_time_resolved: int
    reopened: int
    avg_resolution_time: Optional[float]
    compliance_rate: float


def compliance_rate(total: int, resolved: int, overdue: int, on_time_resolved: int) -> float:
    """
    Weighted score: 40% resolution ratio, 30% on-time ratio (over resolved
    tickets), 30% share of tickets that are not overdue. A group without
    tickets scores 100. The result is not clamped: on_time_resolved counts
    the whole group, so it can exceed resolved and push the score past 100.
    """
    if total == 0:
        return EMPTY_GROUP_COMPLIANCE
    resolution_ratio = resolved / total
    on_time_ratio = on_time_resolved / resolved if resolved > 0 else 0
    overdue_ratio = overdue / total
    return (
        resolution_ratio * RESOLUTION_WEIGHT
        + on_time_ratio * ON_TIME_WEIGHT
        + (1 - overdue_ratio) * NOT_OVERDUE_WEIGHT
    )


def is_overdue(ticket: TicketVersionRecord, now: datetime,
               classifier: StatusClassifier = DEFAULT_CLASSIFIER) -> bool:
    if ticket.due_date is None:
        return False
    return ticket.due_date < now and not classifier.is_closed(ticket.status_name)


def is_on_time(ticket: TicketVersionRecord) -> bool:
    if ticket.status_changed_at is None or ticket.due_date is None:
        return False
    return ticket.status_changed_at <= ticket.due_date


def score_tickets(tickets: Iterable[TicketVersionRecord],
                  now: Optional[datetime] = None,
                  classifier: StatusClassifier = DEFAULT_CLASSIFIER) -> TicketMetrics:
    """
    Scores an already resolved (one version per ticket), filtered and grouped
    set of tickets. `now` is the evaluation instant for the overdue check;
    it defaults to the current UTC time and a naive value is taken as UTC.
    """
    now = datetime.now(timezone.utc) if now is None else to_utc(now)

    total = resolved = overdue = on_time = reopened = 0
    lead_times = []
    for ticket in tickets:
        total += 1
        if classifier.is_resolved(ticket.status_name):
            resolved += 1
            if ticket.lead_time_days is not None:
                lead_times.append(ticket.lead_time_days)
        if is_overdue(ticket, now, classifier):
            overdue += 1
        if is_on_time(ticket):
            on_time += 1
        if classifier.is_reopened(ticket.status_name):
            reopened += 1

    avg_resolution_time = sum(lead_times) / len(lead_times) if lead_times else None

    return TicketMetrics(
        total=total,
        resolved=resolved,
        overdue=overdue,
        on_time_resolved=on_time,
        reopened=reopened,
        avg_resolution_time=avg_resolution_time,
        compliance_rate=compliance_rate(total, resolved, overdue, on_time),
    )
