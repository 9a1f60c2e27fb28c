# compliance_engine/aggregator.py
# Fans a report out over its groups (KPIs, users, or KPIs within a user),
# running fetch -> resolve -> score for each group, then joins the rows.

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

from .criteria import QueryScope, apply_criteria
from .errors import FetchError, ReferenceDataError, ReportError
from .interfaces import GroupDirectory, TicketRecordStore
from .models import AssignableUser, Kpi, MetricsRow, ReportCriteria, TicketVersionRecord, to_utc
from .resolver import resolve_latest_versions
from .scorer import score_tickets
from .status import DEFAULT_CLASSIFIER, StatusClassifier

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_GROUPS = 8


def _evaluation_instant(now: Optional[datetime]) -> datetime:
    # One instant per report; naive values are taken as UTC.
    return datetime.now(timezone.utc) if now is None else to_utc(now)


def _fetch_resolved(store: TicketRecordStore, scope: QueryScope, label: str) -> List[TicketVersionRecord]:
    try:
        versions = store.fetch_versions(scope)
    except ReportError:
        raise
    except Exception as e:
        raise FetchError(f"Failed to fetch tickets for '{label}': {e}") from e
    return resolve_latest_versions(versions)


def _row_for(group_id: str, label: str, department_name: str,
             tickets: List[TicketVersionRecord], now: datetime,
             classifier: StatusClassifier) -> MetricsRow:
    metrics = score_tickets(tickets, now=now, classifier=classifier)
    return MetricsRow(
        group_id=group_id,
        label=label,
        department_name=department_name,
        total=metrics.total,
        resolved=metrics.resolved,
        overdue=metrics.overdue,
        avg_resolution_time=metrics.avg_resolution_time,
        compliance_rate=metrics.compliance_rate,
        on_time_resolved=metrics.on_time_resolved,
    )


async def _load_groups(loader: Callable[[], List[Any]], what: str) -> List[Any]:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, loader)
    except ReferenceDataError:
        raise
    except Exception as e:
        raise ReferenceDataError(f"Failed to load {what}: {e}") from e


async def _gather_groups(groups: Sequence[Any], job: Callable[[Any], MetricsRow],
                         max_concurrent: int) -> List[MetricsRow]:
    """
    Runs the blocking per-group job in the default executor, at most
    `max_concurrent` at a time, and returns the rows in group order. The
    first failure aborts the report; groups still in flight finish and are
    discarded.
    """
    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def run(group):
        async with semaphore:
            return await loop.run_in_executor(None, job, group)

    return list(await asyncio.gather(*(run(group) for group in groups)))


async def build_kpi_report(store: TicketRecordStore, directory: GroupDirectory,
                           criteria: Optional[ReportCriteria] = None,
                           now: Optional[datetime] = None,
                           classifier: StatusClassifier = DEFAULT_CLASSIFIER,
                           max_concurrent: int = DEFAULT_MAX_CONCURRENT_GROUPS) -> List[MetricsRow]:
    """One row per KPI. KPIs without tickets are kept so coverage gaps stay visible."""
    now = _evaluation_instant(now)
    kpis: List[Kpi] = await _load_groups(directory.get_kpis, "KPIs")
    logger.info("Building KPI report for %d KPIs.", len(kpis))

    def job(kpi: Kpi) -> MetricsRow:
        scope = apply_criteria(QueryScope.for_group(kpi_name=kpi.name), criteria)
        tickets = _fetch_resolved(store, scope, kpi.label)
        return _row_for(kpi.id, kpi.label, kpi.department_name, tickets, now, classifier)

    rows = await _gather_groups(kpis, job, max_concurrent)
    logger.info("KPI report complete: %d rows.", len(rows))
    return rows


async def build_user_report(store: TicketRecordStore, directory: GroupDirectory,
                            criteria: Optional[ReportCriteria] = None,
                            now: Optional[datetime] = None,
                            classifier: StatusClassifier = DEFAULT_CLASSIFIER,
                            max_concurrent: int = DEFAULT_MAX_CONCURRENT_GROUPS) -> List[MetricsRow]:
    """
    One row per assignable user, scored over the tickets assigned to them.
    Also counts the tickets the user is accountable for and how many of the
    assigned ones are currently reopened. Users without tickets are kept.
    """
    now = _evaluation_instant(now)
    users: List[AssignableUser] = await _load_groups(directory.get_assignable_users, "assignable users")
    logger.info("Building user report for %d users.", len(users))

    def job(user: AssignableUser) -> MetricsRow:
        assigned_scope = apply_criteria(QueryScope.for_group(assigned_to=user.id), criteria)
        accountable_scope = apply_criteria(QueryScope.for_group(accountability=user.id), criteria)
        assigned = _fetch_resolved(store, assigned_scope, user.label)
        accountable = _fetch_resolved(store, accountable_scope, user.label)

        row = _row_for(user.id, user.label, "", assigned, now, classifier)
        row.accountable = len(accountable)
        row.reopened = sum(1 for ticket in assigned if classifier.is_reopened(ticket.status_name))
        return row

    rows = await _gather_groups(users, job, max_concurrent)
    logger.info("User report complete: %d rows.", len(rows))
    return rows


async def build_user_kpi_report(store: TicketRecordStore, directory: GroupDirectory, user_id: str,
                                criteria: Optional[ReportCriteria] = None,
                                now: Optional[datetime] = None,
                                classifier: StatusClassifier = DEFAULT_CLASSIFIER,
                                max_concurrent: int = DEFAULT_MAX_CONCURRENT_GROUPS) -> List[MetricsRow]:
    """KPI breakdown for one user. KPIs with no tickets for the user are left out."""
    now = _evaluation_instant(now)
    kpis: List[Kpi] = await _load_groups(directory.get_kpis, "KPIs")
    logger.info("Building KPI breakdown for user %s over %d KPIs.", user_id, len(kpis))

    def job(kpi: Kpi) -> MetricsRow:
        scope = apply_criteria(QueryScope.for_group(assigned_to=user_id, kpi_name=kpi.name), criteria)
        tickets = _fetch_resolved(store, scope, kpi.label)
        return _row_for(kpi.id, kpi.label, kpi.department_name, tickets, now, classifier)

    rows = await _gather_groups(kpis, job, max_concurrent)
    return [row for row in rows if row.total > 0]
