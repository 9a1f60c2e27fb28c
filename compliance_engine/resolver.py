# compliance_engine/resolver.py
# Collapses the append-only version log into one record per logical ticket.

from typing import Dict, Iterable, List

from .models import TicketVersionRecord


def resolve_latest_versions(records: Iterable[TicketVersionRecord]) -> List[TicketVersionRecord]:
    """
    Returns exactly one record per distinct ticket_number: the version with
    the latest created_at. A stored record is only replaced by one that is
    strictly newer, so on a created_at tie the first version seen wins.
    The order of the result is not meaningful.
    """
    latest: Dict[str, TicketVersionRecord] = {}
    for record in records:
        current = latest.get(record.ticket_number)
        if current is None or record.created_at > current.created_at:
            latest[record.ticket_number] = record
    return list(latest.values())
