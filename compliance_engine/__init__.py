# compliance_engine/__init__.py
# Ticket metrics aggregation and compliance scoring for the operations portal.

from .aggregator import build_kpi_report, build_user_kpi_report, build_user_report
from .models import MetricsRow, ReportCriteria, TicketVersionRecord
from .resolver import resolve_latest_versions
from .scorer import compliance_rate, score_tickets
