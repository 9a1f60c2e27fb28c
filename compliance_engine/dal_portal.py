# compliance_engine/dal_portal.py
# Data Access Layer for the portal's ticketing tables on SQL Server.

import logging
from typing import Dict, List, Optional

import pytds

from .config import DEFAULT_CONFIG_PATH, DatabaseSettings, load_settings
from .criteria import QueryScope
from .errors import FetchError, ReferenceDataError
from .interfaces import GroupDirectory, TicketRecordStore
from .models import AssignableUser, Kpi, ReferenceItem, TicketVersionRecord
from .resolver import resolve_latest_versions

logger = logging.getLogger(__name__)

TICKET_COLUMNS = (
    "ticket_number, version, created_at, due_date, incident_date, status_changed_at, "
    "status_name, lead_time_days, assigned_to, accountability, department_name, "
    "kpi_name, vendor_code"
)


class PortalDAL(TicketRecordStore, GroupDirectory):
    """Handles all read access to the ticket log and its reference tables."""
    def __init__(self, settings: Optional[DatabaseSettings] = None, config_path: str = DEFAULT_CONFIG_PATH):
        if settings is None:
            settings = load_settings(config_path).database
        self.settings = settings

    def _get_connection(self):
        """Establishes and returns a new database connection."""
        return pytds.connect(
            server=self.settings.server, port=self.settings.port,
            database=self.settings.database,
            user=self.settings.user, password=self.settings.password,
            login_timeout=self.settings.login_timeout,
            timeout=self.settings.query_timeout,
            autocommit=True
        )

    def _query(self, sql: str, params=None) -> List[Dict]:
        with self._get_connection() as cnxn:
            cursor = cnxn.cursor()
            cursor.execute(sql, params or ())
            cols = [desc[0] for desc in cursor.description]
            return [dict(zip(cols, row)) for row in cursor.fetchall()]

    def _reference_query(self, sql: str, what: str) -> List[Dict]:
        try:
            return self._query(sql)
        except pytds.Error as ex:
            logger.error("Loading %s failed. Error: %s", what, ex)
            raise ReferenceDataError(f"Failed to load {what}: {ex}") from ex

    # --- Ticket Record Store ---

    def fetch_versions(self, scope: QueryScope) -> List[TicketVersionRecord]:
        """Fetches every version of every ticket matching the scope."""
        where, params = scope.to_sql()
        sql = f"SELECT {TICKET_COLUMNS} FROM dbo.ticket_details_view {where};"
        try:
            rows = self._query(sql, tuple(params))
            return [TicketVersionRecord.from_row(row) for row in rows]
        except pytds.Error as ex:
            logger.error("Ticket query failed (%s). Error: %s", where or "no filter", ex)
            raise FetchError(f"Failed to fetch tickets: {ex}") from ex
        except ValueError as ex:
            logger.error("Malformed ticket row (%s). Error: %s", where or "no filter", ex)
            raise FetchError(f"Malformed ticket data: {ex}") from ex

    def get_ticket_details(self, ticket_number: str) -> Optional[TicketVersionRecord]:
        """
        Returns the current version of a single ticket (latest created_at, same
        rule as the reports), or None if the ticket does not exist.
        """
        versions = self.fetch_versions(QueryScope.for_group(ticket_number=ticket_number))
        latest = resolve_latest_versions(versions)
        return latest[0] if latest else None

    # --- Grouping Directory ---

    def get_kpis(self) -> List[Kpi]:
        """Fetches all KPIs with the name of the department that owns them."""
        sql = """
            SELECT k.id, k.name, d.name AS department_name
            FROM dbo.kpis k
            LEFT JOIN dbo.departments d ON k.department_id = d.id
            ORDER BY k.name;
        """
        rows = self._reference_query(sql, "KPIs")
        return [Kpi(id=str(row['id']), name=row['name'], department_name=row['department_name'] or '')
                for row in rows]

    def get_assignable_users(self) -> List[AssignableUser]:
        """Fetches the users tickets can be assigned to."""
        rows = self._reference_query("EXEC dbo.sp_GetAssignableUsers;", "assignable users")
        return [AssignableUser(id=str(row['id']), full_name=row['full_name']) for row in rows]

    # --- Reference data for the filter panel ---

    def get_departments(self) -> List[ReferenceItem]:
        rows = self._reference_query("SELECT id, name FROM dbo.departments ORDER BY name;", "departments")
        return [ReferenceItem(id=str(row['id']), name=row['name']) for row in rows]

    def get_service_providers(self) -> List[ReferenceItem]:
        rows = self._reference_query("SELECT id, name FROM dbo.service_providers ORDER BY name;", "service providers")
        return [ReferenceItem(id=str(row['id']), name=row['name']) for row in rows]

    def get_statuses(self) -> List[ReferenceItem]:
        rows = self._reference_query("SELECT id, name FROM dbo.statuses ORDER BY name;", "statuses")
        return [ReferenceItem(id=str(row['id']), name=row['name']) for row in rows]
