from datetime import datetime, timezone

import pytds
import pytest

from compliance_engine import dal_portal
from compliance_engine.config import DatabaseSettings
from compliance_engine.criteria import QueryScope
from compliance_engine.dal_portal import PortalDAL
from compliance_engine.errors import FetchError, ReferenceDataError
from compliance_engine.models import Kpi

SETTINGS = DatabaseSettings(server="sql01", port=1433, database="OpsPortal",
                            user="reporting", password="s3cret")


class FakeCursor:
    def __init__(self, columns, rows, error=None):
        self.description = [(name,) for name in columns]
        self.rows = rows
        self.error = error
        self.executed = []

    def execute(self, sql, params=()):
        self.executed.append((sql, params))
        if self.error is not None:
            raise self.error

    def fetchall(self):
        return self.rows


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def cursor(self):
        return self._cursor


@pytest.fixture
def connect(monkeypatch):
    """Replaces pytds.connect; returns a function that queues the next cursor."""
    state = {}

    def fake_connect(**kwargs):
        state['kwargs'] = kwargs
        return FakeConnection(state['cursor'])

    def prepare(columns=(), rows=(), error=None):
        state['cursor'] = FakeCursor(columns, list(rows), error)
        return state

    monkeypatch.setattr(dal_portal.pytds, "connect", fake_connect)
    return prepare


def test_fetch_versions_builds_parameterized_query(connect):
    columns = ["ticket_number", "version", "created_at", "status_name", "kpi_name"]
    state = connect(columns, [("T-1", 2, datetime(2024, 5, 1, 9, 0), "Closed", "Dock Turnaround")])
    scope = QueryScope.for_group(kpi_name="Dock Turnaround")

    records = PortalDAL(SETTINGS).fetch_versions(scope)

    assert len(records) == 1
    assert records[0].ticket_number == "T-1"
    assert records[0].created_at == datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    sql, params = state['cursor'].executed[0]
    assert "FROM dbo.ticket_details_view WHERE kpi_name = %s" in sql
    assert params == ("Dock Turnaround",)
    assert state['kwargs']['server'] == "sql01"
    assert state['kwargs']['timeout'] == 60


def test_fetch_failure_is_reported_as_fetch_error(connect):
    connect(error=pytds.OperationalError("Login timeout expired"))

    with pytest.raises(FetchError) as excinfo:
        PortalDAL(SETTINGS).fetch_versions(QueryScope())

    assert "Login timeout expired" in str(excinfo.value)


def test_malformed_row_is_reported_as_fetch_error(connect):
    connect(["ticket_number", "version", "created_at"], [("T-1", 1, None)])

    with pytest.raises(FetchError):
        PortalDAL(SETTINGS).fetch_versions(QueryScope())


def test_get_kpis_maps_department_names(connect):
    connect(["id", "name", "department_name"], [(1, "Dock Turnaround", "Receiving"), (2, "Orphan KPI", None)])

    kpis = PortalDAL(SETTINGS).get_kpis()

    assert kpis == [
        Kpi(id="1", name="Dock Turnaround", department_name="Receiving"),
        Kpi(id="2", name="Orphan KPI", department_name=""),
    ]


def test_directory_failure_is_reported_as_reference_data_error(connect):
    connect(error=pytds.ProgrammingError("Could not find stored procedure"))

    with pytest.raises(ReferenceDataError):
        PortalDAL(SETTINGS).get_assignable_users()


def test_get_ticket_details_picks_latest_created_at(connect):
    # Version numbers and timestamps disagree; the latest created_at is current.
    state = connect(["ticket_number", "version", "created_at", "status_name"], [
        ("T-7", 4, datetime(2024, 5, 3), "Reopened"),
        ("T-7", 3, datetime(2024, 5, 6), "Closed"),
        ("T-7", 1, datetime(2024, 5, 1), "Open"),
    ])

    record = PortalDAL(SETTINGS).get_ticket_details("T-7")

    assert record.version == 3
    assert record.status_name == "Closed"
    sql, params = state['cursor'].executed[0]
    assert "WHERE ticket_number = %s" in sql
    assert params == ("T-7",)


def test_get_ticket_details_returns_none_for_unknown_ticket(connect):
    connect(["ticket_number", "version", "created_at", "status_name"], [])

    assert PortalDAL(SETTINGS).get_ticket_details("T-404") is None


def test_get_ticket_details_reports_malformed_rows_as_fetch_error(connect):
    connect(["ticket_number", "version", "created_at", "status_name"], [("T-8", 1, None, "Open")])

    with pytest.raises(FetchError):
        PortalDAL(SETTINGS).get_ticket_details("T-8")


def test_reference_lists(connect):
    connect(["id", "name"], [(1, "Closed"), (2, "Open")])

    statuses = PortalDAL(SETTINGS).get_statuses()

    assert [status.name for status in statuses] == ["Closed", "Open"]
