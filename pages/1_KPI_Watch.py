# pages/1_KPI_Watch.py
import asyncio

import streamlit as st

from compliance_engine.aggregator import build_kpi_report
from compliance_engine.config import load_settings
from compliance_engine.dal_portal import PortalDAL
from compliance_engine.errors import ReportError
from compliance_engine.log_setup import setup_logger
from compliance_engine.models import ReportCriteria
from compliance_engine.report import KPI_COLUMNS, rows_to_dataframe, style_compliance, summarize
from compliance_engine.status import StatusClassifier

# --- Page Configuration ---
st.set_page_config(page_title="KPI Watch", page_icon="🎯", layout="wide")
st.title("🎯 KPI Watch")

# --- Initialization ---
settings = load_settings()
setup_logger('compliance_engine', settings.report.log_dir, settings.report.log_level)
dal = PortalDAL(settings.database)
classifier = StatusClassifier.from_settings(settings.report)

# --- Data Loading Functions ---
@st.cache_data(ttl=600)
def load_reference_data():
    """Loads the options offered in the filter panel."""
    return dal.get_departments(), dal.get_service_providers(), dal.get_statuses()

def load_kpi_report(criteria: ReportCriteria):
    return asyncio.run(build_kpi_report(
        dal, dal, criteria,
        classifier=classifier,
        max_concurrent=settings.report.max_concurrent_groups,
    ))

# --- Filters ---
try:
    departments, providers, statuses = load_reference_data()
except ReportError as e:
    st.warning(f"Filter options are unavailable: {e}")
    departments, providers, statuses = [], [], []

with st.expander("Filters"):
    col1, col2, col3 = st.columns(3)
    department = col1.selectbox("Department", [""] + [d.name for d in departments],
                                format_func=lambda v: v or "All Departments")
    provider_names = {p.id: p.name for p in providers}
    service_provider = col2.selectbox("Service Provider", [""] + list(provider_names),
                                      format_func=lambda v: provider_names.get(v, "All Service Providers"))
    status = col3.selectbox("Status", [""] + [s.name for s in statuses],
                            format_func=lambda v: v or "All Statuses")
    col4, col5 = st.columns(2)
    start_date = col4.date_input("Start Date", value=None)
    end_date = col5.date_input("End Date", value=None)

criteria = ReportCriteria.from_mapping({
    'department': department,
    'serviceProvider': service_provider,
    'status': status,
    'startDate': start_date,
    'endDate': end_date,
})

# --- Report ---
with st.spinner("Scoring KPIs..."):
    try:
        rows = load_kpi_report(criteria)
    except ReportError as e:
        st.error(f"Failed to load KPI metrics: {e}")
        st.stop()

summary = summarize(rows)
col1, col2, col3, col4 = st.columns(4)
col1.metric("KPIs", summary['groups'])
col2.metric("Total Tickets", summary['total'])
col3.metric("Resolved Tickets", summary['resolved'])
col4.metric("Overdue Tickets", summary['overdue'])

if rows:
    st.dataframe(style_compliance(rows_to_dataframe(rows, KPI_COLUMNS)), use_container_width=True, hide_index=True)
else:
    st.warning("No KPIs are configured yet.")

# --- Ticket Lookup ---
st.markdown("---")
st.subheader("Ticket Lookup")
ticket_number = st.text_input("Ticket Number:", placeholder="e.g., TKT-20240531-0042")
if ticket_number:
    try:
        ticket = dal.get_ticket_details(ticket_number.strip())
    except ReportError as e:
        st.error(f"Failed to load ticket {ticket_number}: {e}")
        ticket = None
    else:
        if ticket is None:
            st.warning(f"Could not find a ticket with number: {ticket_number}")
    if ticket is not None:
        st.write(f"**Current version:** {ticket.version} (recorded {ticket.created_at:%Y-%m-%d %H:%M} UTC)")
        col1, col2, col3 = st.columns(3)
        col1.text_input("Status", value=ticket.status_name or "", disabled=True)
        col2.text_input("KPI", value=ticket.kpi_name or "", disabled=True)
        col3.text_input("Due", value=f"{ticket.due_date:%Y-%m-%d}" if ticket.due_date else "", disabled=True)
