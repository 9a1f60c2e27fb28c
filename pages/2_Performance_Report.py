# pages/2_Performance_Report.py
import asyncio

import streamlit as st

from compliance_engine.aggregator import build_user_kpi_report, build_user_report
from compliance_engine.config import load_settings
from compliance_engine.dal_portal import PortalDAL
from compliance_engine.errors import ReportError
from compliance_engine.log_setup import setup_logger
from compliance_engine.models import ReportCriteria
from compliance_engine.report import KPI_COLUMNS, USER_COLUMNS, rows_to_dataframe, style_compliance, summarize
from compliance_engine.status import StatusClassifier

# --- Page Configuration ---
st.set_page_config(page_title="Performance Report", page_icon="👷", layout="wide")
st.title("👷 Performance Report")

# --- Initialization ---
settings = load_settings()
setup_logger('compliance_engine', settings.report.log_dir, settings.report.log_level)
dal = PortalDAL(settings.database)
classifier = StatusClassifier.from_settings(settings.report)
limit = settings.report.max_concurrent_groups

if "selected_user" not in st.session_state:
    st.session_state.selected_user = None

# --- Data Loading Functions ---
@st.cache_data(ttl=600)
def load_reference_data():
    """Loads the options offered in the filter panel."""
    return dal.get_departments(), dal.get_service_providers(), dal.get_statuses()

def back_to_users():
    st.session_state.selected_user = None

# =================================================================================
# VIEW 2: KPI BREAKDOWN FOR ONE USER
# =================================================================================
if st.session_state.selected_user:
    user_id, user_name = st.session_state.selected_user
    st.button("← Back to all users", on_click=back_to_users)
    st.subheader(f"KPI Performance for {user_name}")

    with st.spinner(f"Scoring KPIs for {user_name}..."):
        try:
            rows = asyncio.run(build_user_kpi_report(
                dal, dal, user_id, classifier=classifier, max_concurrent=limit))
        except ReportError as e:
            st.error(f"Failed to load user KPI metrics: {e}")
            st.stop()

    if rows:
        st.dataframe(style_compliance(rows_to_dataframe(rows, KPI_COLUMNS)), use_container_width=True, hide_index=True)
    else:
        st.info(f"No tickets are assigned to {user_name} yet.")
    st.stop()

# =================================================================================
# VIEW 1: ALL USERS
# =================================================================================
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

with st.spinner("Scoring users..."):
    try:
        rows = asyncio.run(build_user_report(
            dal, dal, criteria, classifier=classifier, max_concurrent=limit))
    except ReportError as e:
        st.error(f"Failed to load performance metrics: {e}")
        st.stop()

summary = summarize(rows)
col1, col2, col3, col4 = st.columns(4)
col1.metric("Total Users", summary['groups'])
col2.metric("Total Tickets", summary['total'])
col3.metric("Resolved Tickets", summary['resolved'])
col4.metric("Overdue Tickets", summary['overdue'])

if not rows:
    st.warning("No assignable users were found.")
else:
    st.dataframe(style_compliance(rows_to_dataframe(rows, USER_COLUMNS)), use_container_width=True, hide_index=True)

    user_names = {row.group_id: row.label for row in rows}
    selected = st.selectbox("Show KPI breakdown for:", ["-- Select a User --"] + list(user_names),
                            format_func=lambda v: user_names.get(v, v))
    if selected != "-- Select a User --" and st.button("Open breakdown"):
        st.session_state.selected_user = (selected, user_names[selected])
        st.rerun()
