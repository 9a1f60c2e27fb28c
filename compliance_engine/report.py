# compliance_engine/report.py
# Thin helpers that shape aggregator output for display.

from typing import Dict, List, Optional

import pandas as pd

from .models import MetricsRow

AVERAGE_PLACEHOLDER = "-"

KPI_COLUMNS = {
    'label': 'KPI',
    'department_name': 'Department',
    'total': 'Total Tickets',
    'resolved': 'Resolved',
    'overdue': 'Overdue',
    'avg_resolution_time': 'Avg. Resolution Time (Days)',
    'compliance_rate': 'Compliance Rate (%)',
}

USER_COLUMNS = {
    'label': 'User',
    'total': 'Assigned',
    'accountable': 'Accountable',
    'resolved': 'Resolved',
    'reopened': 'Reopened',
    'avg_resolution_time': 'Avg. Lead Time (Days)',
    'overdue': 'Overdue',
    'compliance_rate': 'Compliance Rate (%)',
}


def format_average(value: Optional[float]) -> str:
    """One decimal place, or a placeholder when the group has no lead times."""
    # pandas turns a None next to floats into NaN
    if value is None or pd.isna(value):
        return AVERAGE_PLACEHOLDER
    return f"{value:.1f}"


def display_compliance(value: float) -> float:
    """Clamps a compliance rate to [0, 100] and rounds it. For display only."""
    return round(min(100.0, max(0.0, value)), 1)


def rows_to_dataframe(rows: List[MetricsRow], columns: Dict[str, str] = KPI_COLUMNS) -> pd.DataFrame:
    """Converts report rows into a DataFrame with display column names, in report order."""
    df = pd.DataFrame([row.as_dict() for row in rows], columns=list(columns.keys()))
    if not df.empty:
        df['avg_resolution_time'] = df['avg_resolution_time'].map(format_average)
        df['compliance_rate'] = df['compliance_rate'].map(display_compliance)
    return df.rename(columns=columns)


def summarize(rows: List[MetricsRow]) -> Dict[str, int]:
    """Totals for the summary cards shown above a report."""
    return {
        'groups': len(rows),
        'total': sum(row.total for row in rows),
        'resolved': sum(row.resolved for row in rows),
        'overdue': sum(row.overdue for row in rows),
    }


def compliance_band(value: float) -> str:
    """Traffic-light band for a compliance rate: green from 90, yellow from 70, red below."""
    if value >= 90:
        return 'green'
    if value >= 70:
        return 'yellow'
    return 'red'


BAND_COLORS = {'green': '#16a34a', 'yellow': '#ca8a04', 'red': '#dc2626'}


def compliance_css(series: pd.Series) -> List[str]:
    return [f"color: {BAND_COLORS[compliance_band(value)]}; font-weight: 600" for value in series]


def style_compliance(df: pd.DataFrame, column: str = KPI_COLUMNS['compliance_rate']):
    """Colours the compliance column of a display frame by band. Returns a pandas Styler."""
    styler = df.style.format({column: "{:.1f}%"})
    if df.empty:
        return styler
    return styler.apply(compliance_css, subset=[column])
