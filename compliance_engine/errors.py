# compliance_engine/errors.py


class ReportError(Exception):
    """Base class for failures that abort a whole report."""


class FetchError(ReportError):
    """The ticket store could not satisfy a query for a group."""


class ReferenceDataError(ReportError):
    """The grouping directory (users, KPIs, lookup tables) was unavailable."""
