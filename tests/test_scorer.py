from datetime import datetime

import pytest

from compliance_engine.scorer import compliance_rate, score_tickets
from compliance_engine.status import StatusClassifier

from .factories import NOW, days_ago, make_version


def test_scenario_mixed_closed_and_open_tickets():
    tickets = [
        make_version("T-1", days_ago(20), "Closed", due_date=days_ago(5),
                     status_changed_at=days_ago(8), lead_time_days=2),
        make_version("T-2", days_ago(20), "Open", due_date=days_ago(5)),
        make_version("T-3", days_ago(20), "Closed", due_date=days_ago(5),
                     status_changed_at=days_ago(6), lead_time_days=4),
    ]

    metrics = score_tickets(tickets, now=NOW)

    assert metrics.total == 3
    assert metrics.resolved == 2
    assert metrics.overdue == 1
    assert metrics.on_time_resolved == 2
    assert metrics.avg_resolution_time == pytest.approx(3.0)
    assert metrics.compliance_rate == pytest.approx((2 / 3) * 40 + 30 + (1 - 1 / 3) * 30)
    assert round(metrics.compliance_rate, 2) == 76.67


def test_empty_group_scores_one_hundred():
    metrics = score_tickets([], now=NOW)

    assert metrics.total == 0
    assert metrics.resolved == 0
    assert metrics.overdue == 0
    assert metrics.avg_resolution_time is None
    assert metrics.compliance_rate == 100


def test_resolved_matches_closed_or_resolved_case_insensitively():
    tickets = [
        make_version("T-1", days_ago(1), "CLOSED - Verified"),
        make_version("T-2", days_ago(1), "Resolved"),
        make_version("T-3", days_ago(1), "In Progress"),
        make_version("T-4", days_ago(1), None),
    ]

    assert score_tickets(tickets, now=NOW).resolved == 2


def test_resolved_but_not_closed_ticket_can_still_be_overdue():
    ticket = make_version("T-1", days_ago(10), "Resolved", due_date=days_ago(1))

    metrics = score_tickets([ticket], now=NOW)

    assert metrics.resolved == 1
    assert metrics.overdue == 1


def test_future_due_date_is_not_overdue():
    ticket = make_version("T-1", days_ago(1), "Open", due_date=days_ago(-3))

    assert score_tickets([ticket], now=NOW).overdue == 0


def test_missing_dates_are_neither_overdue_nor_on_time():
    tickets = [
        make_version("T-1", days_ago(3), "Open"),
        make_version("T-2", days_ago(3), "Closed", due_date=days_ago(1)),
        make_version("T-3", days_ago(3), "Closed", status_changed_at=days_ago(2)),
    ]

    metrics = score_tickets(tickets, now=NOW)

    assert metrics.overdue == 0
    assert metrics.on_time_resolved == 0


def test_average_ignores_unresolved_and_missing_lead_times():
    tickets = [
        make_version("T-1", days_ago(3), "Closed", lead_time_days=1.5),
        make_version("T-2", days_ago(3), "Resolved", lead_time_days=2.5),
        make_version("T-3", days_ago(3), "Closed", lead_time_days=None),
        make_version("T-4", days_ago(3), "Open", lead_time_days=40),
    ]

    assert score_tickets(tickets, now=NOW).avg_resolution_time == pytest.approx(2.0)


def test_average_is_none_without_resolved_lead_times():
    tickets = [make_version("T-1", days_ago(3), "Open", lead_time_days=4)]

    assert score_tickets(tickets, now=NOW).avg_resolution_time is None


def test_on_time_counts_the_whole_group_and_is_not_clamped():
    # Reopened after closing on time: counted on time, but not resolved.
    tickets = [
        make_version("T-1", days_ago(9), "Reopened", due_date=days_ago(-5),
                     status_changed_at=days_ago(6)),
        make_version("T-2", days_ago(9), "Closed", due_date=days_ago(-5),
                     status_changed_at=days_ago(6)),
    ]

    metrics = score_tickets(tickets, now=NOW)

    assert metrics.resolved == 1
    assert metrics.on_time_resolved == 2
    assert metrics.reopened == 1
    assert metrics.compliance_rate == pytest.approx(0.5 * 40 + 2 * 30 + 30)
    assert metrics.compliance_rate > 100


def test_no_resolved_tickets_gives_zero_on_time_ratio():
    assert compliance_rate(total=4, resolved=0, overdue=0, on_time_resolved=3) == pytest.approx(30)


@pytest.mark.parametrize("total", [1, 2, 5, 17])
def test_bounds_under_well_formed_counts(total):
    for resolved in range(total + 1):
        for on_time in range(resolved + 1):
            for overdue in range(total + 1):
                rate = compliance_rate(total, resolved, overdue, on_time)
                assert 0 <= rate <= 100


def test_custom_status_terms():
    classifier = StatusClassifier(closed_terms=("shipped",), resolved_terms=("shipped", "done"))
    tickets = [
        make_version("T-1", days_ago(9), "Shipped", due_date=days_ago(1)),
        make_version("T-2", days_ago(9), "Done", due_date=days_ago(1)),
        make_version("T-3", days_ago(9), "Closed", due_date=days_ago(1)),
    ]

    metrics = score_tickets(tickets, now=NOW, classifier=classifier)

    assert metrics.resolved == 2
    assert metrics.overdue == 2


def test_naive_now_is_taken_as_utc():
    ticket = make_version("T-1", days_ago(5), "Open", due_date=days_ago(1))

    metrics = score_tickets([ticket], now=datetime(2024, 6, 1, 12, 0))

    assert metrics.overdue == 1
