import pytest

from compliance_engine.models import AssignableUser, Kpi


@pytest.fixture
def kpis():
    return [
        Kpi(id="k1", name="Dock Turnaround", department_name="Receiving"),
        Kpi(id="k2", name="Pick Accuracy", department_name="Fulfilment"),
        Kpi(id="k3", name="Yard Safety", department_name="Security"),
    ]


@pytest.fixture
def users():
    return [
        AssignableUser(id="u1", full_name="Dana Reyes"),
        AssignableUser(id="u2", full_name="Sam Okafor"),
    ]
