import pytest

from staffing_lp import (
    CapacityRange,
    DistanceMatrix,
    Employee,
    Role,
    ScenarioOverrides,
    School,
    build_effective_inputs,
)


def make_schools(*ids):
    return [School(id=school_id, name=school_id.title(), lon=9.0 + n / 10, lat=50.0) for n, school_id in enumerate(ids)]


def make_employee(employee_id, role):
    return Employee(id=employee_id, name=employee_id, lon=9.5, lat=50.1, role=role)


@pytest.fixture
def two_school_master():
    """Two schools, two physicians and two assistants."""
    schools = make_schools("school1", "school2")
    employees = [
        make_employee("p1", Role.PHYSICIAN),
        make_employee("p2", Role.PHYSICIAN),
        make_employee("a1", Role.ASSISTANT),
        make_employee("a2", Role.ASSISTANT),
    ]
    return schools, employees


@pytest.fixture
def symmetric_distances():
    # school1 is close to p1/a1, school2 close to p2/a2
    return DistanceMatrix.from_rows(
        [
            [1.0, 4.0, 1.0, 4.0],
            [4.0, 1.0, 4.0, 1.0],
        ]
    )


@pytest.fixture
def scenario_a(two_school_master):
    schools, employees = two_school_master
    overrides = ScenarioOverrides(
        scenario_id="scenario-a",
        children_per_school={"school1": 3, "school2": 2},
        capacity_per_employee={employee.id: CapacityRange(0, 5) for employee in employees},
    )
    return build_effective_inputs(schools, employees, overrides)


@pytest.fixture
def payload():
    """JSON payload equivalent to scenario A."""
    return {
        "schools": [
            {"id": "school1", "name": "School 1", "lon": 9.0, "lat": 50.0},
            {"id": "school2", "name": "School 2", "lon": 9.1, "lat": 50.0},
        ],
        "employees": [
            {"id": "p1", "name": "P1", "lon": 9.5, "lat": 50.1, "role": "Physician"},
            {"id": "p2", "name": "P2", "lon": 9.5, "lat": 50.1, "role": "Physician"},
            {"id": "a1", "name": "A1", "lon": 9.5, "lat": 50.1, "role": "Assistant"},
            {"id": "a2", "name": "A2", "lon": 9.5, "lat": 50.1, "type": "Assistent"},
        ],
        "scenario": {
            "id": "scenario-a",
            "children": [["school1", 3], ["school2", 2]],
            "capacities": {
                "p1": {"min": 0, "max": 5},
                "p2": {"min": 0, "max": 5},
                "a1": {"min": 0, "max": 5},
                "a2": {"min": 0, "max": 5},
            },
            "forced_pairs": [],
        },
        "distances": [
            [1.0, 4.0, 1.0, 4.0],
            [4.0, 1.0, 4.0, 1.0],
        ],
    }
