import pytest

from conftest import make_employee, make_schools
from staffing_lp import (
    CapacityRange,
    DataError,
    DistanceMatrix,
    Employee,
    Role,
    ScenarioOverrides,
    VariableKey,
    build_effective_inputs,
    capacity_overview,
)


def test_every_master_record_is_kept_in_order_with_defaults():
    schools = make_schools("s1", "s2", "s3")
    employees = [make_employee("p1", Role.PHYSICIAN), make_employee("a1", Role.ASSISTANT)]
    overrides = ScenarioOverrides(
        scenario_id="partial",
        children_per_school={"s2": 7},
        capacity_per_employee={"a1": CapacityRange(1, 9)},
    )

    inputs = build_effective_inputs(schools, employees, overrides)

    assert [demand.id for demand in inputs.schools] == ["s1", "s2", "s3"]
    assert [demand.children for demand in inputs.schools] == [0, 7, 0]
    assert [capacity.id for capacity in inputs.employees] == ["p1", "a1"]
    assert inputs.employees[0].capacity == CapacityRange(0, 0)
    assert inputs.employees[1].capacity == CapacityRange(1, 9)


def test_forced_pairs_become_variable_keys():
    schools = make_schools("s1")
    employees = [make_employee("p1", Role.PHYSICIAN)]
    overrides = ScenarioOverrides(scenario_id="x", forced_pairs=[("s1", "p1"), ("s1", "p1")])

    inputs = build_effective_inputs(schools, employees, overrides)

    assert inputs.forced_pairs == (VariableKey("s1", "p1"),)


@pytest.mark.parametrize("pair", [("nope", "p1"), ("s1", "nobody")])
def test_forced_pair_with_unknown_id_is_a_data_error(pair):
    schools = make_schools("s1")
    employees = [make_employee("p1", Role.PHYSICIAN)]
    overrides = ScenarioOverrides(scenario_id="x", forced_pairs=[pair])

    with pytest.raises(DataError, match="unknown"):
        build_effective_inputs(schools, employees, overrides)


def test_duplicate_master_ids_are_rejected():
    schools = make_schools("s1", "s1")
    employees = [make_employee("p1", Role.PHYSICIAN)]

    with pytest.raises(DataError, match="Duplicate school ids"):
        build_effective_inputs(schools, employees, ScenarioOverrides(scenario_id="x"))


def test_overrides_for_unknown_ids_are_ignored(caplog):
    schools = make_schools("s1")
    employees = [make_employee("p1", Role.PHYSICIAN)]
    overrides = ScenarioOverrides(scenario_id="stale", children_per_school={"s1": 2, "gone": 5})

    inputs = build_effective_inputs(schools, employees, overrides)

    assert [demand.children for demand in inputs.schools] == [2]
    assert "unknown ids" in caplog.text


def test_capacity_range_validation():
    with pytest.raises(ValueError):
        CapacityRange(5, 4)
    with pytest.raises(ValueError):
        CapacityRange(-1, 4)
    assert CapacityRange(3, 3).is_fixed
    assert not CapacityRange(0, 3).is_fixed


def test_overrides_accept_tuples_for_capacity_and_reject_negative_children():
    overrides = ScenarioOverrides(scenario_id="x", capacity_per_employee={"p1": (2, 4)})
    assert overrides.capacity_per_employee["p1"] == CapacityRange(2, 4)

    with pytest.raises(ValueError):
        ScenarioOverrides(scenario_id="x", children_per_school={"s1": -1})


def test_role_parsing_accepts_german_labels():
    assert Role.parse("Arzt") is Role.PHYSICIAN
    assert Role.parse("assistent") is Role.ASSISTANT
    assert Employee(id="e", name="e", lon=0, lat=0, role="Physician").role is Role.PHYSICIAN
    with pytest.raises(ValueError):
        Role.parse("Nurse")


def test_distance_matrix_validation():
    matrix = DistanceMatrix.from_rows([[1, 2], [3, 4]])
    assert matrix.shape == (2, 2)
    assert matrix.distance(1, 0) == 3.0

    with pytest.raises(DataError):
        DistanceMatrix.from_rows([[1, 2], [3]])
    with pytest.raises(DataError):
        DistanceMatrix.from_rows([[1, -2]])
    with pytest.raises(DataError):
        DistanceMatrix.from_rows([[float("nan")]])
    with pytest.raises(DataError):
        matrix.check_shape(3, 2)


def test_capacity_overview_flags_roles(scenario_a):
    overview = capacity_overview(scenario_a)

    physicians = overview[Role.PHYSICIAN]
    assert physicians.children == 5
    assert (physicians.minimum, physicians.maximum) == (0, 10)
    assert not physicians.under_capacity
    assert not physicians.over_committed


def test_capacity_overview_detects_shortage():
    schools = make_schools("s1", "s2")
    employees = [make_employee("p1", Role.PHYSICIAN), make_employee("a1", Role.ASSISTANT)]
    overrides = ScenarioOverrides(
        scenario_id="short",
        children_per_school={"s1": 1, "s2": 1},
        capacity_per_employee={"p1": CapacityRange(0, 1), "a1": CapacityRange(3, 4)},
    )

    overview = capacity_overview(build_effective_inputs(schools, employees, overrides))

    assert overview[Role.PHYSICIAN].under_capacity
    assert overview[Role.ASSISTANT].over_committed


@pytest.mark.parametrize("minimum, maximum", [(0, 4.9), (1.0, 3), (True, 3), ("1", 3)])
def test_capacity_range_requires_integers(minimum, maximum):
    with pytest.raises(ValueError):
        CapacityRange(minimum, maximum)


@pytest.mark.parametrize("children", [2.7, 2.0, True, "3"])
def test_overrides_require_integer_children(children):
    with pytest.raises(ValueError):
        ScenarioOverrides(scenario_id="x", children_per_school={"s1": children})
