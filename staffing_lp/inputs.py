"""Master records, scenario overrides and the merge that feeds the model.

The school and employee lists handed to :func:`build_effective_inputs` must be
in the same order as the rows and columns of the :class:`DistanceMatrix`.
Every downstream coefficient is looked up by position, so the merge never
drops or reorders a master record.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import DataError
from .model import VariableKey

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """The two staff roles that must both visit every school."""

    PHYSICIAN = "Physician"
    ASSISTANT = "Assistant"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, Role):
            return value
        normalized = str(value).strip().lower()
        if normalized in _ROLE_ALIASES:
            return _ROLE_ALIASES[normalized]
        raise ValueError(f"Unknown employee role: {value!r}")


_ROLE_ALIASES = {
    "physician": Role.PHYSICIAN,
    "arzt": Role.PHYSICIAN,
    "assistant": Role.ASSISTANT,
    "assistent": Role.ASSISTANT,
}


def _require_count(value: object, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{what} must be non-negative")


@dataclass(frozen=True)
class School:
    """Immutable master record of a school."""

    id: str
    name: str
    lon: float
    lat: float

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("School id cannot be empty")


@dataclass(frozen=True)
class Employee:
    """Immutable master record of a mobile staff member."""

    id: str
    name: str
    lon: float
    lat: float
    role: Role

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Employee id cannot be empty")
        object.__setattr__(self, "role", Role.parse(self.role))


@dataclass(frozen=True)
class CapacityRange:
    """Number of children an employee may examine within the scenario."""

    minimum: int = 0
    maximum: int = 0

    def __post_init__(self) -> None:
        _require_count(self.minimum, "Capacity minimum")
        _require_count(self.maximum, "Capacity maximum")
        if self.minimum > self.maximum:
            raise ValueError(
                f"Capacity minimum ({self.minimum}) cannot exceed maximum ({self.maximum})"
            )

    @property
    def is_fixed(self) -> bool:
        return self.minimum == self.maximum


@dataclass
class ScenarioOverrides:
    """Per-scenario child counts, capacities and forced pairings.

    Args:
        scenario_id: Identifier of the scenario these overrides belong to.
        children_per_school: School id to number of children to examine.
        capacity_per_employee: Employee id to :class:`CapacityRange`.
        forced_pairs: ``(school_id, employee_id)`` pairs that must appear in
            the plan. Duplicates are collapsed, first occurrence wins.
    """

    scenario_id: str
    description: str = ""
    children_per_school: Dict[str, int] = field(default_factory=dict)
    capacity_per_employee: Dict[str, CapacityRange] = field(default_factory=dict)
    forced_pairs: Sequence[Tuple[str, str]] = ()
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        for school_id, children in self.children_per_school.items():
            _require_count(children, f"Children for school '{school_id}'")
        self.capacity_per_employee = {
            employee_id: value if isinstance(value, CapacityRange) else CapacityRange(*value)
            for employee_id, value in self.capacity_per_employee.items()
        }
        self.forced_pairs = tuple(dict.fromkeys(tuple(pair) for pair in self.forced_pairs))


@dataclass(frozen=True)
class DistanceMatrix:
    """Rectangular school-by-employee distance table, aligned by position."""

    data: Tuple[Tuple[float, ...], ...]

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[float]]) -> "DistanceMatrix":
        table = tuple(tuple(float(value) for value in row) for row in rows)
        widths = {len(row) for row in table}
        if len(widths) > 1:
            raise DataError("Distance matrix rows must all have the same length")
        for i, row in enumerate(table):
            for j, value in enumerate(row):
                if not math.isfinite(value) or value < 0:
                    raise DataError(f"Distance at ({i}, {j}) must be a non-negative number, got {value}")
        return cls(table)

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.data), len(self.data[0]) if self.data else 0

    def check_shape(self, n_schools: int, n_employees: int) -> None:
        rows = len(self.data)
        if rows != n_schools or any(len(row) != n_employees for row in self.data):
            raise DataError(
                f"Distance matrix is {rows}x{self.shape[1]} but inputs need "
                f"{n_schools} schools x {n_employees} employees"
            )

    def distance(self, school_index: int, employee_index: int) -> float:
        return self.data[school_index][employee_index]


@dataclass(frozen=True)
class SchoolDemand:
    school: School
    children: int

    @property
    def id(self) -> str:
        return self.school.id


@dataclass(frozen=True)
class EmployeeCapacity:
    employee: Employee
    capacity: CapacityRange

    @property
    def id(self) -> str:
        return self.employee.id

    @property
    def role(self) -> Role:
        return self.employee.role


@dataclass(frozen=True)
class EffectiveInputs:
    """Master records merged with one scenario, in distance-matrix order."""

    schools: Tuple[SchoolDemand, ...]
    employees: Tuple[EmployeeCapacity, ...]
    forced_pairs: Tuple[VariableKey, ...] = ()

    def school_index(self) -> Dict[str, int]:
        return {demand.id: index for index, demand in enumerate(self.schools)}

    def employee_index(self) -> Dict[str, int]:
        return {capacity.id: index for index, capacity in enumerate(self.employees)}


def build_effective_inputs(
    schools: Sequence[School],
    employees: Sequence[Employee],
    overrides: ScenarioOverrides,
) -> EffectiveInputs:
    """Merge master data with a scenario, keeping every record in master order."""

    _require_unique_ids("school", (school.id for school in schools))
    _require_unique_ids("employee", (employee.id for employee in employees))

    school_ids = {school.id for school in schools}
    employee_ids = {employee.id for employee in employees}

    _warn_unknown("children override", overrides.children_per_school, school_ids, overrides.scenario_id)
    _warn_unknown("capacity override", overrides.capacity_per_employee, employee_ids, overrides.scenario_id)

    forced_pairs: List[VariableKey] = []
    unknown_pairs: List[Tuple[str, str]] = []
    for school_id, employee_id in overrides.forced_pairs:
        if school_id not in school_ids or employee_id not in employee_ids:
            unknown_pairs.append((school_id, employee_id))
            continue
        forced_pairs.append(VariableKey(school_id, employee_id))
    if unknown_pairs:
        raise DataError(
            f"Scenario '{overrides.scenario_id}' has forced pairs referencing unknown "
            f"schools or employees: {unknown_pairs}"
        )

    merged = EffectiveInputs(
        schools=tuple(
            SchoolDemand(school, overrides.children_per_school.get(school.id, 0)) for school in schools
        ),
        employees=tuple(
            EmployeeCapacity(employee, overrides.capacity_per_employee.get(employee.id, CapacityRange()))
            for employee in employees
        ),
        forced_pairs=tuple(forced_pairs),
    )
    logger.debug(
        "Effective inputs built",
        extra={
            "event": "effective_inputs_built",
            "scenario_id": overrides.scenario_id,
            "schools": len(merged.schools),
            "employees": len(merged.employees),
            "forced_pairs": len(merged.forced_pairs),
        },
    )
    return merged


def _require_unique_ids(kind: str, ids: Iterable[str]) -> None:
    seen = set()
    duplicates = []
    for value in ids:
        if value in seen:
            duplicates.append(value)
        seen.add(value)
    if duplicates:
        raise DataError(f"Duplicate {kind} ids in master data: {sorted(set(duplicates))}")


def _warn_unknown(kind: str, mapping: Mapping[str, object], known: set, scenario_id: str) -> None:
    unknown = sorted(key for key in mapping if key not in known)
    if unknown:
        logger.warning(
            "Scenario %s references unknown ids in %s; they are ignored",
            scenario_id,
            kind,
            extra={"event": "scenario_unknown_ids", "scenario_id": scenario_id, "ids": unknown},
        )


@dataclass(frozen=True)
class RoleCapacity:
    """Aggregated capacity of one role compared to the children to examine."""

    role: Role
    children: int
    minimum: int
    maximum: int

    @property
    def under_capacity(self) -> bool:
        return self.maximum < self.children

    @property
    def over_committed(self) -> bool:
        return self.minimum > self.children

    def to_dict(self) -> Dict[str, object]:
        return {
            "role": self.role.value,
            "children": self.children,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "under_capacity": self.under_capacity,
            "over_committed": self.over_committed,
        }


def capacity_overview(inputs: EffectiveInputs) -> Dict[Role, RoleCapacity]:
    """Compare summed capacity ranges per role with the total children.

    Both roles must examine every child, so each role's capacity range has to
    bracket the scenario total for the model to be feasible.
    """

    total_children = sum(demand.children for demand in inputs.schools)
    overview = {}
    for role in Role:
        members = [capacity.capacity for capacity in inputs.employees if capacity.role is role]
        overview[role] = RoleCapacity(
            role=role,
            children=total_children,
            minimum=sum(item.minimum for item in members),
            maximum=sum(item.maximum for item in members),
        )
    return overview
