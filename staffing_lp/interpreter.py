"""Translate solver values back into children-per-pair figures.

For ``AssignChildren`` a variable already holds the number of children. For
``AssignSchools`` it is a 0/1 link and is scaled by the school's child count.
Pairs that carry no children are left out of :attr:`Interpretation.pairs`;
every employee appears in :attr:`Interpretation.employees`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .inputs import DistanceMatrix, EffectiveInputs, Role
from .model import ModelVariant, Problem, Solution, SolveStatus, VariableKey

logger = logging.getLogger(__name__)

ZERO_TOLERANCE = 1e-6


@dataclass(frozen=True)
class PairAssignment:
    school_id: str
    employee_id: str
    role: Role
    children: float
    distance: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "school_id": self.school_id,
            "employee_id": self.employee_id,
            "role": self.role.value,
            "children": self.children,
            "distance": self.distance,
        }


@dataclass(frozen=True)
class EmployeeSummary:
    employee_id: str
    role: Role
    minimum: int
    maximum: int
    total_children: float
    average_distance: Optional[float]

    def to_dict(self) -> Dict[str, object]:
        return {
            "employee_id": self.employee_id,
            "role": self.role.value,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "total_children": self.total_children,
            "average_distance": self.average_distance,
        }


@dataclass(frozen=True)
class Route:
    """A nonzero pair with the coordinates needed to draw it on a map."""

    school_id: str
    employee_id: str
    role: Role
    school_coords: Tuple[float, float]
    employee_coords: Tuple[float, float]

    def to_dict(self) -> Dict[str, object]:
        return {
            "school_id": self.school_id,
            "employee_id": self.employee_id,
            "role": self.role.value,
            "from": list(self.employee_coords),
            "to": list(self.school_coords),
        }


@dataclass
class Interpretation:
    status: SolveStatus
    variant: ModelVariant
    generation: int
    solve_time: float
    objective_value: Optional[float]
    pairs: List[PairAssignment] = field(default_factory=list)
    employees: List[EmployeeSummary] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)

    def assigned(self, school_id: str, employee_id: str) -> float:
        for pair in self.pairs:
            if pair.school_id == school_id and pair.employee_id == employee_id:
                return pair.children
        return 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "status_label": self.status.label,
            "variant": self.variant.value,
            "generation": self.generation,
            "solve_time": self.solve_time,
            "objective_value": self.objective_value,
            "pairs": [pair.to_dict() for pair in self.pairs],
            "employees": [summary.to_dict() for summary in self.employees],
            "routes": [route.to_dict() for route in self.routes],
        }


def assigned_children(
    solution: Solution,
    variant: ModelVariant,
    key: VariableKey,
    children: int,
) -> float:
    """Children examined by the pair ``key`` according to ``solution``."""

    value = solution.value(key)
    if variant is ModelVariant.ASSIGN_SCHOOLS:
        value *= children
    return 0.0 if abs(value) <= ZERO_TOLERANCE else value


def interpret(
    solution: Solution,
    problem: Problem,
    inputs: EffectiveInputs,
    distances: DistanceMatrix,
) -> Interpretation:
    """Build presentation tables for ``solution``.

    ``problem`` must be the one the solution was computed for; its variant
    decides how variable values are scaled.
    """

    interpretation = Interpretation(
        status=solution.status,
        variant=problem.variant,
        generation=solution.generation,
        solve_time=solution.solve_time,
        objective_value=solution.objective_value,
    )
    if not solution.is_success:
        return interpretation

    distances.check_shape(len(inputs.schools), len(inputs.employees))

    totals = [0.0] * len(inputs.employees)
    weighted = [0.0] * len(inputs.employees)
    for i, demand in enumerate(inputs.schools):
        for j, capacity in enumerate(inputs.employees):
            children = assigned_children(
                solution, problem.variant, VariableKey(demand.id, capacity.id), demand.children
            )
            if children == 0.0:
                continue
            distance = distances.distance(i, j)
            totals[j] += children
            weighted[j] += children * distance
            interpretation.pairs.append(
                PairAssignment(demand.id, capacity.id, capacity.role, children, distance)
            )
            interpretation.routes.append(
                Route(
                    demand.id,
                    capacity.id,
                    capacity.role,
                    (demand.school.lon, demand.school.lat),
                    (capacity.employee.lon, capacity.employee.lat),
                )
            )

    for j, capacity in enumerate(inputs.employees):
        total = totals[j]
        interpretation.employees.append(
            EmployeeSummary(
                employee_id=capacity.id,
                role=capacity.role,
                minimum=capacity.capacity.minimum,
                maximum=capacity.capacity.maximum,
                total_children=total,
                average_distance=weighted[j] / total if total > 0 else None,
            )
        )

    logger.debug(
        "Interpreted solution",
        extra={
            "event": "solution_interpreted",
            "generation": solution.generation,
            "pairs": len(interpretation.pairs),
        },
    )
    return interpretation
