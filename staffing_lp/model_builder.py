"""Turn effective scenario inputs into an engine-neutral :class:`Problem`.

Both model variants share one constraint generator. A
:class:`ModelFormulation` picked once per :class:`ModelVariant` supplies the
per-school contribution of a variable (``1`` for child counts, the school's
child count for binary links) and the variable domain.

Constraint rows, in order:

1. ``cover_physician_<i>``: physicians at school ``i`` examine all its children.
2. ``cover_assistant_<i>``: same for assistants.
3. ``capacity_<j>``: employee ``j`` stays within its capacity range.
4. ``forced_<i>_<j>``: the forced pairing of school ``i`` and employee ``j``.

Row names use positions so they stay unique whatever characters the ids
contain; ``Constraint.label`` carries the readable ids.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Tuple

from .errors import DataError
from .inputs import DistanceMatrix, EffectiveInputs, Role, SchoolDemand
from .model import BoundKind, Constraint, ModelVariant, Problem, Term, VariableKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelFormulation:
    """Coefficient convention and variable domain of one model variant."""

    variant: ModelVariant
    binary: bool
    contribution: Callable[[SchoolDemand], float]
    forced_bound: Callable[[SchoolDemand], Tuple[BoundKind, float]]


FORMULATIONS: Dict[ModelVariant, ModelFormulation] = {
    ModelVariant.ASSIGN_CHILDREN: ModelFormulation(
        variant=ModelVariant.ASSIGN_CHILDREN,
        binary=False,
        contribution=lambda demand: 1,
        forced_bound=lambda demand: (BoundKind.LOWER_BOUND, demand.children),
    ),
    ModelVariant.ASSIGN_SCHOOLS: ModelFormulation(
        variant=ModelVariant.ASSIGN_SCHOOLS,
        binary=True,
        contribution=lambda demand: demand.children,
        forced_bound=lambda demand: (BoundKind.FIXED, 1),
    ),
}

_PROBLEM_NAMES = {
    ModelVariant.ASSIGN_CHILDREN: "school_visits_assign_children",
    ModelVariant.ASSIGN_SCHOOLS: "school_visits_assign_schools",
}


def build_problem(
    inputs: EffectiveInputs,
    distances: DistanceMatrix,
    variant: ModelVariant = ModelVariant.ASSIGN_CHILDREN,
    *,
    generation: int = 0,
) -> Problem:
    """Build the minimum-distance staffing problem for ``inputs``.

    Raises:
        DataError: the distance matrix does not match the inputs, two pairs
            map to the same :class:`VariableKey`, or a forced pair is unknown.
    """

    variant = ModelVariant.parse(variant)
    formulation = FORMULATIONS[variant]

    _validate_inputs(inputs, distances)
    keys = _build_variable_keys(inputs)

    objective = tuple(_build_objective_terms(inputs, distances, formulation, keys))
    constraints: List[Constraint] = []
    constraints.extend(_build_coverage_constraints(inputs, formulation, keys))
    constraints.extend(_build_capacity_constraints(inputs, formulation, keys))
    constraints.extend(_build_forced_pair_constraints(inputs, formulation))

    ordered_keys = tuple(keys.values())
    problem = Problem(
        name=_PROBLEM_NAMES[variant],
        variant=variant,
        keys=ordered_keys,
        objective=objective,
        constraints=tuple(constraints),
        binaries=frozenset(ordered_keys) if formulation.binary else frozenset(),
        generation=generation,
    )
    logger.info(
        "Built %s problem with %d variables and %d constraints",
        variant.value,
        len(problem.keys),
        len(problem.constraints),
        extra={
            "event": "problem_built",
            "variant": variant.value,
            "generation": generation,
            "variables": len(problem.keys),
            "constraints": len(problem.constraints),
            "mip": problem.is_mip,
        },
    )
    return problem


def _validate_inputs(inputs: EffectiveInputs, distances: DistanceMatrix) -> None:
    if not inputs.schools:
        raise DataError("At least one school is required to build a model")
    if not inputs.employees:
        raise DataError("At least one employee is required to build a model")
    distances.check_shape(len(inputs.schools), len(inputs.employees))


def _build_variable_keys(inputs: EffectiveInputs) -> Dict[Tuple[int, int], VariableKey]:
    """Key every (school, employee) position, failing on any key collision."""

    keys: Dict[Tuple[int, int], VariableKey] = {}
    owners: Dict[VariableKey, Tuple[int, int]] = {}
    collisions: List[Tuple[VariableKey, Tuple[int, int], Tuple[int, int]]] = []
    for i, demand in enumerate(inputs.schools):
        for j, capacity in enumerate(inputs.employees):
            key = VariableKey(demand.id, capacity.id)
            if key in owners:
                collisions.append((key, owners[key], (i, j)))
                continue
            owners[key] = (i, j)
            keys[(i, j)] = key

    if collisions:
        raise DataError(
            f"{len(collisions)} (school, employee) pairs share a variable key; "
            f"first collision: {collisions[0][0]} at positions {collisions[0][1]} and {collisions[0][2]}"
        )
    return keys


def _build_objective_terms(
    inputs: EffectiveInputs,
    distances: DistanceMatrix,
    formulation: ModelFormulation,
    keys: Dict[Tuple[int, int], VariableKey],
) -> Iterable[Term]:
    for i, demand in enumerate(inputs.schools):
        contribution = formulation.contribution(demand)
        for j in range(len(inputs.employees)):
            yield Term(keys[(i, j)], distances.distance(i, j) * contribution)


def _build_coverage_constraints(
    inputs: EffectiveInputs,
    formulation: ModelFormulation,
    keys: Dict[Tuple[int, int], VariableKey],
) -> Iterable[Constraint]:
    for role in (Role.PHYSICIAN, Role.ASSISTANT):
        for i, demand in enumerate(inputs.schools):
            contribution = formulation.contribution(demand)
            terms = tuple(
                Term(keys[(i, j)], contribution)
                for j, capacity in enumerate(inputs.employees)
                if capacity.role is role
            )
            yield Constraint(
                name=f"cover_{role.value.lower()}_{i}",
                terms=terms,
                kind=BoundKind.FIXED,
                lower=demand.children,
                label=f"{role.value} coverage for school {demand.id}",
            )


def _build_capacity_constraints(
    inputs: EffectiveInputs,
    formulation: ModelFormulation,
    keys: Dict[Tuple[int, int], VariableKey],
) -> Iterable[Constraint]:
    for j, capacity in enumerate(inputs.employees):
        terms = tuple(
            Term(keys[(i, j)], formulation.contribution(demand)) for i, demand in enumerate(inputs.schools)
        )
        bounds = capacity.capacity
        if bounds.is_fixed:
            kind, upper = BoundKind.FIXED, None
        else:
            kind, upper = BoundKind.DOUBLE_BOUND, bounds.maximum
        yield Constraint(
            name=f"capacity_{j}",
            terms=terms,
            kind=kind,
            lower=bounds.minimum,
            upper=upper,
            label=f"Capacity of employee {capacity.id}",
        )


def _build_forced_pair_constraints(
    inputs: EffectiveInputs,
    formulation: ModelFormulation,
) -> Iterable[Constraint]:
    school_index = inputs.school_index()
    employee_index = inputs.employee_index()
    for key in dict.fromkeys(inputs.forced_pairs):
        i = school_index.get(key.school_id)
        j = employee_index.get(key.employee_id)
        if i is None or j is None:
            raise DataError(f"Forced pair {tuple(key)} references an unknown school or employee")
        kind, bound = formulation.forced_bound(inputs.schools[i])
        yield Constraint(
            name=f"forced_{i}_{j}",
            terms=(Term(key, 1),),
            kind=kind,
            lower=bound,
            label=f"School {key.school_id} forced to employee {key.employee_id}",
        )
