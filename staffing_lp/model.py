"""Engine-neutral description of an optimisation problem and its solution."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, NamedTuple, Optional, Tuple, Type

from .errors import InfeasibleError, SolveStatusError, UnboundedError, UndefinedError


class VariableKey(NamedTuple):
    """Identifies the decision variable of exactly one (school, employee) pair."""

    school_id: str
    employee_id: str


class ModelVariant(str, Enum):
    """Selects the variable semantics of the built model.

    ``ASSIGN_CHILDREN`` uses a continuous variable per pair holding the number
    of children the employee examines at the school. ``ASSIGN_SCHOOLS`` uses a
    binary variable per pair: the employee examines all children of the
    school or none.
    """

    ASSIGN_CHILDREN = "AssignChildren"
    ASSIGN_SCHOOLS = "AssignSchools"

    @classmethod
    def parse(cls, value: "str | ModelVariant") -> "ModelVariant":
        if isinstance(value, ModelVariant):
            return value
        for member in cls:
            if value in (member.value, member.name):
                return member
        raise ValueError(f"Unknown model variant: {value!r}")


class BoundKind(str, Enum):
    FIXED = "fixed"
    LOWER_BOUND = "lower"
    DOUBLE_BOUND = "double"


@dataclass(frozen=True)
class Term:
    key: VariableKey
    coefficient: float


@dataclass(frozen=True)
class Constraint:
    """A linear row ``lower <= sum(terms) <= upper`` of the given kind."""

    name: str
    terms: Tuple[Term, ...]
    kind: BoundKind
    lower: float
    upper: Optional[float] = None
    label: str = ""

    def __post_init__(self) -> None:
        if self.kind is BoundKind.FIXED and self.upper is None:
            object.__setattr__(self, "upper", self.lower)
        if self.kind is BoundKind.LOWER_BOUND and self.upper is not None:
            raise ValueError("Lower-bound constraints cannot carry an upper bound")
        if self.kind is BoundKind.DOUBLE_BOUND and (self.upper is None or self.upper < self.lower):
            raise ValueError("Double-bound constraints need lower <= upper")

    def activity(self, values: Mapping[VariableKey, float]) -> float:
        return sum(term.coefficient * values.get(term.key, 0.0) for term in self.terms)

    def is_satisfied(self, values: Mapping[VariableKey, float], tolerance: float = 1e-6) -> bool:
        activity = self.activity(values)
        if activity < self.lower - tolerance:
            return False
        return self.upper is None or activity <= self.upper + tolerance

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "label": self.label,
            "kind": self.kind.value,
            "lower": self.lower,
            "upper": self.upper,
            "terms": [
                {"school_id": term.key.school_id, "employee_id": term.key.employee_id, "coefficient": term.coefficient}
                for term in self.terms
            ],
        }


@dataclass(frozen=True)
class Problem:
    """Minimisation problem over one variable per (school, employee) pair.

    ``keys`` lists every variable in school-major positional order. ``binaries``
    is empty for a pure LP, otherwise it names the variables restricted to
    ``{0, 1}``; all other variables are continuous and non-negative.
    """

    name: str
    variant: ModelVariant
    keys: Tuple[VariableKey, ...]
    objective: Tuple[Term, ...]
    constraints: Tuple[Constraint, ...]
    binaries: frozenset = frozenset()
    generation: int = 0

    @property
    def is_mip(self) -> bool:
        return bool(self.binaries)

    def evaluate_objective(self, values: Mapping[VariableKey, float]) -> float:
        return sum(term.coefficient * values.get(term.key, 0.0) for term in self.objective)

    def constraint(self, name: str) -> Constraint:
        for constraint in self.constraints:
            if constraint.name == name:
                return constraint
        raise KeyError(name)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "variant": self.variant.value,
            "generation": self.generation,
            "variables": [list(key) for key in self.keys],
            "objective": [
                {"school_id": term.key.school_id, "employee_id": term.key.employee_id, "coefficient": term.coefficient}
                for term in self.objective
            ],
            "constraints": [constraint.to_dict() for constraint in self.constraints],
            "binaries": [list(key) for key in self.keys if key in self.binaries],
        }


class SolveStatus(str, Enum):
    OPTIMAL = "Optimal"
    FEASIBLE = "Feasible"
    INFEASIBLE = "Infeasible"
    UNBOUNDED = "Unbounded"
    UNDEFINED = "Undefined"

    @property
    def is_success(self) -> bool:
        return self in (SolveStatus.OPTIMAL, SolveStatus.FEASIBLE)

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def error_class(self) -> Optional[Type[SolveStatusError]]:
        return _STATUS_ERRORS.get(self)


_STATUS_LABELS = {
    SolveStatus.OPTIMAL: "optimal",
    SolveStatus.FEASIBLE: "feasible",
    SolveStatus.INFEASIBLE: "infeasible",
    SolveStatus.UNBOUNDED: "unbounded",
    SolveStatus.UNDEFINED: "undefined",
}

_STATUS_ERRORS = {
    SolveStatus.INFEASIBLE: InfeasibleError,
    SolveStatus.UNBOUNDED: UnboundedError,
    SolveStatus.UNDEFINED: UndefinedError,
}


@dataclass(frozen=True)
class Solution:
    """Terminal engine status plus the value of every variable."""

    status: SolveStatus
    values: Mapping[VariableKey, float] = field(default_factory=dict)
    solve_time: float = 0.0
    generation: int = 0
    objective_value: Optional[float] = None

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    def value(self, key: VariableKey) -> float:
        return self.values.get(key, 0.0)

    def as_error(self) -> Optional[SolveStatusError]:
        error_class = self.status.error_class
        if error_class is None:
            return None
        return error_class(generation=self.generation)

    def raise_for_status(self) -> None:
        error = self.as_error()
        if error is not None:
            raise error
