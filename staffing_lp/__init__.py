"""Linear programming toolkit for assigning mobile medical staff to schools.

The package turns scenario data (children per school, capacity ranges per
employee, a school-by-employee distance matrix and forced pairings) into a
minimum-distance LP or MIP, solves it with PuLP and maps the variable values
back to children per (school, employee) pair. It does not depend on Flask so
it can be used from scripts or notebooks.
"""

from .errors import (
    DataError,
    EngineUnavailable,
    InfeasibleError,
    SolveStatusError,
    StaffingError,
    UnboundedError,
    UndefinedError,
)
from .inputs import (
    CapacityRange,
    DistanceMatrix,
    EffectiveInputs,
    Employee,
    Role,
    ScenarioOverrides,
    School,
    build_effective_inputs,
    capacity_overview,
)
from .interpreter import EmployeeSummary, Interpretation, PairAssignment, interpret
from .model import BoundKind, Constraint, ModelVariant, Problem, Solution, SolveStatus, VariableKey
from .model_builder import build_problem
from .session import OptimizationSession, SessionState
from .solver import SolverAdapter, SolverConfig

__all__ = [
    "BoundKind",
    "CapacityRange",
    "Constraint",
    "DataError",
    "DistanceMatrix",
    "EffectiveInputs",
    "Employee",
    "EmployeeSummary",
    "EngineUnavailable",
    "InfeasibleError",
    "Interpretation",
    "ModelVariant",
    "OptimizationSession",
    "PairAssignment",
    "Problem",
    "Role",
    "ScenarioOverrides",
    "School",
    "SessionState",
    "Solution",
    "SolveStatus",
    "SolveStatusError",
    "SolverAdapter",
    "SolverConfig",
    "StaffingError",
    "UnboundedError",
    "UndefinedError",
    "VariableKey",
    "build_effective_inputs",
    "build_problem",
    "capacity_overview",
    "interpret",
]
