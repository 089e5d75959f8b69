"""Submit a :class:`Problem` to PuLP's bundled CBC engine.

The adapter owns one solver handle, created the first time it is needed and
reused for every later solve. Each call translates the immutable
:class:`Problem` into a fresh :class:`pulp.LpProblem`; variables and rows get
positional engine names (``x_<n>``, ``c_<n>``) because PuLP rewrites
characters such as ``-`` or spaces in names, which could merge distinct ids.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

try:
    import pulp  # type: ignore
except ImportError as exc:
    raise ImportError(
        "PuLP is required to use staffing_lp.\n"
        "Install it with `pip install pulp` or add it to your environment."
    ) from exc

from .errors import EngineUnavailable
from .model import BoundKind, Constraint, Problem, Solution, SolveStatus, VariableKey

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Settings handed to the CBC command-line solver."""

    time_limit: Optional[int] = None
    gap: Optional[float] = None
    log_solver_output: bool = False
    threads: Optional[int] = None


def default_solver_factory(config: SolverConfig) -> "pulp.LpSolver":
    return pulp.PULP_CBC_CMD(
        msg=int(config.log_solver_output),
        timeLimit=config.time_limit,
        gapRel=config.gap,
        threads=config.threads,
    )


_SOLUTION_STATUS = {
    pulp.LpSolutionOptimal: SolveStatus.OPTIMAL,
    pulp.LpSolutionIntegerFeasible: SolveStatus.FEASIBLE,
    pulp.LpSolutionInfeasible: SolveStatus.INFEASIBLE,
    pulp.LpSolutionUnbounded: SolveStatus.UNBOUNDED,
}

_PROBLEM_STATUS = {
    pulp.LpStatusOptimal: SolveStatus.OPTIMAL,
    pulp.LpStatusInfeasible: SolveStatus.INFEASIBLE,
    pulp.LpStatusUnbounded: SolveStatus.UNBOUNDED,
}


def map_status(status_code: int, solution_code: Optional[int]) -> SolveStatus:
    """Translate PuLP's problem and solution status codes to :class:`SolveStatus`."""

    if solution_code in _SOLUTION_STATUS:
        return _SOLUTION_STATUS[solution_code]
    return _PROBLEM_STATUS.get(status_code, SolveStatus.UNDEFINED)


class SolverAdapter:
    """Lazily created, reusable handle to the LP/MIP engine."""

    def __init__(
        self,
        config: Optional[SolverConfig] = None,
        factory: Optional[Callable[[SolverConfig], "pulp.LpSolver"]] = None,
    ) -> None:
        self.config = config or SolverConfig()
        self._factory = factory or default_solver_factory
        self._handle: Optional["pulp.LpSolver"] = None

    @property
    def handle(self) -> "pulp.LpSolver":
        if self._handle is None:
            self._handle = self._factory(self.config)
            logger.info(
                "Solver handle created",
                extra={"event": "solver_handle_created", "solver": type(self._handle).__name__},
            )
        return self._handle

    @property
    def available(self) -> bool:
        try:
            return bool(self.handle.available())
        except (pulp.PulpSolverError, OSError) as exc:
            logger.warning(
                "Solver engine unavailable: %s",
                exc,
                extra={"event": "solver_unavailable", "error": str(exc)},
            )
            return False

    def ensure_available(self) -> None:
        if not self.available:
            raise EngineUnavailable("The LP/MIP engine is not available; solving is disabled")

    async def solve(self, problem: Problem) -> Solution:
        """Solve ``problem`` without blocking the event loop."""

        self.ensure_available()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._solve_blocking, problem)

    def solve_sync(self, problem: Problem) -> Solution:
        self.ensure_available()
        return self._solve_blocking(problem)

    def _solve_blocking(self, problem: Problem) -> Solution:
        started = time.perf_counter()

        trivially_violated = _trivially_violated_rows(problem)
        if trivially_violated:
            logger.info(
                "Problem %s has rows without variables that cannot hold: %s",
                problem.name,
                trivially_violated,
                extra={"event": "solve_trivially_infeasible", "generation": problem.generation},
            )
            return Solution(
                status=SolveStatus.INFEASIBLE,
                solve_time=time.perf_counter() - started,
                generation=problem.generation,
            )

        lp, variables = _to_pulp(problem)
        logger.info(
            "Solving %s (generation %d)",
            problem.name,
            problem.generation,
            extra={
                "event": "solve_started",
                "generation": problem.generation,
                "variables": len(variables),
                "mip": problem.is_mip,
            },
        )
        status_code = lp.solve(self.handle)
        status = map_status(status_code, getattr(lp, "sol_status", None))
        elapsed = time.perf_counter() - started

        values: Dict[VariableKey, float] = {}
        for key, var in variables.items():
            value = var.value()
            if value is not None:
                values[key] = float(value)
        objective_value = pulp.value(lp.objective) if values else None

        logger.info(
            "Solved %s with status %s in %.3fs",
            problem.name,
            status.value,
            elapsed,
            extra={
                "event": "solve_finished",
                "generation": problem.generation,
                "status": status.value,
                "solver_status_code": status_code,
                "duration_s": round(elapsed, 4),
                "objective": objective_value,
            },
        )
        return Solution(
            status=status,
            values=values,
            solve_time=elapsed,
            generation=problem.generation,
            objective_value=None if objective_value is None else float(objective_value),
        )


def _trivially_violated_rows(problem: Problem) -> List[str]:
    return [
        constraint.name
        for constraint in problem.constraints
        if not constraint.terms and not constraint.is_satisfied({})
    ]


def _to_pulp(problem: Problem) -> Tuple["pulp.LpProblem", Dict[VariableKey, "pulp.LpVariable"]]:
    lp = pulp.LpProblem(problem.name, pulp.LpMinimize)
    variables: Dict[VariableKey, pulp.LpVariable] = {}
    for n, key in enumerate(problem.keys):
        if key in problem.binaries:
            variables[key] = pulp.LpVariable(f"x_{n}", cat=pulp.LpBinary)
        else:
            variables[key] = pulp.LpVariable(f"x_{n}", lowBound=0, cat=pulp.LpContinuous)

    lp += pulp.lpSum(term.coefficient * variables[term.key] for term in problem.objective), "distance"

    for n, constraint in enumerate(problem.constraints):
        if not constraint.terms:
            continue
        for row, row_name in _constraint_rows(f"c_{n}", constraint, variables):
            lp += row, row_name
    return lp, variables


def _constraint_rows(
    name: str,
    constraint: Constraint,
    variables: Dict[VariableKey, "pulp.LpVariable"],
):
    expression = pulp.lpSum(term.coefficient * variables[term.key] for term in constraint.terms)
    if constraint.kind is BoundKind.FIXED:
        yield expression == constraint.lower, name
    elif constraint.kind is BoundKind.LOWER_BOUND:
        yield expression >= constraint.lower, name
    else:
        # PuLP rows are one-sided
        yield expression >= constraint.lower, f"{name}_lo"
        yield expression <= constraint.upper, f"{name}_hi"
