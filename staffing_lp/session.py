"""Build/solve lifecycle of one optimisation view.

Every rebuild is issued a new generation number and stamps it on the new
:class:`Problem`. A rebuild only becomes active when it is the newest one
issued; the problem, its inputs and its distances are committed together.
A solve that completes after a newer rebuild carries an old generation and
is discarded instead of overwriting the current state.

Sessions may be shared between request threads. All reads and writes of the
active snapshot happen under the session lock; the build and the engine call
run outside it.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional, Tuple

from .errors import DataError, SolveStatusError, StaffingError
from .inputs import DistanceMatrix, EffectiveInputs
from .interpreter import Interpretation, interpret
from .model import ModelVariant, Problem, Solution
from .model_builder import build_problem
from .solver import SolverAdapter

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    SOLVING = "solving"
    SOLVED = "solved"
    FAILED = "failed"


class OptimizationSession:
    """Holds the current problem, its generation and the last applied result."""

    def __init__(self, adapter: SolverAdapter) -> None:
        self.adapter = adapter
        self.state = SessionState.IDLE
        self.generation = 0
        self.problem: Optional[Problem] = None
        self.inputs: Optional[EffectiveInputs] = None
        self.distances: Optional[DistanceMatrix] = None
        self.solution: Optional[Solution] = None
        self.result: Optional[Interpretation] = None
        self.error: Optional[Exception] = None
        self._issued = 0
        self._lock = threading.Lock()

    @property
    def can_solve(self) -> bool:
        return self.problem is not None and self.adapter.available

    def _issue_generation(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def update(
        self,
        inputs: EffectiveInputs,
        distances: DistanceMatrix,
        variant: ModelVariant = ModelVariant.ASSIGN_CHILDREN,
    ) -> Problem:
        """Rebuild the problem from scratch for changed inputs.

        When a newer rebuild has already been committed, the problem built
        here is returned but not made active.
        """

        generation = self._issue_generation()
        try:
            problem = build_problem(inputs, distances, variant, generation=generation)
        except DataError as exc:
            self._commit_failure(generation, exc)
            raise

        with self._lock:
            if generation <= self.generation:
                logger.info(
                    "Dropping rebuild of generation %d (active generation %d)",
                    generation,
                    self.generation,
                    extra={"event": "stale_rebuild_dropped", "generation": generation},
                )
                return problem
            self.generation = generation
            self.problem = problem
            self.inputs = inputs
            self.distances = distances
            self.solution = None
            self.result = None
            self.error = None
            self.state = SessionState.READY
        return problem

    def invalidate(self, error: DataError) -> None:
        """Record that new inputs could not be turned into a problem."""

        self._commit_failure(self._issue_generation(), error)

    def _commit_failure(self, generation: int, error: DataError) -> None:
        with self._lock:
            if generation <= self.generation:
                return
            self.generation = generation
            self.problem = None
            self.inputs = None
            self.distances = None
            self.solution = None
            self.result = None
            self.state = SessionState.FAILED
            self.error = error
        logger.error(
            "Problem build failed: %s",
            error,
            extra={"event": "problem_build_failed", "generation": generation},
        )

    def _snapshot(self) -> Tuple[Problem, EffectiveInputs, DistanceMatrix]:
        with self._lock:
            if self.problem is None:
                raise StaffingError("No problem has been built; call update() first")
            self.state = SessionState.SOLVING
            return self.problem, self.inputs, self.distances

    async def solve(self) -> Optional[Interpretation]:
        """Solve the current problem.

        Returns the interpretation when the result was applied, ``None`` when
        it was discarded because a rebuild happened meanwhile.
        """

        if self.problem is None:
            raise StaffingError("No problem has been built; call update() first")
        self.adapter.ensure_available()

        problem, inputs, distances = self._snapshot()
        generation = problem.generation
        try:
            solution = await self.adapter.solve(problem)
        except Exception as exc:
            with self._lock:
                stale = generation != self.generation
                if not stale:
                    self.state = SessionState.FAILED
                    self.error = exc
            if stale:
                self._log_discard(generation, "raised")
                return None
            logger.exception(
                "Solve of generation %d raised",
                generation,
                extra={"event": "solve_error", "generation": generation},
            )
            raise

        with self._lock:
            if generation == self.generation:
                return self._apply(solution, problem, inputs, distances)
        self._log_discard(generation, "finished")
        return None

    def _log_discard(self, generation: int, outcome: str) -> None:
        logger.info(
            "Discarding stale solve of generation %d that %s (active generation %d)",
            generation,
            outcome,
            self.generation,
            extra={
                "event": "stale_solution_discarded",
                "generation": generation,
                "active_generation": self.generation,
            },
        )

    def _apply(
        self,
        solution: Solution,
        problem: Problem,
        inputs: EffectiveInputs,
        distances: DistanceMatrix,
    ) -> Interpretation:
        self.solution = solution
        self.result = interpret(solution, problem, inputs, distances)
        error: Optional[SolveStatusError] = solution.as_error()
        if error is None:
            self.state = SessionState.SOLVED
            self.error = None
        else:
            self.state = SessionState.FAILED
            self.error = error
            logger.warning(
                "Solve finished without a plan: %s",
                solution.status.label,
                extra={"event": "solve_unsuccessful", "generation": solution.generation, "status": solution.status.value},
            )
        return self.result
