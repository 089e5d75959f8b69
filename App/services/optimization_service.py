"""
Optimisation service wrapping staffing_lp for the Flask application.

The service owns the application's single SolverAdapter (created lazily by
staffing_lp on the first solve) and one OptimizationSession per scenario.
Every call rebuilds the problem from the submitted payload; nothing is
persisted.
"""

from typing import Any, Dict, Mapping, Optional, Tuple
import asyncio
import logging
import threading

from staffing_lp import (
    DataError,
    DistanceMatrix,
    EffectiveInputs,
    ModelVariant,
    OptimizationSession,
    ScenarioOverrides,
    SolverAdapter,
    SolverConfig,
    build_effective_inputs,
    build_problem,
    capacity_overview,
)
from App.utils.performance_monitor import performance_monitor
from .data_transformation_service import DataTransformationService, PayloadError

logger = logging.getLogger(__name__)


class OptimizationService:
    """
    Service for building and solving school visit plans.

    Payload parsing is delegated to DataTransformationService; model building,
    solving and interpretation to staffing_lp.
    """

    def __init__(
        self,
        solver_config: Optional[SolverConfig] = None,
        default_variant: ModelVariant = ModelVariant.ASSIGN_CHILDREN,
        adapter: Optional[SolverAdapter] = None,
    ):
        self.adapter = adapter or SolverAdapter(solver_config)
        self.default_variant = ModelVariant.parse(default_variant)
        self.data_transformer = DataTransformationService()
        self._sessions: Dict[str, OptimizationSession] = {}
        self._sessions_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "OptimizationService":
        solver_config = SolverConfig(
            time_limit=config.get('SOLVER_TIME_LIMIT'),
            gap=config.get('SOLVER_GAP'),
            log_solver_output=bool(config.get('LOG_SOLVER_OUTPUT', False)),
            threads=config.get('SOLVER_THREADS'),
        )
        return cls(solver_config, config.get('MODEL_VARIANT', ModelVariant.ASSIGN_CHILDREN))

    @property
    def solver_available(self) -> bool:
        return self.adapter.available

    def parse_payload(
        self, payload: Mapping[str, Any]
    ) -> Tuple[ScenarioOverrides, EffectiveInputs, DistanceMatrix, ModelVariant]:
        """
        Convert a request payload into model inputs.

        Raises:
            PayloadError: malformed payload
            DataError: payload is well formed but inconsistent
        """
        missing = [key for key in ('schools', 'employees', 'distances') if key not in payload]
        if missing:
            raise PayloadError(
                "Missing required fields", {key: "Required" for key in missing}
            )

        schools = self.data_transformer.schools_from_payload(payload['schools'])
        employees = self.data_transformer.employees_from_payload(payload['employees'])
        overrides = self.data_transformer.scenario_from_payload(payload.get('scenario') or {})
        distances = self.data_transformer.distances_from_payload(payload['distances'])

        try:
            variant = ModelVariant.parse(payload.get('variant') or self.default_variant)
        except ValueError as exc:
            raise PayloadError("Invalid model variant", {"variant": str(exc)}) from exc

        inputs = build_effective_inputs(schools, employees, overrides)
        return overrides, inputs, distances, variant

    @performance_monitor("build_problem", log_slow_threshold=1.0)
    def describe_problem(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Build the problem for a payload and return its description without solving."""
        overrides, inputs, distances, variant = self.parse_payload(payload)
        problem = build_problem(inputs, distances, variant)
        return {
            "scenario_id": overrides.scenario_id,
            "capacity_overview": _overview_dict(inputs),
            "problem": problem.to_dict(),
        }

    @performance_monitor("solve_scenario", log_slow_threshold=5.0)
    def solve(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Build and solve the plan for a payload in one step.

        Solver statuses such as infeasible are returned in the result, not raised.
        """
        overrides, inputs, distances, variant = self.parse_payload(payload)
        self._log_capacity_warnings(overrides.scenario_id, inputs)

        session = OptimizationSession(self.adapter)
        session.update(inputs, distances, variant)
        interpretation = asyncio.run(session.solve())

        data = self.data_transformer.interpretation_to_dict(interpretation, overrides.scenario_id)
        data["capacity_overview"] = _overview_dict(inputs)
        data["state"] = session.state.value
        return data

    # Scenario sessions -------------------------------------------------------

    def session(self, scenario_id: str) -> OptimizationSession:
        with self._sessions_lock:
            session = self._sessions.get(scenario_id)
            if session is None:
                session = OptimizationSession(self.adapter)
                self._sessions[scenario_id] = session
            return session

    def find_session(self, scenario_id: str) -> Optional[OptimizationSession]:
        with self._sessions_lock:
            return self._sessions.get(scenario_id)

    def update_session(self, scenario_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Rebuild the scenario's problem; any earlier in-flight solve becomes stale."""
        session = self.session(scenario_id)
        scenario = payload.get('scenario') or {}
        if not isinstance(scenario, Mapping):
            raise PayloadError("scenario must be an object", {"scenario": "Expected an object"})
        try:
            overrides, inputs, distances, variant = self.parse_payload(
                {**payload, 'scenario': {**scenario, 'id': scenario_id}}
            )
        except DataError as exc:
            session.invalidate(exc)
            raise
        self._log_capacity_warnings(scenario_id, inputs)
        session.update(inputs, distances, variant)
        data = session_to_dict(scenario_id, session, self.solver_available)
        data["capacity_overview"] = _overview_dict(inputs)
        return data

    @performance_monitor("solve_session", log_slow_threshold=5.0)
    def solve_session(self, scenario_id: str) -> Dict[str, Any]:
        session = self.session(scenario_id)
        interpretation = asyncio.run(session.solve())
        data = session_to_dict(scenario_id, session, self.solver_available)
        data["discarded"] = interpretation is None
        return data

    def _log_capacity_warnings(self, scenario_id: str, inputs: EffectiveInputs) -> None:
        for role_capacity in capacity_overview(inputs).values():
            if role_capacity.under_capacity or role_capacity.over_committed:
                logger.warning(
                    "Scenario %s: %s capacity [%d, %d] does not cover %d children",
                    scenario_id,
                    role_capacity.role.value,
                    role_capacity.minimum,
                    role_capacity.maximum,
                    role_capacity.children,
                    extra={'event': 'capacity_mismatch', 'scenario_id': scenario_id, **role_capacity.to_dict()},
                )


def session_to_dict(scenario_id: str, session: OptimizationSession, solver_available: bool) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "scenario_id": scenario_id,
        "state": session.state.value,
        "generation": session.generation,
        "can_solve": session.problem is not None and solver_available,
        "error": str(session.error) if session.error else None,
        "result": session.result.to_dict() if session.result else None,
    }
    return data


def _overview_dict(inputs: EffectiveInputs) -> Dict[str, Any]:
    return {role.value: item.to_dict() for role, item in capacity_overview(inputs).items()}
