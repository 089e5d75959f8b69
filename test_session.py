import asyncio
import threading

import pytest

from staffing_lp import (
    DataError,
    DistanceMatrix,
    EngineUnavailable,
    InfeasibleError,
    ModelVariant,
    OptimizationSession,
    SessionState,
    Solution,
    SolveStatus,
    SolverAdapter,
    StaffingError,
    build_problem,
)
from staffing_lp import session as session_module


class FakeAdapter:
    """Stands in for SolverAdapter; every solve waits until released."""

    def __init__(self, status=SolveStatus.OPTIMAL, available=True):
        self.status = status
        self.available = available
        self.release = None
        self.solved = []

    def ensure_available(self):
        if not self.available:
            raise EngineUnavailable("engine missing")

    async def solve(self, problem):
        self.solved.append(problem.generation)
        if self.release is not None:
            await self.release.wait()
        values = {key: 0.0 for key in problem.keys}
        return Solution(status=self.status, values=values, generation=problem.generation, objective_value=0.0)


class ExplodingAdapter(FakeAdapter):
    async def solve(self, problem):
        raise RuntimeError("engine crashed")


def test_new_session_is_idle():
    session = OptimizationSession(FakeAdapter())

    assert session.state is SessionState.IDLE
    assert session.generation == 0
    assert not session.can_solve


def test_update_builds_problem_and_bumps_generation(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter())

    first = session.update(scenario_a, symmetric_distances)
    second = session.update(scenario_a, symmetric_distances, ModelVariant.ASSIGN_SCHOOLS)

    assert (first.generation, second.generation) == (1, 2)
    assert session.problem is second
    assert session.state is SessionState.READY
    assert session.can_solve


def test_solve_applies_current_result(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter())
    session.update(scenario_a, symmetric_distances)

    result = asyncio.run(session.solve())

    assert result is session.result
    assert session.state is SessionState.SOLVED
    assert session.solution.generation == 1
    assert session.error is None


def test_unsuccessful_status_fails_the_session(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter(status=SolveStatus.INFEASIBLE))
    session.update(scenario_a, symmetric_distances)

    result = asyncio.run(session.solve())

    assert result.status is SolveStatus.INFEASIBLE
    assert session.state is SessionState.FAILED
    assert isinstance(session.error, InfeasibleError)
    assert session.error.generation == 1


def test_stale_solution_is_discarded(scenario_a, symmetric_distances):
    adapter = FakeAdapter()
    session = OptimizationSession(adapter)
    session.update(scenario_a, symmetric_distances)

    async def race():
        adapter.release = asyncio.Event()
        pending = asyncio.ensure_future(session.solve())
        await asyncio.sleep(0)
        assert session.state is SessionState.SOLVING
        session.update(scenario_a, symmetric_distances, ModelVariant.ASSIGN_SCHOOLS)
        adapter.release.set()
        return await pending

    assert asyncio.run(race()) is None
    assert adapter.solved == [1]
    assert session.generation == 2
    assert session.state is SessionState.READY
    assert session.solution is None
    assert session.result is None


def test_rebuild_failure_leaves_no_problem(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter())
    session.update(scenario_a, symmetric_distances)

    with pytest.raises(DataError):
        session.update(scenario_a, DistanceMatrix.from_rows([[1.0]]))

    assert session.state is SessionState.FAILED
    assert session.problem is None
    assert session.generation == 2
    assert isinstance(session.error, DataError)
    with pytest.raises(StaffingError):
        asyncio.run(session.solve())


def test_invalidate_drops_the_problem(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter())
    session.update(scenario_a, symmetric_distances)

    session.invalidate(DataError("bad forced pair"))

    assert session.generation == 2
    assert session.problem is None
    assert session.state is SessionState.FAILED
    assert str(session.error) == "bad forced pair"


def test_solve_requires_engine(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter(available=False))
    session.update(scenario_a, symmetric_distances)

    assert not session.can_solve
    with pytest.raises(EngineUnavailable):
        asyncio.run(session.solve())
    assert session.state is SessionState.READY


def test_engine_exception_fails_the_session(scenario_a, symmetric_distances):
    session = OptimizationSession(ExplodingAdapter())
    session.update(scenario_a, symmetric_distances)

    with pytest.raises(RuntimeError):
        asyncio.run(session.solve())

    assert session.state is SessionState.FAILED
    assert isinstance(session.error, RuntimeError)


def test_session_with_real_adapter(scenario_a, symmetric_distances):
    session = OptimizationSession(SolverAdapter())
    session.update(scenario_a, symmetric_distances)

    result = asyncio.run(session.solve())

    assert session.state is SessionState.SOLVED
    assert result.objective_value == pytest.approx(10.0)


class StaleExplodingAdapter(FakeAdapter):
    async def solve(self, problem):
        await self.release.wait()
        raise RuntimeError("engine crashed after rebuild")


def test_failure_of_stale_solve_is_discarded(scenario_a, symmetric_distances):
    adapter = StaleExplodingAdapter()
    session = OptimizationSession(adapter)
    session.update(scenario_a, symmetric_distances)

    async def race():
        adapter.release = asyncio.Event()
        pending = asyncio.ensure_future(session.solve())
        await asyncio.sleep(0)
        session.update(scenario_a, symmetric_distances)
        adapter.release.set()
        return await pending

    assert asyncio.run(race()) is None
    assert session.state is SessionState.READY
    assert session.error is None


def test_overlapping_rebuilds_keep_newest_snapshot(monkeypatch, scenario_a, symmetric_distances):
    started = threading.Event()
    release = threading.Event()

    def slow_first_build(inputs, distances, variant, *, generation):
        if generation == 1:
            started.set()
            release.wait(5)
        return build_problem(inputs, distances, variant, generation=generation)

    monkeypatch.setattr(session_module, "build_problem", slow_first_build)
    session = OptimizationSession(FakeAdapter())
    flat = DistanceMatrix.from_rows([[2.0, 2.0, 2.0, 2.0], [2.0, 2.0, 2.0, 2.0]])

    slow = threading.Thread(target=session.update, args=(scenario_a, flat))
    slow.start()
    assert started.wait(5)
    session.update(scenario_a, symmetric_distances, ModelVariant.ASSIGN_SCHOOLS)
    release.set()
    slow.join(5)

    assert session.generation == 2
    assert session.problem.generation == 2
    assert session.problem.variant is ModelVariant.ASSIGN_SCHOOLS
    assert session.distances is symmetric_distances

    result = asyncio.run(session.solve())

    assert result is not None
    assert session.state is SessionState.SOLVED


def test_concurrent_rebuilds_leave_consistent_session(scenario_a, symmetric_distances):
    session = OptimizationSession(FakeAdapter())

    workers = [
        threading.Thread(target=session.update, args=(scenario_a, symmetric_distances))
        for _ in range(8)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(10)

    assert session.problem.generation == session.generation
    assert session.state is SessionState.READY
    assert asyncio.run(session.solve()) is not None
