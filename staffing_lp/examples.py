"""Executable example for the school visit optimiser.

Run ``python -m staffing_lp.examples`` to solve a small synthetic scenario with
both model variants. The distance matrix is written out by hand; in the
application it comes from a separate distance service.
"""
from __future__ import annotations

from pprint import pprint

from . import (
    CapacityRange,
    DistanceMatrix,
    EffectiveInputs,
    Employee,
    ModelVariant,
    Role,
    ScenarioOverrides,
    School,
    SolverAdapter,
    SolverConfig,
    build_effective_inputs,
    build_problem,
    interpret,
)


def build_demo_inputs() -> tuple[EffectiveInputs, DistanceMatrix]:
    """Construct a small demonstration scenario.

    Returns:
        inputs: :class:`EffectiveInputs` for three schools and four employees.
        distances: Matching :class:`DistanceMatrix` in metres.
    """

    # Master data ----------------------------------------------------------
    schools = [
        School(id="gs-nord", name="Grundschule Nord", lon=9.15, lat=50.23),
        School(id="gs-mitte", name="Grundschule Mitte", lon=9.20, lat=50.20),
        School(id="gs-sued", name="Grundschule Sued", lon=9.24, lat=50.16),
    ]
    employees = [
        Employee(id="dr-berg", name="Dr. Berg", lon=9.16, lat=50.22, role=Role.PHYSICIAN),
        Employee(id="dr-kern", name="Dr. Kern", lon=9.25, lat=50.17, role=Role.PHYSICIAN),
        Employee(id="a-lang", name="A. Lang", lon=9.19, lat=50.21, role=Role.ASSISTANT),
        Employee(id="a-voss", name="A. Voss", lon=9.23, lat=50.15, role=Role.ASSISTANT),
    ]

    # Scenario -------------------------------------------------------------
    overrides = ScenarioOverrides(
        scenario_id="demo",
        description="Three schools, two teams",
        children_per_school={"gs-nord": 40, "gs-mitte": 25, "gs-sued": 35},
        capacity_per_employee={
            "dr-berg": CapacityRange(30, 70),
            "dr-kern": CapacityRange(30, 70),
            "a-lang": CapacityRange(0, 60),
            "a-voss": CapacityRange(40, 60),
        },
        forced_pairs=[("gs-mitte", "dr-kern")],
    )

    distances = DistanceMatrix.from_rows(
        [
            [1600.0, 12400.0, 3900.0, 10700.0],
            [5200.0, 6300.0, 1300.0, 6100.0],
            [10100.0, 1400.0, 6700.0, 1300.0],
        ]
    )
    return build_effective_inputs(schools, employees, overrides), distances


def run_demo() -> None:
    """Solve the demo scenario with both variants and print the tables."""

    inputs, distances = build_demo_inputs()
    adapter = SolverAdapter(SolverConfig(time_limit=30))

    for variant in ModelVariant:
        problem = build_problem(inputs, distances, variant)
        solution = adapter.solve_sync(problem)
        result = interpret(solution, problem, inputs, distances)

        print(f"\n== {variant.value} ==")
        print("Solver status:", result.status.label)
        print("Objective value:", result.objective_value)
        print("Assignments (school -> employee: children):")
        for pair in result.pairs:
            print(f"  - {pair.school_id} -> {pair.employee_id}: {pair.children:g}")

        print("\nEmployee totals:")
        pprint([summary.to_dict() for summary in result.employees])


if __name__ == "__main__":
    run_demo()
