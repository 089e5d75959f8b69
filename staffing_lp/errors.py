"""Exception hierarchy for the staffing optimisation toolkit.

Build-time problems (:class:`DataError`) abort the construction of a model.
Solver statuses are returned as data on :class:`~staffing_lp.model.Solution`;
the :class:`SolveStatusError` subclasses exist so callers can label or raise
them explicitly via :meth:`Solution.raise_for_status`.
"""
from __future__ import annotations


class StaffingError(Exception):
    """Base class for every error raised by :mod:`staffing_lp`."""


class DataError(StaffingError):
    """Inputs are inconsistent and no problem may be built from them."""


class EngineUnavailable(StaffingError):
    """The LP/MIP engine handle could not be created or is not installed."""


class SolveStatusError(StaffingError):
    """A terminal, non-successful solver status."""

    label = "undefined"

    def __init__(self, message: str | None = None, *, generation: int | None = None) -> None:
        super().__init__(message or f"Solver finished with status '{self.label}'")
        self.generation = generation


class InfeasibleError(SolveStatusError):
    label = "infeasible"


class UnboundedError(SolveStatusError):
    label = "unbounded"


class UndefinedError(SolveStatusError):
    label = "undefined"
