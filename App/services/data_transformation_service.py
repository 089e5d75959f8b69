"""
Data transformation service for converting JSON payloads into staffing_lp inputs
and optimisation results back into JSON.

The payload layout follows what the planner front end stores per scenario:
children per school as ``[[school_id, count], ...]`` (or a mapping) and
capacities per employee as ``[[employee_id, {"min": .., "max": ..}], ...]``
(or a mapping).
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from staffing_lp import (
    CapacityRange,
    DistanceMatrix,
    Employee,
    Interpretation,
    Role,
    ScenarioOverrides,
    School,
)

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """Request payload could not be converted; ``errors`` maps fields to reasons."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class DataTransformationService:
    """
    Service for transforming request payloads to staffing_lp data structures.

    Keeps the Flask views free of parsing details and the optimisation
    library free of JSON conventions.
    """

    @staticmethod
    def schools_from_payload(rows: Any) -> List[School]:
        """Convert ``[{"id", "name", "lon", "lat"}, ...]`` into School records."""
        if not isinstance(rows, list):
            raise PayloadError("schools must be a list", {"schools": "Expected a list of objects"})
        schools = []
        for index, row in enumerate(rows):
            try:
                schools.append(
                    School(
                        id=str(row["id"]),
                        name=str(row.get("name", row["id"])),
                        lon=float(row.get("lon", 0.0)),
                        lat=float(row.get("lat", 0.0)),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise PayloadError(
                    f"Invalid school at position {index}", {f"schools[{index}]": str(exc)}
                ) from exc
        return schools

    @staticmethod
    def employees_from_payload(rows: Any) -> List[Employee]:
        """Convert ``[{"id", "name", "lon", "lat", "role"}, ...]`` into Employee records.

        ``type`` is accepted as an alias of ``role``.
        """
        if not isinstance(rows, list):
            raise PayloadError("employees must be a list", {"employees": "Expected a list of objects"})
        employees = []
        for index, row in enumerate(rows):
            try:
                employees.append(
                    Employee(
                        id=str(row["id"]),
                        name=str(row.get("name", row["id"])),
                        lon=float(row.get("lon", 0.0)),
                        lat=float(row.get("lat", 0.0)),
                        role=Role.parse(row.get("role", row.get("type", ""))),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise PayloadError(
                    f"Invalid employee at position {index}", {f"employees[{index}]": str(exc)}
                ) from exc
        return employees

    @staticmethod
    def scenario_from_payload(data: Any) -> ScenarioOverrides:
        """Convert a scenario object into ScenarioOverrides."""
        if not isinstance(data, Mapping):
            raise PayloadError("scenario must be an object", {"scenario": "Expected an object"})
        try:
            children = {
                str(school_id): _count(count)
                for school_id, count in _pairs(data.get("children", data.get("kidsPerSchool", [])))
            }
            capacities = {
                str(employee_id): _capacity(value)
                for employee_id, value in _pairs(data.get("capacities", data.get("kidsPerEmployee", [])))
            }
            forced_pairs = [
                (str(pair[0]), str(pair[1]))
                for pair in data.get("forced_pairs", data.get("preAssignedSchoolToEmployee", []))
            ]
            return ScenarioOverrides(
                scenario_id=str(data.get("id", "default")),
                description=str(data.get("description", "")),
                children_per_school=children,
                capacity_per_employee=capacities,
                forced_pairs=forced_pairs,
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise PayloadError("Invalid scenario", {"scenario": str(exc)}) from exc

    @staticmethod
    def distances_from_payload(rows: Any) -> DistanceMatrix:
        if isinstance(rows, Mapping):
            # Front-end layout {"dim1": ..., "dim2": ..., "data": [[...]]}
            rows = rows.get("data")
        if not isinstance(rows, list):
            raise PayloadError("distances must be a list of rows", {"distances": "Expected a 2D list"})
        try:
            return DistanceMatrix.from_rows(rows)
        except (TypeError, ValueError) as exc:
            raise PayloadError("Invalid distance matrix", {"distances": str(exc)}) from exc

    @staticmethod
    def interpretation_to_dict(interpretation: Interpretation, scenario_id: str) -> Dict[str, Any]:
        data = interpretation.to_dict()
        data["scenario_id"] = scenario_id
        return data


def _pairs(value: Any) -> Iterable[Tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return value.items()
    return [(item[0], item[1]) for item in value]


def _capacity(value: Any) -> CapacityRange:
    if isinstance(value, Mapping):
        return CapacityRange(_count(value.get("min", 0)), _count(value.get("max", 0)))
    minimum, maximum = value
    return CapacityRange(_count(minimum), _count(maximum))


def _count(value: Any) -> int:
    """Whole number from JSON; fractional values are rejected, not truncated."""
    if isinstance(value, bool):
        raise ValueError(f"expected a whole number, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"expected a whole number, got {value!r}")
    return int(value)
