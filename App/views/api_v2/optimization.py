from flask import request
import logging

from staffing_lp import DataError, EngineUnavailable, StaffingError
from App.services import PayloadError
from App.services.optimization_service import session_to_dict
from App.utils.performance_monitor import get_performance_summary
from App.views.api_v2 import api_v2
from App.views.api_v2.utils import (
    api_error,
    api_success,
    get_optimization_service,
    validate_json_request,
)

logger = logging.getLogger(__name__)


def _error_response(exc, action):
    """Map optimisation errors to API v2 error responses"""
    if isinstance(exc, PayloadError):
        logger.warning("API v2: %s rejected payload: %s", action, exc)
        return api_error(str(exc), errors=exc.errors, status_code=400)
    if isinstance(exc, DataError):
        logger.warning("API v2: %s rejected scenario data: %s", action, exc)
        return api_error("Invalid scenario data", errors={"data": str(exc)}, status_code=400)
    if isinstance(exc, EngineUnavailable):
        logger.error("API v2: %s impossible, solver unavailable", action)
        return api_error("Solver is not available", errors={"solver": str(exc)}, status_code=503)
    if isinstance(exc, StaffingError):
        return api_error(str(exc), status_code=409)
    logger.exception("API v2: %s failed", action)
    return api_error(f"Failed to {action}", errors={"detail": str(exc)}, status_code=500)


# ===========================
# ONE-SHOT OPTIMISATION
# ===========================

@api_v2.route('/optimization/solve', methods=['POST'])
def solve_scenario():
    """
    Build and solve a school visit plan

    Request Body:
        {
            "schools": [{"id", "name", "lon", "lat"}],
            "employees": [{"id", "name", "lon", "lat", "role"}],
            "scenario": {"id", "children", "capacities", "forced_pairs"},
            "distances": [[...], ...],
            "variant": "AssignChildren" | "AssignSchools"
        }

    Returns:
        Success: status, pair table, employee summary and routes
        Error: validation errors or solver unavailability
    """
    data, error_response = validate_json_request(request)
    if error_response:
        return error_response

    try:
        result = get_optimization_service().solve(data)
    except Exception as exc:
        return _error_response(exc, "solve scenario")

    logger.info(
        "API v2: scenario %s solved with status %s",
        result["scenario_id"],
        result["status"],
    )
    return api_success(data=result, message=f"Solver finished: {result['status_label']}")


@api_v2.route('/optimization/problem', methods=['POST'])
def describe_problem():
    """Return the built LP/MIP without solving it"""
    data, error_response = validate_json_request(request)
    if error_response:
        return error_response

    try:
        result = get_optimization_service().describe_problem(data)
    except Exception as exc:
        return _error_response(exc, "build problem")
    return api_success(data=result)


# ===========================
# SCENARIO SESSIONS
# ===========================

@api_v2.route('/optimization/sessions/<scenario_id>', methods=['PUT'])
def update_session(scenario_id):
    """Replace the scenario inputs and rebuild its problem"""
    data, error_response = validate_json_request(request)
    if error_response:
        return error_response

    try:
        result = get_optimization_service().update_session(scenario_id, data)
    except Exception as exc:
        return _error_response(exc, "update scenario session")
    return api_success(data=result)


@api_v2.route('/optimization/sessions/<scenario_id>/solve', methods=['POST'])
def solve_session(scenario_id):
    """Solve the scenario's current problem"""
    service = get_optimization_service()
    if service.find_session(scenario_id) is None:
        return api_error(f"No session for scenario '{scenario_id}'", status_code=404)

    try:
        result = service.solve_session(scenario_id)
    except Exception as exc:
        return _error_response(exc, "solve scenario session")

    if result["discarded"]:
        return api_success(data=result, message="Inputs changed while solving; result discarded")
    return api_success(data=result)


@api_v2.route('/optimization/sessions/<scenario_id>', methods=['GET'])
def get_session(scenario_id):
    """Return state and last applied result of a scenario session"""
    service = get_optimization_service()
    session = service.find_session(scenario_id)
    if session is None:
        return api_error(f"No session for scenario '{scenario_id}'", status_code=404)
    return api_success(data=session_to_dict(scenario_id, session, service.solver_available))


@api_v2.route('/optimization/metrics', methods=['GET'])
def get_metrics():
    """Return timing metrics of optimisation operations"""
    return api_success(data=get_performance_summary())
