from flask import current_app, jsonify


def api_success(data=None, message=None, status_code=200):
    """
    Standardized success response format for API v2

    Args:
        data: The data to return (dict, list, or None)
        message: Optional success message
        status_code: HTTP status code (default: 200)

    Returns:
        Flask response with JSON and status code
    """
    response = {
        "success": True,
        "data": data if data is not None else {}
    }
    if message:
        response["message"] = message
    return jsonify(response), status_code


def api_error(message="An error occurred", errors=None, status_code=400):
    """
    Standardized error response format for API v2

    Args:
        message: Error message to display
        errors: Optional dict/list of detailed errors
        status_code: HTTP status code (default: 400)

    Returns:
        Flask response with JSON and status code
    """
    response = {
        "success": False,
        "message": message
    }
    if errors:
        response["errors"] = errors
    return jsonify(response), status_code


def validate_json_request(request):
    """
    Validate that a request contains a JSON object

    Returns:
        tuple: (data, error_response) - data will be None if error
    """
    if not request.is_json:
        return None, api_error("Request must include JSON body with Content-Type: application/json", status_code=400)

    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return None, api_error("Request body must contain a JSON object", status_code=400)

    return data, None


def get_optimization_service():
    """Return the OptimizationService created by create_app"""
    return current_app.extensions['optimization_service']
