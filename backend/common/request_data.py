from services.ride_management.exceptions import InvalidInputError


def body_object(request):
    """The parsed request body, which must be a JSON object (or form data)."""
    data = request.data
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object", error_code="invalid_body")
    return data
