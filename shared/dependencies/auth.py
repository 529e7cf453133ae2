"""FastAPI authentication dependency."""

from fastapi import HTTPException, Request


def verify_api_key(request: Request) -> None:
    """Verify the API key provided in the X-API-Key header.

    Args:
        request (Request): The incoming FastAPI request.

    Raises:
        HTTPException: 503 if no APP_API_KEY is configured, 401 if the key is missing or invalid.
    """
    config = request.app.state.config
    expected_key = config.get_optional_string_val("APP_API_KEY")
    if not expected_key:
        raise HTTPException(status_code=503, detail="API key is not configured on the server.")
    provided_key = request.headers.get("X-API-Key")
    if not provided_key or provided_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
