from functools import wraps

import httpx
from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from flask import abort, current_app, g, request


class AuthenticationError(Exception):
    """Custom exception for authentication errors"""

    def __init__(self, message, status_code=401):
        super().__init__(message)
        self.status_code = status_code


def _create_httpx_request():
    """Helper function to convert Flask request to httpx.Request"""
    return httpx.Request(
        method=request.method, url=str(request.url), headers=dict(request.headers), content=request.get_data()
    )


def _get_authorized_parties():
    return current_app.config.get("AUTH_AUTHORIZED_PARTIES")


def _authenticate_request():
    """
    Verify the Clerk session token on the current request.
    Returns: request_state object if the caller is signed in
    Raises: AuthenticationError otherwise
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Bearer token required")

    clerk_client: Clerk = current_app.clerk_client
    if not clerk_client:
        raise AuthenticationError("Authentication service not initialized", 500)

    httpx_request = _create_httpx_request()

    try:
        request_state = clerk_client.authenticate_request(
            httpx_request,
            AuthenticateRequestOptions(authorized_parties=_get_authorized_parties(), clock_skew_in_ms=1000 * 30),
        )
    except ValueError as e:
        current_app.logger.warning(f"Token parsing error: {e}")
        raise AuthenticationError("Invalid token format")
    except httpx.HTTPError as e:
        current_app.logger.error(f"Clerk unreachable: {e}")
        raise AuthenticationError("Authentication service error", 500)

    if not request_state.is_signed_in:
        current_app.logger.warning(f"User is not signed in: {request_state.message}")
        raise AuthenticationError("User is not signed in")

    return request_state


def _set_user_context(request_state):
    """Set user context in Flask g object"""
    g.auth_request_state = request_state
    g.auth_user_id = request_state.payload.get("sub", None)
    g.auth_session_id = request_state.payload.get("sid", None)
    g.auth_expires_at = request_state.payload.get("exp", None)


def auth_required(f):
    """
    Decorator that requires a signed-in volunteer.
    Aborts with 401 if the caller is not authenticated.

    Sets the following in Flask g:
    - g.auth_request_state: Full request state object
    - g.auth_user_id: User ID from token
    - g.auth_session_id: Session ID from token
    - g.auth_expires_at: Expiration timestamp or None
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            request_state = _authenticate_request()
        except AuthenticationError as e:
            abort(e.status_code, description=e.args[0])

        _set_user_context(request_state)
        return f(*args, **kwargs)

    return decorated_function
