from dataclasses import dataclass
from typing import Any, Optional

from flask import abort, g


@dataclass
class User:
    user_id: str
    session_id: Optional[str]
    request_state: Any


def get_current_user() -> Optional[User]:
    """
    Helper function to get current user information.
    Returns None if not authenticated.
    """
    if not getattr(g, "auth_user_id", None):
        return None

    return User(
        user_id=g.auth_user_id,
        session_id=g.auth_session_id,
        request_state=g.auth_request_state,
    )


def get_caller_id() -> str:
    user = get_current_user()
    if user is None:
        abort(401)

    return user.user_id
