from functools import wraps

from flask import current_app
from flask_jwt_extended import verify_jwt_in_request


def auth_required(fn):
    """Require a valid session token when AUTH_REQUIRED is enabled."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_app.config.get("AUTH_REQUIRED"):
            verify_jwt_in_request()
        return fn(*args, **kwargs)
    return wrapper
