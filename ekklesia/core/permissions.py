# ekklesia/core/permissions.py
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from ekklesia.models import User
from ekklesia.core.exceptions import AuthenticationError
from ekklesia.core.authorization import ensure_permission


def authenticated(f):
    """Require a bearer token and load its live, active user into ``g.current_user``"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = User.get_alive(get_jwt_identity())
        if user is None:
            raise AuthenticationError("Your account no longer exists.")
        if not user.is_active:
            raise AuthenticationError("Your account is inactive.")
        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(*permissions, any_of=False):
    """Require the current user to hold every (or, with ``any_of``, one) permission"""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ensure_permission(g.current_user, *permissions, any_of=any_of)
            return f(*args, **kwargs)

        return decorated_function

    return decorator
