from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app
from models import storage
from models.user import Role, User
from services.errors import InvalidAccessToken


def get_session_service():
    return current_app.extensions["session_service"]


def bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if not token:
                raise InvalidAccessToken("Authentication required")
            claims = get_session_service().verify_access_token(token)

            user = storage.get(User, claims.get("sub"))
            if not user:
                raise InvalidAccessToken("User not found")
            g.current_user = user
            g.current_claims = claims
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    """Attach the caller when a valid bearer token is present; anonymous otherwise."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user = None
            g.current_claims = None
            token = bearer_token()
            if token:
                try:
                    claims = get_session_service().verify_access_token(token)
                except InvalidAccessToken:
                    claims = None
                if claims:
                    g.current_claims = claims
                    g.current_user = storage.get(User, claims.get("sub"))
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[Role]):
    """
    Allow access if the caller's role (from the access token) is one of required_roles.
    """
    req = {Role(r).value for r in required_roles or []}
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_claims.get("role") not in req:
                abort(403, description="Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
