"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security.CredentialHasher)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs signed with distinct HS256 secrets)
- Stores an HMAC of each refresh token in DB (RefreshToken model) so they can be revoked / rotated
- The refresh token travels in an http-only cookie; the access token in the response body
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import UserCreateSchema, UserOutSchema, UserLoginSchema
from services.errors import InvalidRefreshToken
from api.errors import error_response
from utils.decorators import jwt_required, get_session_service

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()


def _set_refresh_cookie(response, refresh_token: str):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=int(cfg["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=cfg["REFRESH_COOKIE_SECURE"],
        samesite="Strict",
        path="/",
    )
    return response


def _clear_refresh_cookie(response):
    response.delete_cookie(
        current_app.config["REFRESH_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=current_app.config["REFRESH_COOKIE_SECURE"],
        samesite="Strict",
    )
    return response


def _presented_refresh_token() -> str | None:
    # Cookie for browsers, JSON body for other clients
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if token:
        return token
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    token = payload.get("refresh_token")
    return token if isinstance(token, str) and token else None


def _session_response(user, tokens, status=200):
    response = jsonify(
        {
            "success": True,
            "data": user_out_schema.dump(user),
            "access_token": tokens.access_token,
            "token_type": "bearer",
            "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        }
    )
    response.status_code = status
    return _set_refresh_cookie(response, tokens.refresh_token)


@bp.post("/register")
def register():
    """
    Register a new account and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [display_name, email, username, password]
          properties:
            display_name: { type: string, minLength: 2, maxLength: 50 }
            email: { type: string, format: email }
            username: { type: string, minLength: 3, maxLength: 30, pattern: "^[A-Za-z0-9_]+$" }
            password: { type: string, minLength: 8, maxLength: 100 }
    responses:
      201:
        description: Created (access token in body, refresh token cookie set)
      409:
        description: Email or username already taken
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    user, tokens = get_session_service().register(
        display_name=data["display_name"],
        email=data["email"],
        username=data["username"],
        password=data["password"],
    )
    return _session_response(user, tokens, status=201)


@bp.post("/login")
def login():
    """
    Login with email or username.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             identifier: { type: string, description: "email or username" }
             password: { type: string }
    responses:
      200:
        description: OK (access token in body, refresh token cookie set)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    user, tokens = get_session_service().login(data["identifier"], data["password"])
    return _session_response(user, tokens)


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh token for a new access/refresh pair (rotation).
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (new access token in body, new refresh token cookie set)
      401:
        description: Invalid, expired or already used refresh token
    """
    token = _presented_refresh_token()
    try:
        if not token:
            raise InvalidRefreshToken("No refresh token provided")
        tokens = get_session_service().refresh(token)
    except InvalidRefreshToken as err:
        response, status = error_response(err.code, err.message, err.status)
        return _clear_refresh_cookie(response), status

    response = jsonify(
        {
            "success": True,
            "access_token": tokens.access_token,
            "token_type": "bearer",
            "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        }
    )
    return _set_refresh_cookie(response, tokens.refresh_token)


@bp.post("/logout")
def logout():
    """
    Logout: revokes the refresh token and clears its cookie. Always succeeds.
    ---
    tags:
      - Auth
    responses:
      200:
        description: Logged out
    """
    get_session_service().logout(_presented_refresh_token())
    response = jsonify({"success": True, "message": "Logged out successfully"})
    return _clear_refresh_cookie(response)


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current account info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"success": True, "data": user_out_schema.dump(g.current_user)}), 200
