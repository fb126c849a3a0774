"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- GET  /auth/profile
- POST /auth/logout

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens, each signed with its own secret
- Stores refresh tokens in the DB (RefreshToken model) so they can be revoked / rotated
- All work is done by the AuthService registered on the app; this module only speaks HTTP
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from models.schemas.user import LoginSchema, RefreshTokenSchema, RegisterSchema, UserOutSchema
from services.auth_service import AuthService
from utils.decorators import jwt_required
from utils.tokens import TokenPayload

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
user_out_schema = UserOutSchema()


def _auth_service() -> AuthService:
    return current_app.extensions["auth_service"]


def _body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
def register():
    """
    Register a new user and sign them in.
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
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created (returns user and tokens)
      400:
        description: Validation error or email already registered
    """
    data = register_schema.load(_body())
    result = _auth_service().register(data["name"], data["email"], data["password"])
    return jsonify(
        {
            "success": True,
            "data": {
                "user": user_out_schema.dump(result.user),
                "accessToken": result.access_token,
                "refreshToken": result.refresh_token,
            },
            "message": "User registered successfully",
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login: return user, accessToken and refreshToken
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
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid email or password
    """
    data = login_schema.load(_body())
    result = _auth_service().login(data["email"], data["password"])
    return jsonify(
        {
            "success": True,
            "data": {
                "user": user_out_schema.dump(result.user),
                "accessToken": result.access_token,
                "refreshToken": result.refresh_token,
            },
            "message": "Logged in successfully",
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation)
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
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns the new token pair)
      403:
        description: Invalid, revoked or expired refresh token
    """
    data = refresh_token_schema.load(_body())
    pair = _auth_service().refresh(data["refresh_token"])
    return jsonify(
        {
            "success": True,
            "data": {
                "accessToken": pair.access_token,
                "refreshToken": pair.refresh_token,
            },
            "message": "Tokens refreshed successfully",
        }
    ), 200


@bp.get("/profile")
@jwt_required()
def profile(identity: TokenPayload):
    """
    Get the current user's profile.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Access token required
      403:
        description: Invalid or expired token
      404:
        description: User not found
    """
    user = _auth_service().profile(identity.user_id)
    return jsonify(
        {
            "success": True,
            "data": user_out_schema.dump(user),
            "message": "Profile retrieved successfully",
        }
    ), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the refresh token. Succeeds even if it was already revoked.
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
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
    """
    data = refresh_token_schema.load(_body())
    _auth_service().logout(data["refresh_token"])
    return jsonify(
        {
            "success": True,
            "data": None,
            "message": "Logged out successfully",
        }
    ), 200
