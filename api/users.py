"""
Users blueprint (admin management, plus self-read):
- GET    /users            list, with search / isActive filters
- POST   /users            create a user with a chosen role
- GET    /users/<id>       admin, or the user themself
- PUT    /users/<id>       update name, email, isActive or role
- DELETE /users/<id>       delete; the user's refresh tokens go with them

Deactivating a user makes later logins fail with the generic
invalid-credentials response.
"""
from __future__ import annotations

import logging
from typing import Tuple

from flask import Blueprint, request, jsonify, abort, current_app

from models.schemas.user import UserCreateSchema, UserOutSchema, UserQuerySchema, UserUpdateSchema
from models.user import Role
from utils.decorators import roles_required
from utils.errors import AuthError, ErrorKind
from utils.tokens import TokenPayload

logger = logging.getLogger(__name__)

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_update_schema = UserUpdateSchema()
user_query_schema = UserQuerySchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def _users():
    return current_app.extensions["user_store"]


@bp.get("/users")
@roles_required([Role.ADMIN])
def list_users(identity: TokenPayload):
    """
    List all users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
      - in: query
        name: search
        type: string
        description: "Case-insensitive substring match on name or email"
      - in: query
        name: isActive
        type: boolean
    responses:
      200: { description: OK }
      400: { description: Invalid query parameters }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    filters = user_query_schema.load(request.args.to_dict())
    rows, total = _users().list(page, limit, search=filters.get("search"), is_active=filters.get("is_active"))
    return jsonify(
        {
            "success": True,
            "data": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total},
        }
    ), 200


@bp.post("/users")
@roles_required([Role.ADMIN])
def create_user(identity: TokenPayload):
    """
    Create a user - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
            role: { type: string, enum: [user, admin] }
    responses:
      201: { description: Created }
      400: { description: Validation error or email already registered }
      403: { description: Forbidden }
    """
    data = user_create_schema.load(request.get_json(silent=True) or {})
    user = current_app.extensions["auth_service"].create_user(
        data["name"], data["email"], data["password"], role=data["role"]
    )
    logger.info("Admin %s created user %s", identity.user_id, user.id)
    return jsonify(
        {"success": True, "data": user_out_schema.dump(user), "message": "User created successfully"}
    ), 201


@bp.get("/users/<int:user_id>")
@roles_required([Role.USER, Role.ADMIN])
def get_user(user_id: int, identity: TokenPayload):
    """
    Get a user - admin, or the user themself
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: integer
        required: true
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: User not found }
    """
    if identity.role != Role.ADMIN.value and identity.user_id != user_id:
        raise AuthError(ErrorKind.FORBIDDEN)
    user = _users().get(user_id)
    if user is None:
        raise AuthError(ErrorKind.USER_NOT_FOUND)
    return jsonify({"success": True, "data": user_out_schema.dump(user)}), 200


@bp.put("/users/<int:user_id>")
@roles_required([Role.ADMIN])
def update_user(user_id: int, identity: TokenPayload):
    """
    Update a user (partial) - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: user_id
        type: integer
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            isActive: { type: boolean }
            role: { type: string, enum: [user, admin] }
    responses:
      200: { description: Updated }
      400: { description: Validation error or email already registered }
      404: { description: User not found }
    """
    data = user_update_schema.load(request.get_json(silent=True) or {})
    user = _users().update(user_id, **data)
    logger.info("Admin %s updated user %s (%s)", identity.user_id, user_id, ", ".join(sorted(data)))
    return jsonify(
        {"success": True, "data": user_out_schema.dump(user), "message": "User updated successfully"}
    ), 200


@bp.delete("/users/<int:user_id>")
@roles_required([Role.ADMIN])
def delete_user(user_id: int, identity: TokenPayload):
    """
    Delete a user - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: integer
        required: true
    responses:
      200: { description: Deleted }
      404: { description: User not found }
    """
    if not _users().delete(user_id):
        raise AuthError(ErrorKind.USER_NOT_FOUND)
    logger.info("Admin %s deleted user %s", identity.user_id, user_id)
    return jsonify({"success": True, "data": None, "message": "User deleted successfully"}), 200
