"""
Request authentication gate.

The plain functions (authenticate, optional_authenticate, authorize) work on a
raw Authorization header and an explicit codec. The Flask decorators wrap them
and hand the verified identity to the view as the `identity` keyword argument;
nothing is stored on the request.
"""
from __future__ import annotations

import logging
from functools import wraps
from typing import Iterable, Optional

from flask import current_app, request

from utils.errors import AuthError, ErrorKind
from utils.tokens import TokenCodec, TokenPayload

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from "Bearer <token>", or None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def authenticate(authorization: Optional[str], codec: TokenCodec) -> TokenPayload:
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthError(ErrorKind.MISSING_TOKEN)
    identity = codec.verify_access_token(token)
    if identity is None:
        raise AuthError(ErrorKind.INVALID_TOKEN)
    return identity


def optional_authenticate(authorization: Optional[str], codec: TokenCodec) -> Optional[TokenPayload]:
    """Like authenticate, but a missing or bad token just means no identity."""
    token = extract_bearer_token(authorization)
    if not token:
        return None
    return codec.verify_access_token(token)


def authorize(identity: Optional[TokenPayload], allowed_roles: Iterable[str]) -> TokenPayload:
    if identity is None:
        raise AuthError(ErrorKind.UNAUTHENTICATED)
    allowed = {getattr(role, "value", role) for role in allowed_roles}
    if identity.role not in allowed:
        logger.warning(
            "Insufficient permissions (user_id=%s, role=%s, required=%s)",
            identity.user_id,
            identity.role,
            sorted(allowed),
        )
        raise AuthError(ErrorKind.FORBIDDEN)
    return identity


def _codec() -> TokenCodec:
    return current_app.extensions["token_codec"]


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                identity = authenticate(request.headers.get("Authorization"), _codec())
            except AuthError as err:
                logger.warning("%s (%s %s)", err.message, request.method, request.path)
                raise
            return fn(*args, identity=identity, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = optional_authenticate(request.headers.get("Authorization"), _codec())
            return fn(*args, identity=identity, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the caller's role is one of `required_roles`.
    Missing/invalid token -> 401/403 from jwt_required, wrong role -> 403.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, identity=None, **kwargs):
            authorize(identity, required_roles)
            return fn(*args, identity=identity, **kwargs)

        return wrapper

    return decorator
