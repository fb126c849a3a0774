from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models import storage
from utils.errors import AuthError

logger = logging.getLogger(__name__)


def error_response(error: str, message: str, status: int, details=None):
    payload = {"success": False, "error": error, "message": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Auth core failures: the kind decides status and public code
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        kind = err.kind
        if kind.status >= 500 and not kind.retryable:
            logger.error("Auth core failure: %r", err)
        details = err.details if kind.public is kind else None
        response, status = error_response(kind.public.value, err.public_message, kind.status, details=details)
        if kind.retryable:
            response.headers["Retry-After"] = "1"
        return response, status

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        logger.warning("Body validation failed: %s", err.messages)
        return error_response("VALIDATION_ERROR", "Validation failed", 400, details=err.messages)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        storage.get_session().rollback()
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        logger.warning("Integrity error: %s", message)
        details = {"db_error": message} if current_app.debug else None
        if "unique constraint" in lower_msg or "unique violation" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409, details=details)
        if "foreign key constraint" in lower_msg or "foreign key mismatch" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint failed.", 400, details=details)
        return error_response("BAD_REQUEST", "Integrity error.", 400, details=details)

    # Werkzeug HTTPExceptions (404, 405, abort(...)) map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = (err.name or "Bad Request").upper().replace(" ", "_")
        return error_response(code, err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        # In dev, include exception details to speed up debugging
        details = None
        if current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
