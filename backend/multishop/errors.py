# Overview: Application error taxonomy and the JSON response envelope.

"""
Every endpoint answers with the same envelope:

    {"success": bool, "message": str, "data": ..., "error": ...}

Services raise subclasses of AppError; the handlers registered in
register_error_handlers() turn them into envelopes with the right status
code. Anything else that escapes a view is logged and answered with a
generic 500.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str | None = None, *, details: Any = None):
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()
        self.details = details

    @classmethod
    def default_message(cls) -> str:
        return "Internal server error"


class UnauthenticatedError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"

    @classmethod
    def default_message(cls) -> str:
        return "Authentication required"


class InvalidCredentialError(AppError):
    status_code = 401
    code = "INVALID_CREDENTIAL"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid or expired credential"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"

    @classmethod
    def default_message(cls) -> str:
        return "Access denied"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    @classmethod
    def default_message(cls) -> str:
        return "Resource not found"


class ValidationError(AppError, ValueError):
    """400-level input problem."""

    status_code = 400
    code = "VALIDATION_ERROR"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid input"


class ConflictError(AppError, ValueError):
    """Uniqueness or dependency conflict. Answered with 400, not 409."""

    status_code = 400
    code = "CONFLICT"

    @classmethod
    def default_message(cls) -> str:
        return "Conflict with existing data"


def success_response(data: Any = None, message: str = "OK", status: int = 200):
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def error_response(message: str, status: int, error: Any = None):
    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return jsonify(body), status


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(exc: AppError):
        error: dict[str, Any] = {"code": exc.code}
        if exc.details is not None:
            error["details"] = exc.details
        return error_response(exc.message, exc.status_code, error)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity violation: %s", exc.orig)
        return error_response(
            ConflictError.default_message(),
            ConflictError.status_code,
            {"code": ConflictError.code},
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return error_response(exc.description or exc.name, exc.code or 500, {"code": exc.name.upper().replace(" ", "_")})

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error while processing request")
        return error_response("Internal server error", 500, {"code": AppError.code})
