# Overview: Error taxonomy and the central error translator for API responses.

"""
Every handler error funnels through the translator registered here.

Known shapes (AppError subclasses, token errors, database errors, werkzeug
HTTP errors) are mapped to the JSON envelope with a stable status code;
anything else becomes a generic 500. Stack traces reach the client only in
development but are always written to the application log.
"""

from __future__ import annotations

import traceback

import jwt
from flask import Flask, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class AppError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """400-level input problem."""

    status_code = 400
    default_message = "Invalid request"


class BusinessRuleError(AppError):
    """400-level business rule violation (e.g. deleting a non-pending order)."""

    status_code = 400


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """409-level conflict (duplicate resource)."""

    status_code = 409
    default_message = "Resource already exists"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests from this IP, please try again later."

    def __init__(self, message: str | None = None, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamServiceError(AppError):
    """
    A payment, messaging or identity provider call failed.

    The client only sees `message`; `cause` is logged.
    """

    status_code = 500

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


# Postgres SQLSTATE codes surfaced through psycopg as `orig.sqlstate`
_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"
_PG_NOT_NULL_VIOLATION = "23502"


def translate_integrity_error(exc: IntegrityError) -> AppError:
    """Map a constraint violation to the client-facing taxonomy."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    text = str(orig or exc).lower()

    if code == _PG_UNIQUE_VIOLATION or "unique" in text or "duplicate" in text:
        return ConflictError("Resource already exists")
    if code == _PG_FOREIGN_KEY_VIOLATION or "foreign key" in text:
        return ValidationError("Referenced resource not found")
    if code == _PG_NOT_NULL_VIOLATION or "not null" in text:
        return ValidationError("Required field is missing")
    return AppError("Database operation failed", 500)


def _error_response(status_code: int, message: str, exc: BaseException | None = None, headers=None):
    body = {"success": False, "error": message}
    settings = current_app.config.get("SETTINGS")
    if exc is not None and settings is not None and settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    response = jsonify(body)
    response.status_code = status_code
    if headers:
        response.headers.update(headers)
    return response


def handle_app_error(exc: AppError):
    if exc.status_code >= 500:
        cause = getattr(exc, "cause", None)
        current_app.logger.error(
            "%s %s failed: %s", request.method, request.path, exc.message,
            exc_info=cause if cause is not None else exc,
        )
    else:
        current_app.logger.warning("%s %s -> %s %s", request.method, request.path, exc.status_code, exc.message)

    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return _error_response(exc.status_code, exc.message, exc, headers)


def handle_token_error(exc: jwt.InvalidTokenError):
    message = "Token expired" if isinstance(exc, jwt.ExpiredSignatureError) else "Invalid token"
    current_app.logger.warning("%s %s -> 401 %s", request.method, request.path, message)
    return _error_response(401, message, exc)


def handle_database_error(exc: SQLAlchemyError):
    db.session.rollback()
    if isinstance(exc, IntegrityError):
        mapped = translate_integrity_error(exc)
        current_app.logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
        if mapped.status_code < 500:
            return _error_response(mapped.status_code, mapped.message, exc)
    current_app.logger.exception("Database error on %s %s", request.method, request.path)
    return _error_response(500, "Database operation failed", exc)


def handle_http_exception(exc: HTTPException):
    if exc.code == 404:
        message = f"Not found - {request.path}"
    elif exc.code == 413:
        message = "Request body too large"
    else:
        message = exc.description or exc.name
    return _error_response(exc.code or 500, message)


def handle_unexpected_error(exc: Exception):
    db.session.rollback()
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return _error_response(500, "Internal server error", exc)


def register_error_handlers(app: Flask) -> None:
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(jwt.InvalidTokenError, handle_token_error)
    app.register_error_handler(SQLAlchemyError, handle_database_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
