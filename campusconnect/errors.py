"""Error types raised by the service layer and their JSON rendering.

Services raise these; the handlers registered in :func:`register_error_handlers`
turn them into ``{"error": ..., "message": ...}`` responses so route functions
never build error payloads themselves.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


class CampusConnectError(Exception):
    status_code = 500
    code = "server_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class AuthenticationError(CampusConnectError):
    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str = "Not authorized, token missing or invalid"):
        super().__init__(message)


class Forbidden(CampusConnectError):
    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFound(CampusConnectError):
    status_code = 404
    code = "not_found"

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ValidationError(CampusConnectError):
    status_code = 400
    code = "bad_request"


class ProfileIncomplete(ValidationError):
    code = "profile_incomplete"

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            "Please complete your academic profile ("
            + ", ".join(self.missing)
            + ") before registering for events"
        )


class AlreadyExists(ValidationError):
    code = "already_exists"


class AlreadyRegistered(AlreadyExists):
    code = "already_registered"

    def __init__(self, message: str = "You are already registered for this event"):
        super().__init__(message)


def _error_response(code: str, message: str, status: int):
    return jsonify({"error": code, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CampusConnectError)
    def handle_campusconnect_error(err: CampusConnectError):
        return _error_response(err.code, err.message, err.status_code)

    @app.errorhandler(PydanticValidationError)
    def handle_payload_error(err: PydanticValidationError):
        first = err.errors()[0] if err.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()))
        message = first.get("msg", "Invalid request body")
        if field:
            message = f"{field}: {message}"
        return _error_response("bad_request", message, 400)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(err):
        return _error_response("payload_too_large", "Poster must be 2MB or smaller", 413)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return _error_response(
            (err.name or "error").lower().replace(" ", "_"),
            err.description or err.name,
            err.code or 500,
        )

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        logger.exception("Unhandled error: %s", err)
        return _error_response("server_error", "Internal server error", 500)
