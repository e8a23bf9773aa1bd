from __future__ import annotations

import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 400
    default_message = "bad request"

    def __init__(self, message: str | None = None, **extras) -> None:
        self.message = message or self.default_message
        self.extras = extras
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"ok": False, "error": self.message}
        payload.update(self.extras)
        return payload


class ValidationError(AppError):
    status_code = 400
    default_message = "validation error"

    def __init__(self, fields: dict[str, str], message: str | None = None) -> None:
        super().__init__(message, fields=fields)
        self.fields = fields


class BadRequest(AppError):
    status_code = 400
    default_message = "bad request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class TooManyAttempts(AppError):
    status_code = 429
    default_message = "Too many attempts. Try again later."


def _json_error(message: str, status_code: int, **extras):
    payload = {"ok": False, "error": message}
    payload.update(extras)
    return payload, status_code


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(exc: AppError):
        return exc.to_payload(), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return _json_error(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("unhandled error on request")
        return _json_error("Internal Server Error", 500)
