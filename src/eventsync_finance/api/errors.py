"""
Exception → HTTP response mapping.

Every error body has the same shape: {"success": false, "message": ...}.
"""

from typing import Any

from flask import Flask, Response, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from eventsync_finance.kernel.errors import (
    AccessError,
    AuthenticationError,
    EventStoreError,
    FinanceError,
    IllegalTransition,
    InvariantViolation,
    NotFound,
    StreamVersionConflict,
)
from eventsync_finance.kernel.logging import get_logger

logger = get_logger(__name__)

# Most specific first
STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (AuthenticationError, 401),
    (AccessError, 403),
    (NotFound, 404),
    (IllegalTransition, 409),
    (StreamVersionConflict, 409),
    (InvariantViolation, 400),
    (EventStoreError, 500),
]


def status_for(error: Exception) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


def _error_body(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: Flask) -> None:
    """Attach the finance error mapping to an app"""

    @app.errorhandler(FinanceError)
    def handle_finance_error(error: FinanceError) -> tuple[Response, int]:
        status = status_for(error)
        if status >= 500:
            logger.error("Request failed", error=str(error), exc_info=True)
            return jsonify(_error_body("Server error")), status
        logger.info("Request rejected", status=status, error=str(error))
        return jsonify(_error_body(str(error))), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError) -> tuple[Response, int]:
        return jsonify(_error_body(_validation_message(error))), 400

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError) -> tuple[Response, int]:
        return jsonify(_error_body(str(error))), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> tuple[Response, int]:
        return jsonify(_error_body(error.description or error.name)), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception) -> tuple[Response, int]:
        logger.error("Unhandled error", error=str(error), exc_info=True)
        return jsonify(_error_body("Server error")), 500
