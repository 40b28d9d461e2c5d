"""
Shared error types for the campus events backend.

Every failure a route can report is an AppError carrying a stable HTTP
status. Blueprints register `handle_app_error` so services can simply raise.
"""

import logging
from typing import Optional, Tuple

from flask import jsonify, Response


class AppError(Exception):
    """Base application error with a message and an HTTP status code."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input payload (400)."""

    status_code = 400


class InvalidCapacity(AppError):
    """Negative ticket count (400)."""

    status_code = 400

    def __init__(self, message: str = "tickets_available cannot be negative"):
        super().__init__(message)


class AuthError(AppError):
    """Missing, invalid, or expired bearer token (401)."""

    status_code = 401


class Unauthorized(AppError):
    """Requesting user does not own the event (401)."""

    status_code = 401


class NotFound(AppError):
    status_code = 404


class NotRegistered(AppError):
    status_code = 404

    def __init__(self, message: str = "User is not registered for this event"):
        super().__init__(message)


class AlreadyRegistered(AppError):
    status_code = 409

    def __init__(self, message: str = "User already registered for this event"):
        super().__init__(message)


class StoreError(AppError):
    """Underlying persistence failure (500). The cause is logged, not returned."""

    status_code = 500


def handle_app_error(err: AppError) -> Tuple[Response, int]:
    """
    Render an AppError as the standard JSON error body.

    Args:
        err (AppError): The raised error.

    Returns:
        tuple: ({"error": message}, status_code)
    """
    if err.status_code >= 500:
        logging.error(f"[Error] {type(err).__name__}: {err.message}")
    return jsonify({"error": err.message}), err.status_code
