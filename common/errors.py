"""
Error taxonomy shared by the safety services.

Each error carries the HTTP status it maps to so the FastAPI factory can turn
it into a response envelope without a per-route try/except.
"""

from typing import Any, Optional


class SafetyError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SafetyError):
    """Malformed input: out-of-range coordinate, bad geometry, bad parameters."""

    status_code = 400


class InvalidGeometry(ValidationError):
    """A polygon with fewer than 3 vertices or a circle without a positive radius."""


class NotFound(SafetyError):
    """Alert, zone, user, responder entry or notification does not exist."""

    status_code = 404


class InvalidTransition(SafetyError):
    """Illegal alert state change (e.g. touching an alert that is already closed)."""

    status_code = 409


class DependencyFailure(SafetyError):
    """A collaborator call (email, push, SMS, responder lookup) failed."""

    status_code = 502
