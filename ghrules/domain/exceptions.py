"""Centralized exception hierarchy for GreenRules.

All domain and service exceptions inherit from :class:`GreenRulesError` so
that callers can catch a single base class when they need a broad safety net,
yet still match on specific subclasses where narrower handling is appropriate.

Services that mutate state (rule store, toggle, draft editor) catch these and
turn them into user notifications; they never escape a mutating call.

Hierarchy
---------
::

    GreenRulesError
    ├── ValidationError          (draft or payload is incomplete/invalid)
    ├── NotFoundError            (unknown greenhouse / rule id)
    ├── ConflictError            (editor state forbids the action)
    ├── ServiceError             (business-logic failure)
    │   └── ExternalServiceError (remote rule authority failed)
    ├── AuthenticationError      (remote rejected the session token)
    └── ConfigurationError       (missing / invalid config)
"""

from __future__ import annotations


class GreenRulesError(Exception):
    """Base exception for all GreenRules errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class ValidationError(GreenRulesError):
    """Caller supplied invalid or incomplete input."""

    def __init__(self, message: str = "", *, missing: list[str] | None = None, detail: dict | None = None) -> None:
        super().__init__(message, detail=detail)
        self.missing = list(missing or [])


class NotFoundError(GreenRulesError):
    """Requested entity does not exist."""


class ConflictError(GreenRulesError):
    """Operation conflicts with existing state."""


class ServiceError(GreenRulesError):
    """Business-logic failure in a service method."""


class ExternalServiceError(ServiceError):
    """The remote rule authority failed or could not be reached."""

    def __init__(self, message: str = "", *, status_code: int | None = None, detail: dict | None = None) -> None:
        super().__init__(message, detail=detail)
        self.status_code = status_code


class AuthenticationError(GreenRulesError):
    """The remote authority rejected the session credentials (HTTP 401)."""


class ConfigurationError(GreenRulesError):
    """Missing or invalid application configuration."""
