from __future__ import annotations

from typing import Iterable, List


class ServiceError(Exception):
    """Base class for service-layer errors."""


class ValidationError(ServiceError):
    """Raised when input payload is invalid."""


class ConfigurationError(ServiceError):
    """Raised when configuration cannot be saved because of blocking issues."""

    def __init__(self, message: str, issues: Iterable = ()):
        super().__init__(message)
        self.issues: List = list(issues or [])


class InvalidTransitionError(ServiceError):
    """Raised when an academic year cannot move to the requested state."""

    def __init__(self, message: str, errors: Iterable[str] = ()):
        super().__init__(message)
        self.errors: List[str] = list(errors or [])


class GradingWindowClosedError(ServiceError):
    """Raised when grades are written outside an open grading window."""


class UnsupportedStrategyError(ServiceError):
    """Raised when a configuration tag has no registered strategy."""
