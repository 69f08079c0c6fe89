"""Exception types raised by the shopping trip engine."""

from __future__ import annotations


class TripError(Exception):
    """Base class for all shopping trip errors."""


class BackendError(TripError):
    """A Backend List API call failed.

    Attributes:
        message: Human-readable description of the failure.
        status_code: HTTP status code, or None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


class SessionCorruptError(TripError):
    """A persisted trip session could not be parsed."""


class InvalidTransitionError(TripError):
    """A transition was requested that the current route cannot satisfy."""
