"""Exception types raised by Therabot components."""

from typing import Optional


class TherabotError(Exception):
    """Base class for Therabot errors."""


class NetworkError(TherabotError):
    """A dialogue service request failed or returned a non-success response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UnsupportedCapabilityError(TherabotError):
    """Speech input is not available in this environment."""
