"""
Error taxonomy for Metrix Studio.

Connection failures propagate to the caller; query and layout failures are
captured where they occur and never escape the store or the viewport.
"""

import builtins
from typing import Optional


class StudioError(Exception):
    """Base class for all Metrix Studio errors."""


class ConnectionError(StudioError, builtins.ConnectionError):
    """A database path could not be opened or created."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class QueryError(StudioError):
    """Query text was malformed or failed at runtime."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LayoutError(StudioError):
    """The rendering engine's layout pass failed. Always non-fatal."""
