"""Services layer for Therabot application logic."""

from .session_controller import SessionController

__all__ = [
    "SessionController",
]
