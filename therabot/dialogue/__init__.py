"""Dialogue service client for Therabot."""

from .client import DialogueClient

__all__ = ["DialogueClient"]
