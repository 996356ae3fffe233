"""Therabot: a keyboard and voice client for a remote therapy chatbot."""

__version__ = "0.1.0"
