"""Conversational SMS assistant for a personal book library."""

__version__ = "0.1.0"
