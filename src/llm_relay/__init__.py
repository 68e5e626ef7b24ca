"""Relay LLM requests to external command-line tools."""

__version__ = "0.1.0"
