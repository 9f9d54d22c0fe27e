"""Logging setup and structured run events."""
