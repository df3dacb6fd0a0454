"""Shared utilities: logging and HTTP."""
