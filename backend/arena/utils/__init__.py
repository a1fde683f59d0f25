"""Utilities - caller identity and API errors."""
