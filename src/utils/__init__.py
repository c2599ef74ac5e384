"""Shared helpers: logging, errors and validation."""
