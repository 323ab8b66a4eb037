"""Shared utilities: logging setup."""
