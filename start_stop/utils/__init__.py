"""Shared helpers: logging setup, retries and duration parsing."""
