"""Shared helpers: clock and logging."""
