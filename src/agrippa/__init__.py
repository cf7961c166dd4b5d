"""Agrippa: two-way sync between a local workspace and remote workflow phases and model functions."""

__version__ = "0.3.0"
