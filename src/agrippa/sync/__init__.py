"""High-level sync flows for workflow phases and model functions."""
