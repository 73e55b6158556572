"""Search engine services."""
