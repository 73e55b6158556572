"""Tag-driven search and recommendation engine for a self-hosted media gallery."""

__version__ = "0.1.0"
