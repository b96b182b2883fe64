"""Two-stage AI text humanization service."""

__version__ = "0.3.0"
