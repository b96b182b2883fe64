"""HTTP surface."""

from plainspoke.api.app import create_app, open_services

__all__ = ["create_app", "open_services"]
