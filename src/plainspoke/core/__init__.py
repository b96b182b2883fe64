"""Collaborator interface contracts."""
