"""Harborbook: durable local store for operational contact categories."""

__version__ = "1.0.0"
