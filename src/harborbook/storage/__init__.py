"""Persistence: record file with backup rotation, legacy preference store, migration."""
