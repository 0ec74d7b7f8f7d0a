"""Taskboard: a personal task tracker with a JSON-file or SQLite store."""

__version__ = "1.0.0"
