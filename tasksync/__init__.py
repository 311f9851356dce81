"""Local-first task manager with outbox reconciliation."""

__version__ = "1.0.0"
