"""Outbound call scheduler: scheduled call tasks, claims and completion relay."""

__version__ = "0.1.0"
