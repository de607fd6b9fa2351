"""Logging utilities for the Task Chat Assistant."""

from .activity import fetch_activity_entries, log_task_event

__all__ = ["log_task_event", "fetch_activity_entries"]
