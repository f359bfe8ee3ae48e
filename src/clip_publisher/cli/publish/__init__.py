"""Publish commands."""

from .commands import cancel, events, publish, retry, status

__all__ = ["publish", "status", "retry", "cancel", "events"]
