"""Chunked transfer commands."""

from .commands import upload

__all__ = ["upload"]
