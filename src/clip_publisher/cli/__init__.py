"""Command line interface.

Feature packages:
- core/: console output and settings resolution
- server/: API server and stored tokens
- transfer/: chunked uploads of episode media
- publish/: publishing clips and tracking their status

Usage:
    clip-publisher serve
    clip-publisher upload cam1.mp4 cam2.mp4 --podcast p1 --episode e1
    clip-publisher publish youtube --post p1 --clip c1 --short
"""

from .app import app, main

__all__ = ["app", "main"]
