"""Core utilities for CLI - console output and settings."""

from .console import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    styled_status,
)
from .settings import cli_settings, use_config

__all__ = [
    # Console
    "console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "styled_status",
    # Settings
    "cli_settings",
    "use_config",
]
