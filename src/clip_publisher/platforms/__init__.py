"""Platform upload drivers.

Each driver performs one platform's upload phases; the publish runner
moves the record between them.
"""

from .base import PlatformDriver, ProgressReporter, failed_before
from .registry import DriverRegistry

__all__ = ["PlatformDriver", "ProgressReporter", "DriverRegistry", "failed_before"]
