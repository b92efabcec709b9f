"""
goto_platform package initializer.
"""

from . import errors
from . import manager
from . import storage

__all__ = ["errors", "manager", "storage"]

__version__ = "0.1.0"
