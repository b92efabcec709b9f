"""
Mapping store: the in-memory authority for short code mappings.
"""

from .link_manager import LinkManager
from .rwlock import RWLock

__all__ = ["LinkManager", "RWLock"]
