"""
Persistence backends for the mapping table.
"""

from .base import BaseStorage, MappingTable
from .file_storage import FileStorage
from .storage import MemoryStorage
from .storage_factory import get_storage

__all__ = ["BaseStorage", "MappingTable", "FileStorage", "MemoryStorage", "get_storage"]
