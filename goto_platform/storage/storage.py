"""
Storage module for Goto Platform (in-memory implementation).

Design:
    - No-op backend for running the service without a backing file.
    - The link manager already keeps the authoritative table in memory,
      so there is nothing to load and nothing to save.
    - Keeps unit/integration tests fast and deterministic.
"""

from .base import BaseStorage, MappingTable


class MemoryStorage(BaseStorage):
    name = "memory"

    def __init__(self):
        self.save_count = 0

    def load_all(self) -> MappingTable:
        """Always starts empty."""
        return {}

    def save_all(self, table: MappingTable) -> None:
        # Counted so tests can assert one save per mutation.
        self.save_count += 1

    def __repr__(self) -> str:
        return "MemoryStorage()"
