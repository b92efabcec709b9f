"""
Base storage interface for Goto Platform.

Purpose:
    Define a small, stable contract for persisting the whole mapping table
    as one unit. The link manager owns the table in memory and calls into
    a backend only at startup (load_all) and after each mutation (save_all).

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a whole-table persistence interface lets an in-memory store
    run with or without a backing file, without branching on a nullable path."
"""

from abc import ABC, abstractmethod
from typing import Dict

MappingTable = Dict[str, str]


class BaseStorage(ABC):
    """Abstract base class for persistence backends."""

    #: Short name used in logs and by the storage factory.
    name: str = "base"

    @abstractmethod  # pragma: no cover
    def load_all(self) -> MappingTable:
        """
        Read the full mapping table.

        Returns:
            MappingTable: code -> target. Empty if nothing was persisted yet.

        Raises:
            DecodeError: If persisted data exists but cannot be parsed.
            PersistenceError: If the data cannot be read at all.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def save_all(self, table: MappingTable) -> None:
        """
        Replace the persisted table with `table`.

        Implementations must never leave a half-written result visible to
        a later load_all: either the old table or the new one survives.

        Raises:
            PersistenceError: If the write failed. Previous data is intact.
        """
        raise NotImplementedError
