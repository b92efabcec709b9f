"""
LinkManager module for Goto Platform.

Responsibilities:
    - Own the authoritative in-memory table of short code -> target URL
    - Validate codes and targets
    - Enforce one target per code (create never overwrites)
    - Coordinate concurrent access with a reader/writer lock
    - Persist the whole table through the injected storage backend after
      every mutation, and load it once at startup

Design notes:
    - Reads (resolve) share the lock; writes (create/replace) hold it
      exclusively for check + mutation + save, so two creates for the same
      code can never both observe it as free.
    - A failed save does not roll back the mutation. The manager is then
      `dirty` (memory ahead of disk) until the next successful save, and the
      caller gets a PersistenceError for that one request.
    - Storage is an injected dependency; MemoryStorage turns saves into no-ops.

LLM Prompt Example:
    "Explain how a reader/writer lock around an in-memory dict plus a
    whole-table atomic file save gives uniqueness and crash safety for a
    small single-process URL shortener."
"""

import logging
from typing import Dict, Optional

from ..errors import ConflictError, NotFoundError, PersistenceError
from ..storage.base import BaseStorage, MappingTable
from ..storage.storage import MemoryStorage
from ..validation import validate_code, validate_target
from .rwlock import RWLock

log = logging.getLogger("goto.manager")


class LinkManager:
    """
    Single source of truth for short code mappings.

    All access to the table goes through create, replace, resolve, load
    and snapshot.
    """

    def __init__(self, storage: Optional[BaseStorage] = None):
        """
        Initialize LinkManager with a persistence backend.

        Args:
            storage (Optional[BaseStorage]): Backend used for load/save.
                Defaults to MemoryStorage (pure in-memory).
        """
        self.storage = storage if storage is not None else MemoryStorage()
        self._links: Dict[str, str] = {}
        self._lock = RWLock()
        self._dirty = False

    # ---------------------------------------------------------------------
    # Startup
    # ---------------------------------------------------------------------
    def load(self) -> MappingTable:
        """
        Replace the in-memory table with the backend's contents.

        Called once before the API starts serving.

        Returns:
            MappingTable: A copy of the loaded table.

        Raises:
            DecodeError: If the persisted file is corrupt; the service must not start.
        """
        table = self.storage.load_all()
        with self._lock.write_locked():
            self._links = dict(table)
            self._dirty = False
        log.info("Loaded %d mapping(s) from %s storage", len(table), self.storage.name)
        return dict(table)

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create(self, code: str, target: str) -> str:
        """
        Register a new mapping.

        Rules:
            - code must be a valid short code; target a well-formed http(s) URL.
            - If the code is already mapped -> ConflictError, table unchanged, no save.
            - Otherwise insert and save the whole table once.

        Returns:
            str: The normalized target that was stored.

        Raises:
            ValidationError: On invalid code or target.
            ConflictError: If the code is taken.
            PersistenceError: If the save failed (the mapping stays in memory).
        """
        validate_code(code)
        target = validate_target(target)

        with self._lock.write_locked():
            if code in self._links:
                raise ConflictError(code)
            self._links[code] = target
            self._persist(f"create /{code}")

        log.info("Created /%s -> %s", code, target)
        return target

    def replace(self, code: str, target: str) -> bool:
        """
        Create the mapping, or overwrite it if the code is already taken.

        Returns:
            bool: True if an existing mapping was replaced.

        Raises:
            ValidationError: On invalid code or target.
            PersistenceError: If the save failed (the new target stays in memory).
        """
        validate_code(code)
        target = validate_target(target)

        with self._lock.write_locked():
            previous = self._links.get(code)
            self._links[code] = target
            self._persist(f"replace /{code}")

        if previous is None:
            log.info("Created /%s -> %s", code, target)
        else:
            log.info("Replaced /%s: %s -> %s", code, previous, target)
        return previous is not None

    def resolve(self, code: str) -> str:
        """
        Return the target for a code.

        Raises:
            NotFoundError: If no mapping exists.
        """
        with self._lock.read_locked():
            target = self._links.get(code)
        if target is None:
            raise NotFoundError(code)
        return target

    def snapshot(self) -> MappingTable:
        """Consistent copy of the whole table."""
        with self._lock.read_locked():
            return dict(self._links)

    @property
    def dirty(self) -> bool:
        """True while in-memory state has mutations that failed to persist."""
        with self._lock.read_locked():
            return self._dirty

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._links)

    def __contains__(self, code: object) -> bool:
        with self._lock.read_locked():
            return code in self._links

    # ---------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------
    def _persist(self, action: str) -> None:
        """Save a snapshot of the table. Caller must hold the write lock."""
        try:
            self.storage.save_all(dict(self._links))
        except PersistenceError:
            self._dirty = True
            log.error(
                "Persisting %s failed; %d mapping(s) in memory are ahead of %s storage",
                action,
                len(self._links),
                self.storage.name,
            )
            raise
        if self._dirty:
            log.info("Storage caught up with memory after %s", action)
            self._dirty = False
