"""
Storage factory – switch persistence backend from config (lazy env version)
==========================================================================

This module centralizes selection of the persistence backend (in-memory vs file)
so the link manager can stay ignorant of where data lives.

- Reads environment **at call time** to avoid stale values in tests.
- When no backend is named, a configured file path implies the file backend.

Environment variables
---------------------
- GOTO_STORAGE_BACKEND: "memory" or "file"
- GOTO_DB_PATH:         path of the JSON mapping file if backend=="file"
"""

import logging
import os
from typing import Optional

from goto_platform.storage.base import BaseStorage
from goto_platform.storage.file_storage import FileStorage
from goto_platform.storage.storage import MemoryStorage

log = logging.getLogger("goto.storage")


def get_storage(backend: Optional[str] = None, **kwargs) -> BaseStorage:
    """
    Return a persistence backend based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory" or "file". If omitted, reads GOTO_STORAGE_BACKEND, and if that
        is unset too, picks "file" when a path is available, else "memory".
    kwargs : dict
        Extra args for the backend. For file, use path="...".

    Returns
    -------
    BaseStorage-compatible instance
    """
    path = kwargs.get("path") or os.getenv("GOTO_DB_PATH", "")
    be = (backend or os.getenv("GOTO_STORAGE_BACKEND", "")).strip().lower()
    if not be:
        be = "file" if path else "memory"

    log.debug("Selected storage backend: %r", be)

    if be == "memory":
        return MemoryStorage()

    if be == "file":
        if not path:
            raise ValueError("DB_PATH is required for file backend (env GOTO_DB_PATH)")
        return FileStorage(path=path)

    raise ValueError(f"Unknown storage backend: {be!r}")
