"""
FileStorage – JSON-file-backed storage for Goto Platform
========================================================

Persists the full mapping table as one pretty-printed JSON object so operators
can inspect and edit it by hand:

    {
      "hello": "http://world",
      "tsauvajon": "https://linkedin.com/in/tsauvajon"
    }

It adheres to the same contract as the in-memory MemoryStorage (see `storage.py`)
by implementing `BaseStorage`, so the link manager never needs to know whether a
file is configured.

Key Design Points
-----------------
- **Atomic saves**: the table is written to a temporary file in the target's
  directory, flushed and fsync'ed, then moved over the target with `os.replace`.
  A crash at any point leaves either the previous file or the new one, never a
  mix. On failure the temporary file is removed and the old file stays intact.
- **Strict loads**: a missing file is an empty table; anything that is present
  but not a clean `{code: target}` object is a `DecodeError`, so the service
  refuses to start on a truncated or hand-mangled file instead of silently
  dropping mappings.
- **Validation**: shape is checked with a pydantic `TypeAdapter`; duplicate keys,
  unsafe codes and empty targets are rejected on top of that.

Example
-------
>>> storage = FileStorage("/tmp/goto/links.json")
>>> storage.save_all({"hello": "http://world"})
>>> storage.load_all()
{'hello': 'http://world'}
"""

import contextlib
import json
import logging
import os
import tempfile
import threading
from typing import Dict, List, Tuple

from pydantic import StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import DecodeError, PersistenceError
from ..validation import is_valid_code
from .base import BaseStorage, MappingTable

log = logging.getLogger("goto.storage")

_TableAdapter = TypeAdapter(Dict[StrictStr, StrictStr])


def _reject_duplicates(pairs: List[Tuple[str, object]]) -> Dict[str, object]:
    """json object_pairs_hook: a code may appear only once in the file."""
    out: Dict[str, object] = {}
    for key, value in pairs:
        if key in out:
            raise DecodeError(f"duplicate short code {key!r}")
        out[key] = value
    return out


class FileStorage(BaseStorage):
    """JSON file implementation of the Goto storage contract.

    Parameters
    ----------
    path : str
        Location of the mapping file. Parent directories are created on first save.

    Notes
    -----
    - Saves are serialized with an internal lock; the manager already holds its
      write lock while saving, so this only matters for direct callers.
    - An empty (zero-length or whitespace-only) file loads as an empty table.
    """

    name = "file"

    def __init__(self, path: str) -> None:
        if not path:
            raise ValueError("FileStorage requires a path")
        self.path = os.path.abspath(os.path.expanduser(path))
        self._lock = threading.Lock()

    # ---- Contract methods -------------------------------------------------

    def load_all(self) -> MappingTable:
        """Return the persisted table, or {} when the file does not exist."""
        try:
            with open(self.path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            log.info("No mapping file at %s; starting empty", self.path)
            return {}
        except OSError as e:
            raise PersistenceError(f"read {self.path}: {e}") from e

        table = self.decode(raw, source=self.path)
        log.info("Loaded %d mapping(s) from %s", len(table), self.path)
        return table

    def save_all(self, table: MappingTable) -> None:
        """Atomically replace the file with `table`."""
        payload = self.encode(table)
        directory = os.path.dirname(self.path)
        with self._lock:
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    prefix=f".{os.path.basename(self.path)}.", suffix=".tmp", dir=directory
                )
                self._write_and_replace(fd, tmp_path, payload)
            except OSError as e:
                log.error("Saving %d mapping(s) to %s failed: %s", len(table), self.path, e)
                raise PersistenceError(f"write {self.path}: {e}") from e
        log.debug("Saved %d mapping(s) to %s", len(table), self.path)

    # ---- Codec ------------------------------------------------------------

    @staticmethod
    def encode(table: MappingTable) -> bytes:
        return (json.dumps(table, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")

    @staticmethod
    def decode(raw: bytes, source: str = "<bytes>") -> MappingTable:
        """
        Parse file contents into a table.

        Raises:
            DecodeError: On invalid UTF-8/JSON, wrong shape, duplicate codes,
                unsafe codes or empty targets.
        """
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"{source}: not valid UTF-8: {e}") from e
        if not text.strip():
            return {}

        try:
            data = json.loads(text, object_pairs_hook=_reject_duplicates)
        except DecodeError as e:
            raise DecodeError(f"{source}: {e}") from e
        except json.JSONDecodeError as e:
            raise DecodeError(f"{source}: invalid JSON: {e}") from e

        try:
            table = _TableAdapter.validate_python(data)
        except PydanticValidationError as e:
            raise DecodeError(
                f"{source}: expected an object of short code -> URL strings ({e.error_count()} error(s))"
            ) from e

        for code, target in table.items():
            if not is_valid_code(code):
                raise DecodeError(f"{source}: invalid short code {code!r}")
            if not target.strip():
                raise DecodeError(f"{source}: empty target for short code {code!r}")
        return table

    # ---- Internal helpers -------------------------------------------------

    def _write_and_replace(self, fd: int, tmp_path: str, payload: bytes) -> None:
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise
        self._fsync_directory()

    def _fsync_directory(self) -> None:
        # Makes the rename itself durable; not supported on every platform.
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            dir_fd = os.open(os.path.dirname(self.path), os.O_RDONLY | os.O_DIRECTORY)
        except OSError:
            return
        try:
            os.fsync(dir_fd)
        except OSError as e:
            log.debug("fsync of directory %s failed: %s", os.path.dirname(self.path), e)
        finally:
            os.close(dir_fd)

    def __repr__(self) -> str:
        return f"FileStorage(path={self.path!r})"
