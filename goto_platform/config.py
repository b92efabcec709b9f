"""
Runtime configuration for Goto Platform
=======================================

Simple settings module that reads from environment variables (only here),
and exposes a stable `settings` object for the rest of the codebase.
Avoid reading env vars anywhere else; import from this module instead.
The storage factory is the one exception: it re-reads its two variables
at call time so tests can flip them with monkeypatch.

Storage
-------
- GOTO_STORAGE_BACKEND : "memory" or "file" (default: "file" when GOTO_DB_PATH is set)
- GOTO_DB_PATH         : path of the JSON mapping file, e.g. "/var/lib/goto/links.json"

HTTP
----
- GOTO_ADDR            : listen address "host:port" (default "127.0.0.1:8080")
- GOTO_FRONT_DIR       : optional directory holding the built front-end bundle
- GOTO_MAX_BODY_BYTES  : max size of a POST/PUT body; default 1024; clamped to [64, 65536]

Logging
-------
- GOTO_LOG_LEVEL       : standard logging level name (default "INFO")
"""

import os
from typing import Tuple

DEFAULT_ADDR = "127.0.0.1:8080"


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def parse_addr(addr: str) -> Tuple[str, int]:
    """
    Split a "host:port" listen address.

    Raises:
        ValueError: If the port is missing or not an integer.
    """
    host, sep, port = addr.strip().rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {addr!r} (expected host:port)")
    return host.strip("[]") or "127.0.0.1", int(port)


class _Settings:
    # -------- Storage --------
    STORAGE_BACKEND: str = os.getenv("GOTO_STORAGE_BACKEND", "").strip().lower()
    DB_PATH: str = os.getenv("GOTO_DB_PATH", "")

    # -------- HTTP --------
    ADDR: str = os.getenv("GOTO_ADDR", DEFAULT_ADDR)
    FRONT_DIR: str = os.getenv("GOTO_FRONT_DIR", "")

    # The original service refuses payloads over 1k
    MAX_BODY_BYTES: int = max(64, min(65536, _get_int("GOTO_MAX_BODY_BYTES", 1024)))

    # -------- Logging --------
    LOG_LEVEL: str = os.getenv("GOTO_LOG_LEVEL", "INFO").strip().upper()


settings = _Settings()
