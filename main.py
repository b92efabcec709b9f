"""
Main API module for Goto Platform.

Responsibilities:
    - Expose plain-text HTTP endpoints for creating and following short links
    - Map store errors to fixed HTTP statuses (400/404/409/500)
    - Optionally host the built front-end bundle under /_front
    - Provide the server entry point (argparse + uvicorn)

Wire contract:
    GET  /          -> 200 "ok"
    POST /{code}    -> 200 "/{code} now redirects to {target}" | 409 | 400 | 500
    PUT  /{code}    -> 200 same body, overwrites an existing mapping | 400 | 500
    GET  /{code}    -> 302 Location: {target}, body "redirecting to {target}..." | 404
    POST/PUT /a/b   -> 400 "invalid short code: ..."
    GET  /a/b       -> 404 "not found" (every 404 body)

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - Storage backend chosen by the factory from env, or injected by the caller.
    - LinkManager owns the table; routes never touch storage directly.
    - Blocking store calls on write paths run in the threadpool so the event
      loop is never held by the write lock or by file I/O.

Run:
    python main.py --addr 127.0.0.1:8080 --db ./links.json
    uvicorn --factory main:create_app
"""

import argparse
import logging
from typing import List, Optional
from urllib.parse import quote

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from goto_platform import __version__
from goto_platform.config import parse_addr, settings
from goto_platform.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from goto_platform.manager.link_manager import LinkManager
from goto_platform.storage.base import BaseStorage
from goto_platform.storage.storage_factory import get_storage
from goto_platform.validation import validate_code

# Characters left unescaped in the Location header (same set Starlette uses).
_LOCATION_SAFE = ":/%#?=@[]!$&'()*+,;"

LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


def configure_logging(level: Optional[str] = None) -> None:
    """Basic console logging, only if nobody configured the root logger yet."""
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=(level or settings.LOG_LEVEL).upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def create_app(
    storage: Optional[BaseStorage] = None,
    front_dir: Optional[str] = None,
    max_body_bytes: Optional[int] = None,
) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Persistence backend. Defaults to
            `get_storage()`, i.e. memory or file depending on env.
        front_dir (Optional[str]): Directory with the front-end bundle to
            serve under /_front. Defaults to GOTO_FRONT_DIR.
        max_body_bytes (Optional[int]): POST/PUT body limit. Defaults to
            GOTO_MAX_BODY_BYTES.

    Returns:
        FastAPI: A configured application whose LinkManager has already
                 loaded the persisted table (available as app.state.manager).

    Raises:
        DecodeError: If the mapping file is corrupt. The service must not start.
    """
    app = FastAPI(
        title="Goto Platform",
        description="Short code to URL redirect service",
        version=__version__,
        # Service paths live under "_" so they never shadow a short code.
        docs_url="/_docs",
        redoc_url=None,
        openapi_url="/_openapi.json",
    )
    log = logging.getLogger("goto")
    configure_logging()

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    storage = storage if storage is not None else get_storage()
    link_manager = LinkManager(storage=storage)
    link_manager.load()
    app.state.manager = link_manager

    body_limit = max_body_bytes or settings.MAX_BODY_BYTES
    log.info(
        "Goto storage backend: %s (configured: %s, %d mapping(s))",
        storage.name,
        settings.STORAGE_BACKEND or "auto",
        len(link_manager),
    )

    front_dir = front_dir if front_dir is not None else settings.FRONT_DIR
    if front_dir:
        app.mount("/_front", StaticFiles(directory=front_dir, html=True), name="front")
        log.info("Serving front-end bundle from %s at /_front", front_dir)

    # ----------------------------------------------------------------
    # Errors are plain text, whatever raised them
    # ----------------------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def plain_text_http_error(request: Request, exc: StarletteHTTPException) -> Response:
        # Unmatched routes and unknown codes share one 404 body.
        detail = "not found" if exc.status_code == 404 else str(exc.detail)
        return PlainTextResponse(detail, status_code=exc.status_code, headers=exc.headers)

    # ----------------------------------------------------------------
    # Utilities
    # ----------------------------------------------------------------
    async def _read_target(request: Request) -> str:
        """
        Read the raw body as the target URL, capped at `body_limit` bytes.

        Raises:
            HTTPException: 400 on overflow or non UTF-8 payloads.
        """
        body = bytearray()
        async for chunk in request.stream():
            if len(body) + len(chunk) > body_limit:
                raise HTTPException(status_code=400, detail="overflow")
            body.extend(chunk)
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise HTTPException(status_code=400, detail=f"invalid request body: {e}")

    async def _write(op, code: str, target: str) -> None:
        try:
            await run_in_threadpool(op, code, target)
        except ValidationError as ve:
            raise HTTPException(status_code=400, detail=str(ve))
        except ConflictError:
            raise HTTPException(status_code=409, detail="already registered")
        except PersistenceError:
            # Already logged by the manager; memory is now ahead of disk.
            raise HTTPException(status_code=500, detail="failed to persist the new redirect")

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        return "ok"

    @app.post("/{code}", response_class=PlainTextResponse)
    async def create_link(code: str, request: Request) -> str:
        """
        Create a short link. The raw request body is the target URL.

        Responses:
            200: "/{code} now redirects to {target}"
            400: malformed code, body or URL
            409: code already registered
            500: the mapping could not be persisted
        """
        target = (await _read_target(request)).strip()
        await _write(link_manager.create, code, target)
        return f"/{code} now redirects to {target}"

    @app.put("/{code}", response_class=PlainTextResponse)
    async def replace_link(code: str, request: Request) -> str:
        """Create or overwrite a short link (used by clients forcing a replace)."""
        target = (await _read_target(request)).strip()
        await _write(link_manager.replace, code, target)
        return f"/{code} now redirects to {target}"

    @app.get("/{code}")
    def browse(code: str) -> Response:
        """
        Redirect to the target of a short link.

        Returns a 302 with a Location header and a plain-text body so both
        browsers and command-line clients get something useful.
        """
        try:
            target = link_manager.resolve(code)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="not found")
        return PlainTextResponse(
            f"redirecting to {target}...",
            status_code=302,
            headers={"Location": quote(target, safe=_LOCATION_SAFE)},
        )

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT"], include_in_schema=False)
    def not_a_code(path: str, request: Request) -> Response:
        """
        Catch paths that can never be a short code, e.g. "/a/b" or "/a%2Fb".

        Writes answer 400 like any other malformed code; reads answer 404.
        """
        if request.method == "GET":
            raise HTTPException(status_code=404, detail="not found")
        try:
            validate_code(path)
        except ValidationError as ve:
            raise HTTPException(status_code=400, detail=str(ve))
        raise HTTPException(status_code=400, detail=f"invalid short code: {path!r}")

    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goto-api", description="Serve short link redirects")
    parser.add_argument("--addr", default=settings.ADDR, help="listen address host:port (env GOTO_ADDR)")
    parser.add_argument("--db", default=None, help="JSON mapping file; omit for in-memory only (env GOTO_DB_PATH)")
    parser.add_argument("--front", default=None, help="front-end bundle directory served at /_front (env GOTO_FRONT_DIR)")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level (env GOTO_LOG_LEVEL)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        host, port = parse_addr(args.addr)
    except ValueError as e:
        parser.error(str(e))
    if args.log_level not in LOG_LEVELS:
        # argparse does not check choices against an env-provided default
        parser.error(f"invalid log level: {args.log_level!r}")
    configure_logging(args.log_level)

    storage = get_storage("file", path=args.db) if args.db else get_storage()
    app = create_app(storage=storage, front_dir=args.front)
    uvicorn.run(app, host=host, port=port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
