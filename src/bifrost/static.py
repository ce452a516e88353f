"""
Static file fallback.

Consulted when no route matches a GET request. Resolves the request path
inside the public directory, serving ``index.html`` for paths ending in
``/``. With ``spa`` on, unresolved paths get the root ``index.html`` so
client-side routing can take over.
"""

import asyncio
import logging
from pathlib import Path

from bifrost.exceptions import StaticIOError
from bifrost.livereload import inject_reload_bytes
from bifrost.request import Request
from bifrost.response import FileResponse

logger = logging.getLogger("bifrost.static")

INDEX_FILE: str = "index.html"


class StaticFiles:
    """
    Serves files from *directory*.

    Security: resolves symlinks and verifies the final path is within the
    configured directory; anything outside is treated as a miss.
    """

    __slots__ = ("_directory", "_livereload", "_spa")

    def __init__(
        self,
        directory: str | Path,
        *,
        spa: bool = False,
        livereload: bool = False,
    ) -> None:
        self._directory = Path(directory).resolve()
        self._spa = spa
        self._livereload = livereload

    @property
    def directory(self) -> Path:
        return self._directory

    def resolve(self, path: str) -> Path | None:
        """Map a request path onto a file path, or None if it escapes."""
        relative = path.lstrip("/")
        if relative == "" or relative.endswith("/"):
            relative += INDEX_FILE

        try:
            candidate = (self._directory / relative).resolve()
        except (OSError, ValueError):
            # NUL bytes, over-long names and similar cannot name a file
            return None
        if not candidate.is_relative_to(self._directory):
            return None
        return candidate

    async def lookup(self, request: Request) -> FileResponse | None:
        """Return a response for *request*, or None on a miss."""
        if request.method != "GET":
            return None

        candidate = self.resolve(request.path)
        if candidate is not None:
            response = await self._serve(candidate)
            if response is not None:
                return response

        if self._spa:
            return await self._serve(self._directory / INDEX_FILE)
        return None

    async def _serve(self, file_path: Path) -> FileResponse | None:
        try:
            if not await asyncio.to_thread(file_path.is_file):
                return None
        except (OSError, ValueError):
            return None
        try:
            body = await asyncio.to_thread(_read_file, file_path)
        except StaticIOError as exc:
            logger.warning("%s", exc)
            return None

        response = FileResponse(body, filename=file_path.name)
        if self._livereload and response.is_html:
            return response.with_content(inject_reload_bytes(body))
        return response


def _read_file(file_path: Path) -> bytes:
    try:
        return file_path.read_bytes()
    except OSError as exc:
        raise StaticIOError(f"Could not read {file_path}: {exc}") from exc
