"""
Page directory scanning.

Turns a directory of Python modules into a route manifest::

    pages/index.py            ->  /
    pages/about.py            ->  /about
    pages/users/index.py      ->  /users
    pages/users/[id].py       ->  /users/:id
    pages/users/[id]/posts.py ->  /users/:id/posts

Each module exports handlers by HTTP verb (``get``, ``post``, ``put``,
``patch``, ``delete``, ``insert``); ``default`` is served for GET. Files
and directories starting with ``_`` are skipped.
"""

import importlib.util
import logging
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import ModuleType
from typing import Any

logger = logging.getLogger("bifrost.pages")

# Module attribute -> HTTP method
EXPORTS: tuple[tuple[str, str], ...] = (
    ("default", "GET"),
    ("get", "GET"),
    ("post", "POST"),
    ("insert", "INSERT"),
    ("put", "PUT"),
    ("patch", "PATCH"),
    ("delete", "DELETE"),
)

_BRACKETED = re.compile(r"^\[([^\[\]/]+)\]$")


@dataclass(frozen=True, slots=True)
class PageRoute:
    """One manifest entry."""

    method: str
    path: str
    handler: Callable[..., Any]


def route_path(relative: str | PurePosixPath) -> str:
    """Derive a path template from a page file path relative to the pages dir."""
    parts = list(PurePosixPath(str(relative).replace("\\", "/")).with_suffix("").parts)
    if parts and parts[-1] == "index":
        parts.pop()

    segments: list[str] = []
    for part in parts:
        m = _BRACKETED.match(part)
        segments.append(f":{m.group(1)}" if m else part)
    return "/" + "/".join(segments)


def _is_dynamic(segment: str) -> bool:
    return segment.startswith(":")


def _sort_key(path: str) -> tuple[tuple[bool, str], ...]:
    # Literal segments sort ahead of parameters so they are not shadowed
    return tuple((_is_dynamic(seg), seg) for seg in path.strip("/").split("/"))


def _load_module(file_path: Path, pages_dir: Path) -> ModuleType:
    relative = file_path.relative_to(pages_dir).with_suffix("")
    name = "_bifrost_pages." + ".".join(
        re.sub(r"\W", "_", part) for part in relative.parts
    )
    spec = importlib.util.spec_from_file_location(name, file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load page module {file_path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


def scan_pages(directory: str | Path) -> list[PageRoute]:
    """
    Import every page module under *directory* and list its routes.

    Raises whatever the page module raises on import: a broken page is a
    startup error.
    """
    pages_dir = Path(directory).resolve()
    if not pages_dir.is_dir():
        raise FileNotFoundError(f"Pages directory not found: {pages_dir}")

    files: list[tuple[str, Path]] = []
    for file_path in pages_dir.rglob("*.py"):
        relative = file_path.relative_to(pages_dir)
        if any(part.startswith("_") for part in relative.parts):
            continue
        files.append((route_path(relative.as_posix()), file_path))

    files.sort(key=lambda item: _sort_key(item[0]))

    manifest: list[PageRoute] = []
    for path, file_path in files:
        module = _load_module(file_path, pages_dir)
        for attr, method in EXPORTS:
            handler = getattr(module, attr, None)
            if callable(handler):
                manifest.append(PageRoute(method, path, handler))
        logger.debug("loaded page %s from %s", path, file_path)

    return manifest
