"""
Handler return value normalization.

Explicit :class:`~bifrost.response.Response` objects pass through as they
are. Bare values are converted by inspecting their shape:

* elements and ``{"type", "props"}`` mappings render to HTML,
* other mappings, lists and dataclass instances become JSON,
* strings that look like markup become HTML, other strings plain text,
* ``None`` becomes an empty 204,
* anything else is coerced with ``str()`` into plain text.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any

from bifrost.element import ELEMENT_TYPES, is_element_mapping, render
from bifrost.response import HTMLResponse, JSONResponse, Response, TextResponse


def looks_like_html(text: str) -> bool:
    """True if *text* starts like a markup document, excluding bare SVG."""
    trimmed = text.strip()
    if len(trimmed) < 2 or trimmed[0] != "<" or trimmed.startswith("<svg"):
        return False
    second = trimmed[1]
    return second == "!" or (second.isascii() and second.isalpha())


def normalize(value: Any) -> Response:
    """Convert a handler's return value into a response."""
    if isinstance(value, Response):
        return value

    if isinstance(value, ELEMENT_TYPES) or is_element_mapping(value):
        return HTMLResponse(render(value))

    if isinstance(value, Mapping):
        return JSONResponse(dict(value))

    if isinstance(value, (list, tuple)):
        return JSONResponse(list(value))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return JSONResponse(dataclasses.asdict(value))

    if isinstance(value, str):
        if looks_like_html(value):
            return HTMLResponse(value)
        return TextResponse(value)

    if value is None:
        return TextResponse("", status_code=204)

    if isinstance(value, (bytes, bytearray)):
        return TextResponse(bytes(value))

    return TextResponse(str(value))
