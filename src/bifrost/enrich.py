"""
Request enrichment.

Runs once a route has matched: binds path parameters, the bearer token
and the parsed body onto the request.
"""

import json
from typing import Any

from bifrost.exceptions import PayloadParseError
from bifrost.multipart import extract_boundary, parse_multipart
from bifrost.request import Request, parse_bearer_token, parse_query
from bifrost.routing import RouteMatch


async def enrich(request: Request, match: RouteMatch) -> Request:
    """Populate ``params``, ``bearer_token`` and ``payload`` on *request*."""
    request.params = match.params
    request.bearer_token = parse_bearer_token(request.headers.get("authorization"))
    request.payload = await read_payload(request)
    return request


async def read_payload(request: Request) -> Any:
    """
    Consume the body and decode it according to its Content-Type.

    ``application/json`` decodes as JSON, anything containing ``form``
    decodes to a flat field mapping, everything else stays raw bytes.

    Raises:
        PayloadParseError: If the body does not decode as declared.
    """
    content_type = request.content_type
    body = await request.body()

    if "application/json" in content_type:
        return _parse_json(body)
    if "form" in content_type:
        return _parse_form(body, content_type)
    return body


def _parse_json(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PayloadParseError(f"Malformed JSON body: {exc}") from exc


def _parse_form(body: bytes, content_type: str) -> dict[str, Any]:
    if "multipart/" in content_type:
        boundary = extract_boundary(content_type)
        if not boundary:
            raise PayloadParseError("Multipart body without a boundary")
        return parse_multipart(body, boundary)

    try:
        return parse_query(body.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise PayloadParseError(f"Malformed form body: {exc}") from exc
