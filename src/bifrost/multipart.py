"""
Multipart form-data parsing.

Provides ``UploadFile`` for file parts and ``parse_multipart`` to decode a
buffered ``multipart/form-data`` body into a flat field mapping.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field


@dataclass
class UploadFile:
    """
    A file part from a multipart body.

    Attributes:
        filename: Original filename from the client.
        content_type: MIME type declared by the client.
        headers: Raw headers for this part.
        file: In-memory buffer holding the upload contents.
    """

    filename: str
    content_type: str = "application/octet-stream"
    headers: dict[str, str] = field(default_factory=dict)
    file: io.BytesIO = field(default_factory=io.BytesIO, repr=False)

    async def read(self, size: int = -1) -> bytes:
        return self.file.read(size)

    async def seek(self, offset: int) -> None:
        self.file.seek(offset)

    @property
    def size(self) -> int:
        """Total size of the upload in bytes."""
        return len(self.file.getbuffer())

    def close(self) -> None:
        self.file.close()


def extract_boundary(content_type: str) -> str | None:
    """Return the ``boundary`` parameter of a Content-Type header."""
    for part in content_type.split(";"):
        part = part.strip()
        if part.lower().startswith("boundary="):
            return part.split("=", 1)[1].strip('"')
    return None


def _parse_content_disposition(header: str) -> dict[str, str]:
    """Parse a ``Content-Disposition`` header into key/value pairs."""
    params: dict[str, str] = {}
    # The first token is the disposition type ("form-data")
    for part in header.split(";")[1:]:
        part = part.strip()
        if "=" not in part:
            continue
        key, _, val = part.partition("=")
        params[key.strip()] = val.strip().strip('"')
    return params


def parse_multipart(body: bytes, boundary: str) -> dict[str, str | UploadFile]:
    """
    Parse a ``multipart/form-data`` body.

    Text parts map to ``str``, file parts to :class:`UploadFile`. When a
    field name repeats, the last part wins.
    """
    fields: dict[str, str | UploadFile] = {}

    delimiter = f"--{boundary}".encode()
    end_delimiter = f"--{boundary}--".encode()

    for part in body.split(delimiter):
        # Preamble and closing delimiter carry no fields
        stripped = part.strip(b"\r\n")
        if not stripped or stripped == b"--" or stripped.startswith(end_delimiter):
            continue

        header_end = part.find(b"\r\n\r\n")
        if header_end == -1:
            continue

        raw_headers = part[:header_end]
        part_body = part[header_end + 4:]
        if part_body.endswith(b"\r\n"):
            part_body = part_body[:-2]

        part_headers: dict[str, str] = {}
        for line in raw_headers.split(b"\r\n"):
            line_str = line.decode("utf-8", errors="replace").strip()
            if ":" in line_str:
                hname, _, hval = line_str.partition(":")
                part_headers[hname.strip().lower()] = hval.strip()

        disp_params = _parse_content_disposition(
            part_headers.get("content-disposition", "")
        )
        field_name = disp_params.get("name", "")

        if "filename" in disp_params:
            fields[field_name] = UploadFile(
                filename=disp_params["filename"],
                content_type=part_headers.get("content-type", "application/octet-stream"),
                headers=part_headers,
                file=io.BytesIO(part_body),
            )
        else:
            fields[field_name] = part_body.decode("utf-8", errors="replace")

    return fields
