"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    query: str = ""
    version: str = "HTTP/1.1"


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client.

    ``content_length`` overrides the length derived from ``body`` so that
    streamed bodies and HEAD responses can still advertise the entity size.
    """

    status_line: str
    headers: dict[str, str]
    body: bytes
    close_connection: bool
    body_iter: Optional[Iterable[bytes]] = None
    content_length: Optional[int] = None

    @property
    def status_code(self) -> int:
        """Numeric status parsed from the status line, 200 when unparsable."""
        parts = self.status_line.split(" ", 2)
        if len(parts) < 2:
            return 200
        try:
            return int(parts[1])
        except ValueError:
            return 200


def should_close(headers: dict[str, str], version: str = "HTTP/1.1") -> bool:
    """Determine whether the connection should be closed after responding.

    HTTP/1.1 connections persist unless the client asks to close; older
    versions close unless the client asks for keep-alive.
    """
    connection = headers.get("connection", "").lower()
    if version == "HTTP/1.1":
        return connection == "close"
    return connection != "keep-alive"
