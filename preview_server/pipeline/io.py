"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from typing import Optional, Tuple

from preview_server.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from preview_server.domain.correlation_id import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from preview_server.domain.http_types import HttpRequest, HttpResponse
from preview_server.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = get_logger("io")

MAX_HEADER_BYTES = 64 * 1024


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, str, str]:
    """Parse the method, decoded path, raw query and version from the request line."""
    try:
        method, target, version = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path) or "/"
    return method, path, parsed_target.query, version


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk
        if len(buffer) > MAX_HEADER_BYTES:
            raise ValueError("Header block too large")

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode().split("\r\n")
    method, path, query, version = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request", extra={"method": method, "path": path}
        )
    return HttpRequest(method, path, headers, body, query, version), leftover


def _close_body_iter(response: HttpResponse) -> None:
    close = getattr(response.body_iter, "close", None)
    if close is not None:
        close()


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket.

    A streamed body is always closed afterwards, including when the client
    goes away mid-transfer.
    """
    try:
        headers = dict(response.headers)

        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Request-ID"] = correlation_id

        if response.content_length is not None:
            headers["Content-Length"] = str(response.content_length)
        else:
            headers["Content-Length"] = str(len(response.body))
        if response.close_connection:
            headers["Connection"] = "close"
        header_lines = [response.status_line]
        header_lines.extend(f"{name}: {value}" for name, value in headers.items())
        header_block = "\r\n".join(header_lines).encode() + b"\r\n\r\n"
        if response.body_iter is None:
            client_socket.sendall(header_block + response.body)
        else:
            client_socket.sendall(header_block)
            for chunk in response.body_iter:
                client_socket.sendall(chunk)
    finally:
        _close_body_iter(response)
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={"status_code": response.status_code},
        )
