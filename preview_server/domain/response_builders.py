"""Pure HTTP response builders."""

from typing import Optional

from preview_server.domain.http_types import HttpRequest, HttpResponse, should_close

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def _text_error(
    status_line: str,
    message: str,
    request: Optional[HttpRequest],
    base_headers: dict[str, str],
) -> HttpResponse:
    headers = {"Content-Type": TEXT_CONTENT_TYPE, **base_headers}
    body = message.encode() + b"\n"
    close = (
        should_close(request.headers, request.version) if request is not None else True
    )
    if request is not None and request.method == "HEAD":
        return HttpResponse(status_line, headers, b"", close, content_length=len(body))
    return HttpResponse(status_line, headers, body, close)


def not_found_response(
    request: HttpRequest, base_headers: dict[str, str]
) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return _text_error(
        "HTTP/1.1 404 Not Found", "404 page not found", request, base_headers
    )


def forbidden_response(
    request: Optional[HttpRequest], base_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 403 response honoring the caller's connection preference."""
    return _text_error("HTTP/1.1 403 Forbidden", "403 Forbidden", request, base_headers)


def internal_error_response(
    request: HttpRequest, base_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 500 response for filesystem failures."""
    return _text_error(
        "HTTP/1.1 500 Internal Server Error",
        "500 Internal Server Error",
        request,
        base_headers,
    )


def bad_request_response(
    request: Optional[HttpRequest], base_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return _text_error(
        "HTTP/1.1 400 Bad Request", "400 Bad Request", request, base_headers
    )


def entity_too_large_response(base_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(
        "HTTP/1.1 413 Payload Too Large", base_headers.copy(), b"", True
    )


def method_not_allowed_response(
    request: HttpRequest, base_headers: dict[str, str], allowed_methods
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = _text_error(
        "HTTP/1.1 405 Method Not Allowed",
        "405 Method Not Allowed",
        request,
        base_headers,
    )
    response.headers["Allow"] = ", ".join(sorted(allowed_methods))
    return response


def redirect_response(
    request: HttpRequest, location: str, base_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 301 pointing the client at ``location``."""
    headers = {"Location": location, **base_headers}
    return HttpResponse(
        "HTTP/1.1 301 Moved Permanently",
        headers,
        b"",
        should_close(request.headers, request.version),
    )


def draining_response(base_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is shutting down."""
    headers = {"Connection": "close", **base_headers}
    return HttpResponse(
        "HTTP/1.1 503 Service Unavailable",
        headers,
        b"draining",
        True,
    )
