"""Request validation utilities for the preview server."""

from preview_server.domain.http_types import HttpRequest
from preview_server.domain.response_builders import (
    bad_request_response,
    method_not_allowed_response,
)


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


def enforce_allowed_method(
    request: HttpRequest,
    allowed_methods: set[str],
    base_headers: dict[str, str],
):
    """Ensure the HTTP method is part of the supported allowlist."""
    if request.method in allowed_methods:
        return None

    return method_not_allowed_response(request, base_headers, allowed_methods)


def enforce_well_formed_path(request: HttpRequest, base_headers: dict[str, str]):
    """Reject paths that are not absolute or that embed NUL bytes."""
    if not request.path.startswith("/") or "\x00" in request.path:
        return bad_request_response(request, base_headers)
    return None


def validate_request(
    request: HttpRequest,
    allowed_methods: set[str],
    base_headers: dict[str, str],
):
    """Return an error response when the request fails validation checks."""
    method_error = enforce_allowed_method(request, allowed_methods, base_headers)
    if method_error is not None:
        return method_error

    return enforce_well_formed_path(request, base_headers)
