"""Static file serving handlers."""

import logging
import mimetypes
import urllib.parse
from email.utils import formatdate
from pathlib import Path

from preview_server.bootstrap.config import SECURITY_HEADERS, PreviewConfig
from preview_server.domain.correlation_id import get_logger
from preview_server.domain.http_types import HttpRequest, HttpResponse, should_close
from preview_server.domain.listing import (
    LISTING_CONTENT_TYPE,
    list_directory,
    render_listing,
)
from preview_server.domain.resolver import (
    NotFound,
    PermissionDenied,
    ResolutionIOError,
    ResolvedFile,
    resolve,
)
from preview_server.domain.response_builders import (
    forbidden_response,
    internal_error_response,
    not_found_response,
    redirect_response,
)
from preview_server.domain.sandbox import FileSystemRoot

FILE_LOGGER = get_logger("handlers.file")


def base_headers(config: PreviewConfig) -> dict[str, str]:
    """Headers applied to every response under the given configuration."""
    headers = SECURITY_HEADERS.copy()
    if config.no_cache:
        headers["Cache-Control"] = "no-cache"
    return headers


def _content_type_for_path(filepath: Path) -> str:
    mime_type, _ = mimetypes.guess_type(filepath.as_posix())
    if mime_type is None:
        return "application/octet-stream"
    if mime_type.startswith("text/"):
        return f"{mime_type}; charset=utf-8"
    return mime_type


def _file_response(
    request: HttpRequest, resolved: ResolvedFile, headers: dict[str, str]
) -> HttpResponse:
    headers = {
        "Content-Type": _content_type_for_path(resolved.path),
        "Last-Modified": formatdate(resolved.modified, usegmt=True),
        **headers,
    }
    close = should_close(request.headers, request.version)
    if request.method == "HEAD":
        resolved.close()
        return HttpResponse(
            "HTTP/1.1 200 OK", headers, b"", close, content_length=resolved.size
        )
    return HttpResponse(
        "HTTP/1.1 200 OK",
        headers,
        b"",
        close,
        body_iter=resolved.stream(),
        content_length=resolved.size,
    )


def _listing_response(
    request: HttpRequest,
    resolved: ResolvedFile,
    config: PreviewConfig,
    headers: dict[str, str],
) -> HttpResponse:
    body = render_listing(list_directory(resolved.path, config))
    headers = {"Content-Type": LISTING_CONTENT_TYPE, **headers}
    close = should_close(request.headers, request.version)
    if request.method == "HEAD":
        return HttpResponse(
            "HTTP/1.1 200 OK", headers, b"", close, content_length=len(body)
        )
    return HttpResponse("HTTP/1.1 200 OK", headers, body, close)


def _directory_location(request: HttpRequest) -> str:
    location = urllib.parse.quote(request.path.rsplit("/", 1)[-1]) + "/"
    if request.query:
        location = f"{location}?{request.query}"
    return location


def file_response(
    request: HttpRequest, root: FileSystemRoot, config: PreviewConfig
) -> HttpResponse:
    """Resolve the request path under the root and build the matching response."""
    headers = base_headers(config)
    try:
        resolved = resolve(root, config, request.path)
    except PermissionDenied:
        FILE_LOGGER.warning(
            "Forbidden path access blocked",
            extra={
                "event": "forbidden_path",
                "path": request.path,
                "method": request.method,
            },
        )
        return forbidden_response(request, headers)
    except NotFound:
        FILE_LOGGER.info(
            "File not found",
            extra={
                "event": "file_not_found",
                "path": request.path,
                "method": request.method,
            },
        )
        return not_found_response(request, headers)
    except ResolutionIOError as error:
        FILE_LOGGER.error(
            "File access failed",
            extra={
                "event": "file_io_error",
                "path": request.path,
                "error_type": type(error.error).__name__,
                "errno": error.error.errno,
            },
        )
        return internal_error_response(request, headers)

    if resolved.from_directory and not request.path.endswith("/"):
        resolved.close()
        return redirect_response(request, _directory_location(request), headers)

    if resolved.for_listing:
        try:
            return _listing_response(request, resolved, config, headers)
        except OSError as error:
            FILE_LOGGER.error(
                "Directory listing failed",
                extra={
                    "event": "file_io_error",
                    "path": request.path,
                    "error_type": type(error).__name__,
                    "errno": error.errno,
                },
            )
            return internal_error_response(request, headers)

    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File resolved",
            extra={
                "event": "file_resolved",
                "path": resolved.path.as_posix(),
                "bytes_out": resolved.size,
            },
        )
    return _file_response(request, resolved, headers)
