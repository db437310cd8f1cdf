"""Request routing logic."""

import logging

from preview_server.bootstrap.config import PreviewConfig
from preview_server.domain.correlation_id import get_logger
from preview_server.domain.http_types import HttpRequest, HttpResponse
from preview_server.domain.sandbox import FileSystemRoot
from preview_server.handlers.file_handler import file_response

ROUTER_LOGGER = get_logger("pipeline.router")


def route_request(
    request: HttpRequest,
    root: FileSystemRoot,
    config: PreviewConfig,
) -> HttpResponse:
    """Route the request to the static file handler and return a response."""
    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched",
            extra={"event": "route_matched", "route": request.path},
        )
    return file_response(request, root, config)
