"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from preview_server.bootstrap.config import (
    ALLOWED_METHODS,
    MAX_BODY_BYTES,
    SECURITY_HEADERS,
)
from preview_server.domain.correlation_id import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)
from preview_server.domain.http_types import HttpRequest, HttpResponse
from preview_server.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
)
from preview_server.handlers.file_handler import base_headers
from preview_server.lifecycle.state import ServerLifecycle
from preview_server.pipeline.access_log import AccessLog, with_access_log
from preview_server.pipeline.io import receive_request, send_response
from preview_server.pipeline.router import route_request
from preview_server.pipeline.validation import RequestEntityTooLarge, validate_request
from preview_server.transport.context import WorkerContext

WORKER_LOGGER = get_logger("transport.worker")


def _read_request_with_validation(
    client_socket: socket.socket,
    buffer: bytes,
    client_addr_str: str,
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read a request from the socket while enforcing size limits."""

    try:
        request, buffer = receive_request(client_socket, buffer)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={
                "event": "body_size_exceeded",
                "client": client_addr_str,
                "limit": MAX_BODY_BYTES,
            },
        )
        send_response(client_socket, entity_too_large_response(SECURITY_HEADERS))
        return None, b"", True
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response(None, SECURITY_HEADERS))
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return None, buffer, True
    return request, buffer, False


def _build_server(
    context: WorkerContext, client_socket: socket.socket
) -> Callable[[HttpRequest], HttpResponse]:
    """Return the per-connection callable that answers and sends one request."""
    headers = base_headers(context.preview)
    lifecycle = context.lifecycle

    def respond(request: HttpRequest) -> HttpResponse:
        response = validate_request(request, ALLOWED_METHODS, headers)
        if response is None:
            response = route_request(request, context.root, context.preview)
        if lifecycle is not None and lifecycle.is_draining():
            response.close_connection = True
        return response

    def deliver(response: HttpResponse) -> None:
        send_response(client_socket, response)

    access_log = context.access_log or AccessLog(False)
    return with_access_log(respond, deliver, access_log)


def _prepare_worker(
    context: WorkerContext,
    client_socket: socket.socket,
    current_thread: threading.Thread,
) -> Optional[ServerLifecycle]:
    lifecycle = context.lifecycle
    if lifecycle is not None:
        lifecycle.register_worker(current_thread)
        lifecycle.register_connection(client_socket)
    if context.config is not None:
        client_socket.settimeout(context.config.socket_timeout)
    return lifecycle


@dataclass
class _WorkerResources:
    thread: threading.Thread
    client_socket: socket.socket
    client_addr_str: str


def _cleanup_worker(
    lifecycle: Optional[ServerLifecycle],
    resources: _WorkerResources,
) -> None:
    if lifecycle is not None:
        lifecycle.release_connection(resources.client_socket)
        lifecycle.cleanup_worker(resources.thread)

    try:
        resources.client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    resources.client_socket.close()

    WORKER_LOGGER.debug(
        "Socket closed",
        extra={"event": "socket_closed", "client": resources.client_addr_str},
    )
    clear_correlation_id()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    buffer = b""
    current_thread = threading.current_thread()
    lifecycle = _prepare_worker(context, client_socket, current_thread)
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    resources = _WorkerResources(current_thread, client_socket, client_addr_str)
    serve = _build_server(context, client_socket)

    try:
        while True:
            set_correlation_id(generate_correlation_id())

            if not buffer and lifecycle is not None:
                if not lifecycle.mark_idle(client_socket):
                    break

            request, buffer, should_terminate = _read_request_with_validation(
                client_socket,
                buffer,
                client_addr_str,
            )
            if lifecycle is not None:
                lifecycle.mark_busy(client_socket)
            if should_terminate or request is None:
                break

            WORKER_LOGGER.debug(
                "Request line parsed",
                extra={
                    "event": "request_line_parsed",
                    "method": request.method,
                    "route": request.path,
                },
            )

            response = serve(request)
            clear_correlation_id()

            if response.close_connection:
                break
    except (
        ConnectionError,
        TimeoutError,
        OSError,
        UnicodeDecodeError,
    ) as error:
        WORKER_LOGGER.info(
            "Client connection ended with error",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
    finally:
        _cleanup_worker(lifecycle, resources)
