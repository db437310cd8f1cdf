"""Main connection acceptance loop."""

import socket
import threading

from preview_server.bootstrap.config import SECURITY_HEADERS, Settings
from preview_server.domain.correlation_id import get_logger
from preview_server.domain.response_builders import draining_response
from preview_server.domain.sandbox import FileSystemRoot
from preview_server.lifecycle.state import ServerLifecycle
from preview_server.pipeline.access_log import AccessLog
from preview_server.pipeline.io import send_response
from preview_server.transport.context import WorkerContext
from preview_server.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("transport.accept")


def build_worker_context(settings: Settings, lifecycle: ServerLifecycle) -> WorkerContext:
    """Assemble the immutable per-process dependencies handed to every worker."""
    return WorkerContext(
        root=FileSystemRoot.from_directory(str(settings.directory)),
        preview=settings.preview,
        lifecycle=lifecycle,
        config=settings.server,
        access_log=AccessLog(settings.preview.logging_enabled),
    )


def _reject_while_draining(client_socket: socket.socket) -> None:
    try:
        send_response(client_socket, draining_response(SECURITY_HEADERS))
    except OSError as error:
        ACCEPT_LOGGER.debug(
            "Could not notify client of shutdown",
            extra={"event": "draining_reject_failed", "error_type": type(error).__name__},
        )
    finally:
        client_socket.close()


def serve_forever(
    server_socket: socket.socket,
    context: WorkerContext,
    lifecycle: ServerLifecycle,
    grace_seconds: float,
) -> None:
    """Accept connections until draining begins, then wait for workers to finish.

    Connections still open after ``grace_seconds`` are forcibly closed.
    """
    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if lifecycle.should_stop():
                    break
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                _reject_while_draining(client_socket)
                continue

            ACCEPT_LOGGER.debug(
                "Client connection accepted",
                extra={
                    "event": "client_accepted",
                    "client": f"{client_address[0]}:{client_address[1]}",
                },
            )
            thread = threading.Thread(
                target=handle_client,
                args=(client_socket, client_address, context),
                daemon=False,
            )
            thread.start()
    finally:
        try:
            server_socket.close()
        except OSError as error:
            ACCEPT_LOGGER.warning(
                "Failed to close listening socket",
                extra={"event": "close_failed", "error_type": type(error).__name__},
            )
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={"event": "shutdown_waiting", "grace_seconds": grace_seconds},
        )
        if not lifecycle.wait_for_workers(grace_seconds):
            closed = lifecycle.force_close_connections()
            ACCEPT_LOGGER.warning(
                "Forced remaining connections closed",
                extra={"event": "connections_forced_closed", "remaining_workers": closed},
            )
            lifecycle.wait_for_workers(1.0)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})


def run_server(
    server_socket: socket.socket, settings: Settings, lifecycle: ServerLifecycle
) -> None:
    """Serve on a bound socket until a graceful shutdown completes."""
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": settings.address.host,
            "port": settings.address.port,
            "directory": str(settings.directory),
            "hidden_files_allowed": settings.preview.hidden_files_allowed,
            "directory_listings_enabled": settings.preview.directory_listings_enabled,
        },
    )
    context = build_worker_context(settings, lifecycle)
    serve_forever(
        server_socket, context, lifecycle, settings.server.shutdown_grace_seconds
    )
