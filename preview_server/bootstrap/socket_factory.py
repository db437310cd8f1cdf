"""Listening socket creation."""

import socket

from preview_server.bootstrap.config import ListenAddress, StartupError
from preview_server.domain.correlation_id import get_logger

SOCKET_LOGGER = get_logger("socket")


def create_server_socket(address: ListenAddress) -> socket.socket:
    """Bind the listening socket, translating bind failures into ``StartupError``."""
    family = socket.AF_INET6 if ":" in address.host else socket.AF_INET
    try:
        server_socket = socket.create_server(
            (address.host, address.port), family=family
        )
    except (OSError, OverflowError) as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": address.host,
                "port": address.port,
                "error_type": type(error).__name__,
            },
        )
        raise StartupError(f"could not listen on {address}: {error}") from error
    server_socket.settimeout(0.5)
    return server_socket
