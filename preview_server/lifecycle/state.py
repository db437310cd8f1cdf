"""Server lifecycle state management."""

import socket
import threading
import time

from preview_server.domain.correlation_id import get_logger

LIFECYCLE_LOGGER = get_logger("lifecycle")


class ServerLifecycle:
    """Manages server lifecycle state, worker threads and open connections."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._draining_event = threading.Event()
        self._workers: set[threading.Thread] = set()
        self._connections: dict[socket.socket, bool] = {}

    def should_stop(self) -> bool:
        """Check if the server should stop accepting new connections."""
        return self._stop_event.is_set()

    def is_draining(self) -> bool:
        """Check if the server is in draining mode."""
        return self._draining_event.is_set()

    def register_worker(self, thread: threading.Thread) -> None:
        """Register a worker thread for tracking."""
        with self._lock:
            self._workers.add(thread)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        """Remove a worker thread from tracking."""
        with self._lock:
            self._workers.discard(thread)

    def register_connection(self, client_socket: socket.socket) -> None:
        """Track an open client connection, initially busy."""
        with self._lock:
            self._connections[client_socket] = False

    def release_connection(self, client_socket: socket.socket) -> None:
        """Stop tracking a client connection."""
        with self._lock:
            self._connections.pop(client_socket, None)

    def mark_idle(self, client_socket: socket.socket) -> bool:
        """Flag a connection as waiting for its next request.

        Returns False when draining has begun and the connection should close.
        """
        with self._lock:
            if self._draining_event.is_set():
                return False
            if client_socket in self._connections:
                self._connections[client_socket] = True
            return True

    def mark_busy(self, client_socket: socket.socket) -> None:
        """Flag a connection as serving a request."""
        with self._lock:
            if client_socket in self._connections:
                self._connections[client_socket] = False

    def begin_draining(self) -> None:
        """Stop accepting connections and hang up on idle keep-alive clients."""
        with self._lock:
            self._draining_event.set()
            self._stop_event.set()
            idle = [sock for sock, is_idle in self._connections.items() if is_idle]
        for client_socket in idle:
            _shutdown_quietly(client_socket)
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "draining_started", "idle_connections": len(idle)},
        )

    def force_close_connections(self) -> int:
        """Shut down every tracked connection; return how many were open."""
        with self._lock:
            open_connections = list(self._connections)
        for client_socket in open_connections:
            _shutdown_quietly(client_socket)
        return len(open_connections)

    def wait_for_workers(self, timeout: float) -> bool:
        """Wait for all worker threads to complete within the timeout."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                self._workers = {w for w in self._workers if w.is_alive()}
                active_workers = list(self._workers)
            if not active_workers:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "shutdown_timeout",
                        "remaining_workers": len(active_workers),
                    },
                )
                return False
            for worker in active_workers:
                worker.join(timeout=min(0.1, remaining))
                if time.monotonic() >= deadline:
                    break


def _shutdown_quietly(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_RDWR)
    except OSError as error:
        LIFECYCLE_LOGGER.debug(
            "Connection already closed",
            extra={"event": "shutdown_skipped", "error_type": type(error).__name__},
        )
