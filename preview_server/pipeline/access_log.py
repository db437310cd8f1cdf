"""Colorized per-request access log written to the console."""

import logging
import sys
import time
from typing import Callable, Optional, TextIO

from preview_server.domain.http_types import HttpRequest, HttpResponse

ACCESS_LOGGER_NAME = "preview_server.access"
TIME_FORMAT = "%H:%M:%S"

GREY = "\033[90m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"


def status_color(status: int) -> str:
    """Pick the ANSI color for a status code."""
    if status >= 400:
        return RED
    if status >= 300:
        return YELLOW
    return GREEN


class AccessLineFormatter(logging.Formatter):
    """Render access records as ``[time] status path (elapsed)`` lines."""

    def __init__(self) -> None:
        super().__init__(datefmt=TIME_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        status = getattr(record, "status_code", 200)
        path = getattr(record, "path", "-")
        duration_ms = getattr(record, "duration_ms", 0.0)
        timestamp = self.formatTime(record, self.datefmt)
        return (
            f"{GREY}[{timestamp}]{RESET} "
            f"{status_color(status)}{status}{RESET} "
            f"{path} {GREY}({duration_ms:.2f}ms){RESET}"
        )


class AccessLog:
    """Emits one console line per served request when enabled."""

    def __init__(self, enabled: bool, stream: Optional[TextIO] = None) -> None:
        self.enabled = enabled
        self._logger = logging.getLogger(ACCESS_LOGGER_NAME)
        if not enabled:
            return
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        for handler in list(self._logger.handlers):
            handler.close()
        self._logger.handlers.clear()
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(AccessLineFormatter())
        self._logger.addHandler(handler)

    def record(self, path: str, status: int, started: float) -> None:
        """Log a finished request that began at ``started`` (``perf_counter``)."""
        if not self.enabled:
            return
        duration_ms = (time.perf_counter() - started) * 1000
        self._logger.info(
            "%s %s",
            status,
            path,
            extra={"status_code": status, "path": path, "duration_ms": duration_ms},
        )


def with_access_log(
    respond: Callable[[HttpRequest], HttpResponse],
    deliver: Callable[[HttpResponse], None],
    access_log: AccessLog,
) -> Callable[[HttpRequest], HttpResponse]:
    """Compose building and sending a response into one serving callable.

    When logging is enabled each built response is timed and logged once
    delivery ends, including when the client goes away mid-transfer.
    """
    if not access_log.enabled:

        def serve(request: HttpRequest) -> HttpResponse:
            response = respond(request)
            deliver(response)
            return response

        return serve

    def logged(request: HttpRequest) -> HttpResponse:
        started = time.perf_counter()
        response = respond(request)
        try:
            deliver(response)
        finally:
            access_log.record(request.path, response.status_code, started)
        return response

    return logged

