"""Interrupt signal handling for graceful shutdown."""

import signal

from preview_server.bootstrap.console import print_shutdown_notice
from preview_server.domain.correlation_id import get_logger
from preview_server.lifecycle.state import ServerLifecycle

SIGNAL_LOGGER = get_logger("lifecycle.signals")


def install_interrupt_handler(lifecycle: ServerLifecycle) -> None:
    """Begin draining on SIGINT; a second SIGINT is ignored while draining."""

    def shutdown_handler(signum: int, _frame) -> None:
        if lifecycle.is_draining():
            return
        SIGNAL_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "signal_received", "signal": signum},
        )
        print_shutdown_notice()
        lifecycle.begin_draining()

    signal.signal(signal.SIGINT, shutdown_handler)
