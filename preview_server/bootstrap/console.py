"""Human-facing console output: startup banner and shutdown notice."""

import sys
from typing import Optional, TextIO

UNDERLINE = "\033[4m"
RESET = "\033[0m"


def print_banner(url: str, stream: Optional[TextIO] = None) -> None:
    """Announce the browsing URL once the socket is listening."""
    out = stream or sys.stdout
    out.write(f"\nServer started at {UNDERLINE}{url}{RESET}\n\n")
    out.flush()


def print_shutdown_notice(stream: Optional[TextIO] = None) -> None:
    """Tell the user a graceful shutdown has begun."""
    out = stream or sys.stdout
    out.write("\n\nShutting down...\n\n")
    out.flush()


def print_startup_error(message: str, stream: Optional[TextIO] = None) -> None:
    """Report a fatal startup problem."""
    out = stream or sys.stdout
    out.write(f"Error: {message}\n")
    out.flush()
