"""Static file preview server entry point."""

import sys
from typing import Optional

from preview_server.bootstrap.config import (
    ListenAddress,
    StartupError,
    load_settings,
    parse_cli_args,
)
from preview_server.bootstrap.console import print_banner, print_startup_error
from preview_server.bootstrap.logging_setup import configure_logging
from preview_server.bootstrap.network import browse_url
from preview_server.bootstrap.socket_factory import create_server_socket
from preview_server.lifecycle.signals import install_interrupt_handler
from preview_server.lifecycle.state import ServerLifecycle
from preview_server.transport.accept_loop import run_server


def main(argv: Optional[list[str]] = None) -> int:
    """Validate settings, bind the socket and serve until interrupted."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination)

    try:
        settings = load_settings(args)
        server_socket = create_server_socket(settings.address)
    except StartupError as error:
        print_startup_error(str(error))
        return 1

    lifecycle = ServerLifecycle()
    install_interrupt_handler(lifecycle)

    bound_port = server_socket.getsockname()[1]
    print_banner(browse_url(ListenAddress(settings.address.host, bound_port)))
    run_server(server_socket, settings, lifecycle)
    return 0


def cli() -> None:
    """Console script wrapper turning the return code into the exit status."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
