"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


MAX_BODY_BYTES = _env_int("PREVIEW_SERVER_MAX_BODY_BYTES", 1024 * 1024)
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_SOCKET_TIMEOUT = _env_int("PREVIEW_SERVER_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("PREVIEW_SERVER_SHUTDOWN_GRACE_SECONDS", 30)
DEFAULT_HIDDEN_FILES = _env_bool("PREVIEW_SERVER_HIDDEN", False)
DEFAULT_DIRECTORY_LISTINGS = _env_bool("PREVIEW_SERVER_LISTINGS", False)

HEADER_DELIMITER = b"\r\n\r\n"
ALLOWED_METHODS = {"GET", "HEAD"}
WILDCARD_HOST = "0.0.0.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
}


class StartupError(Exception):
    """Raised when the server cannot start with the supplied settings."""


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration including timeouts and shutdown settings."""

    socket_timeout: int
    shutdown_grace_seconds: int


@dataclass(frozen=True)
class PreviewConfig:
    """File visibility and output policy, fixed for the life of the process."""

    hidden_files_allowed: bool = False
    directory_listings_enabled: bool = False
    logging_enabled: bool = True
    no_cache: bool = True


@dataclass(frozen=True)
class ListenAddress:
    """Host and port the server binds to."""

    host: str
    port: int

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


@dataclass(frozen=True)
class Settings:
    """Everything validated from the command line before the server starts."""

    address: ListenAddress
    directory: Path
    preview: PreviewConfig
    server: ServerConfig


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise StartupError(f"invalid port {value!r}") from exc
    if not 0 <= port <= 65535:
        raise StartupError(f"port {port} out of range")
    return port


def parse_listen_address(value: str, default_host: str = DEFAULT_HOST) -> ListenAddress:
    """Parse ``host:port``, ``[v6]:port``, ``:port`` or a bare port.

    ``:port`` binds every interface; a bare port keeps ``default_host``.
    """
    value = value.strip()
    if not value:
        raise StartupError("empty listen address")
    if value.startswith("["):
        host, sep, port = value[1:].partition("]:")
        if not sep or not host:
            raise StartupError(f"invalid listen address {value!r}")
        return ListenAddress(host, _parse_port(port))
    if ":" not in value:
        return ListenAddress(default_host, _parse_port(value))
    host, _, port = value.rpartition(":")
    if ":" in host:
        raise StartupError(f"invalid listen address {value!r}")
    return ListenAddress(host or WILDCARD_HOST, _parse_port(port))


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(
        prog="serve",
        usage="serve [flags] [directory]",
        description="Preview a directory of static files over HTTP",
    )
    parser.add_argument(
        "directory", nargs="?", default=".", help="Directory to serve"
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Host to listen on")
    parser.add_argument("--port", default=str(DEFAULT_PORT), help="Port to listen on")
    parser.add_argument(
        "-l",
        "--listen",
        help="Combined listen address: host:port, :port or a bare port",
    )
    parser.add_argument(
        "--hidden",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_HIDDEN_FILES,
        help="Serve files and directories whose names start with a dot",
    )
    parser.add_argument(
        "--listings",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_DIRECTORY_LISTINGS,
        help="List directories that have no index.html",
    )
    parser.add_argument(
        "--cache",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Allow caching (by default responses carry Cache-Control: no-cache)",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Disable request logging"
    )
    default_log_level = os.getenv("PREVIEW_SERVER_LOG_LEVEL", "WARNING").upper()
    default_destination = os.getenv("PREVIEW_SERVER_LOG_DESTINATION", "stderr")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout, stderr or a file path",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Validate parsed arguments and freeze them into ``Settings``."""
    if args.listen:
        address = parse_listen_address(args.listen, args.host)
    else:
        address = ListenAddress(args.host, _parse_port(args.port))
    if not address.host:
        raise StartupError("empty listen host")

    directory = Path(args.directory)
    if not directory.exists():
        raise StartupError("provided directory could not be found")
    if not directory.is_dir():
        raise StartupError("provided path is not a directory")

    return Settings(
        address=address,
        directory=directory,
        preview=PreviewConfig(
            hidden_files_allowed=args.hidden,
            directory_listings_enabled=args.listings,
            logging_enabled=not args.quiet,
            no_cache=not args.cache,
        ),
        server=ServerConfig(
            socket_timeout=args.socket_timeout,
            shutdown_grace_seconds=args.shutdown_grace_seconds,
        ),
    )
