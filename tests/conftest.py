"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port
from tests.utils.site import populate_site

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[str]


def launch_server(
    directory: Path,
    extra_args: list[str] | None = None,
    host: str = "127.0.0.1",
) -> Generator[ServerProcessInfo, None, None]:
    """Run the server in a subprocess for the duration of a fixture."""

    port = reserve_port(host)
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        str(directory),
        "--host",
        host,
        "--port",
        str(port),
        "--shutdown-grace-seconds",
        "5",
    ]
    if extra_args:
        args.extend(extra_args)

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "directory": directory,
            "process": process,
        }

        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="site_dir")
def _site_dir(tmp_path_factory: "TempPathFactory") -> Path:
    """Provide a freshly populated site directory."""

    return populate_site(tmp_path_factory.mktemp("site"))


@pytest.fixture(name="server_process")
def _server_process(site_dir: Path) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server with default policy: no hidden files, no listings."""

    yield from launch_server(site_dir)


@pytest.fixture(name="listing_server_process")
def _listing_server_process(
    site_dir: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server with directory listings enabled."""

    yield from launch_server(site_dir, ["--listings"])


@pytest.fixture(name="permissive_server_process")
def _permissive_server_process(
    site_dir: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server with hidden files and listings enabled."""

    yield from launch_server(site_dir, ["--hidden", "--listings"])


@pytest.fixture(name="caching_server_process")
def _caching_server_process(
    site_dir: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server with response caching allowed."""

    yield from launch_server(site_dir, ["--cache"])


@pytest.fixture(name="quiet_server_process")
def _quiet_server_process(
    site_dir: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server with request logging disabled."""

    yield from launch_server(site_dir, ["-q"])


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
