"""Shared fixtures for unit tests."""

import logging

import pytest

from preview_server.bootstrap.config import PreviewConfig
from preview_server.domain.sandbox import FileSystemRoot
from tests.utils.site import populate_site


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("preview_server")
    old_propagate = logger.propagate
    old_level = logger.level
    old_handlers = list(logger.handlers)
    logger.propagate = True
    yield
    for handler in logger.handlers:
        if handler not in old_handlers:
            handler.close()
    logger.handlers[:] = old_handlers
    logger.setLevel(old_level)
    logger.propagate = old_propagate


@pytest.fixture(name="site_root")
def fixture_site_root(tmp_path) -> FileSystemRoot:
    """A FileSystemRoot over the sample static site."""
    return FileSystemRoot.from_directory(str(populate_site(tmp_path)))


@pytest.fixture(name="strict_config")
def fixture_strict_config() -> PreviewConfig:
    """Hidden files blocked, listings disabled."""
    return PreviewConfig()


@pytest.fixture(name="open_config")
def fixture_open_config() -> PreviewConfig:
    """Hidden files allowed, listings enabled."""
    return PreviewConfig(hidden_files_allowed=True, directory_listings_enabled=True)
