"""Unit tests for request path resolution."""

import errno

import pytest

from preview_server.bootstrap.config import PreviewConfig
from preview_server.domain import resolver
from preview_server.domain.resolver import (
    NotFound,
    PermissionDenied,
    FileTruncated,
    ResolutionIOError,
    resolve,
)


def _read(resolved) -> bytes:
    with resolved:
        return b"".join(resolved.stream())


def test_extensionless_path_falls_back_to_html(site_root, strict_config):
    """``/about`` serves ``about.html`` when no ``about`` exists."""
    resolved = resolve(site_root, strict_config, "/about")
    assert resolved.path.name == "about.html"
    assert not resolved.is_directory
    assert _read(resolved) == b"<h1>about</h1>"


def test_explicit_html_path_is_served(site_root, strict_config):
    """The real file name resolves directly."""
    resolved = resolve(site_root, strict_config, "/about.html")
    assert _read(resolved) == b"<h1>about</h1>"


def test_fallback_applies_to_nested_paths(site_root, strict_config):
    """Nested extensionless paths also receive the html fallback."""
    resolved = resolve(site_root, strict_config, "/docs/nested/page")
    assert resolved.path.name == "page.html"
    resolved.close()


def test_missing_path_is_not_found(site_root, strict_config):
    """Neither the path nor its html twin exist."""
    with pytest.raises(NotFound):
        resolve(site_root, strict_config, "/missing")


def test_no_fallback_when_final_segment_has_extension(site_root, strict_config):
    """A dotted final segment never gains an html suffix."""
    (site_root.directory / "release.v2.html").write_text("v2")
    with pytest.raises(NotFound):
        resolve(site_root, strict_config, "/release.v2")


def test_hidden_path_denied_when_disallowed(site_root, strict_config):
    """Dot-prefixed segments are rejected before touching disk."""
    with pytest.raises(PermissionDenied):
        resolve(site_root, strict_config, "/secret/.env")
    with pytest.raises(PermissionDenied):
        resolve(site_root, strict_config, "/.git/config")


def test_hidden_check_precedes_existence(site_root, strict_config):
    """Missing hidden files are still reported as forbidden."""
    with pytest.raises(PermissionDenied):
        resolve(site_root, strict_config, "/.nothing-here")


def test_hidden_path_served_when_allowed(site_root, open_config):
    """With hidden files allowed the dot check is skipped entirely."""
    resolved = resolve(site_root, open_config, "/secret/.env")
    assert _read(resolved) == b"TOKEN=hunter2"


def test_dot_segments_are_hidden_when_disallowed(site_root, strict_config):
    """Navigation tokens are treated lexically as hidden names."""
    with pytest.raises(PermissionDenied):
        resolve(site_root, strict_config, "/docs/../about.html")
    with pytest.raises(PermissionDenied):
        resolve(site_root, strict_config, "/./about.html")


def test_dot_segments_normalize_when_hidden_allowed(site_root, open_config):
    """Allowed navigation tokens collapse but stay inside the root."""
    resolved = resolve(site_root, open_config, "/docs/../../about.html")
    assert resolved.path == site_root.directory / "about.html"
    resolved.close()


def test_directory_with_index_serves_index(site_root, strict_config):
    """A directory containing index.html resolves to that document."""
    resolved = resolve(site_root, strict_config, "/blog/")
    assert resolved.path.name == "index.html"
    assert resolved.from_directory
    assert not resolved.for_listing
    assert _read(resolved) == b"<h1>blog</h1>"


def test_root_resolves_to_index(site_root, strict_config):
    """The site root behaves like any other directory."""
    resolved = resolve(site_root, strict_config, "/")
    assert resolved.path == site_root.directory / "index.html"
    resolved.close()


def test_index_preferred_over_listing(site_root, open_config):
    """Listings only apply to directories without an index document."""
    resolved = resolve(site_root, open_config, "/blog/")
    assert resolved.path.name == "index.html"
    assert not resolved.for_listing
    resolved.close()


def test_directory_without_index_not_found_when_listings_disabled(
    site_root, strict_config
):
    """The directory itself is never served as a body."""
    with pytest.raises(NotFound):
        resolve(site_root, strict_config, "/docs/")


def test_directory_without_index_tagged_for_listing(site_root, open_config):
    """Listings enabled yields the directory for later enumeration."""
    resolved = resolve(site_root, open_config, "/docs/")
    assert resolved.is_directory
    assert resolved.for_listing
    assert resolved.from_directory
    assert resolved.handle is None


def test_directory_without_trailing_slash_is_flagged(site_root, strict_config):
    """Callers can redirect ``/blog`` to ``/blog/`` using ``from_directory``."""
    resolved = resolve(site_root, strict_config, "/blog")
    assert resolved.from_directory
    resolved.close()


def test_path_below_regular_file_is_not_found(site_root, strict_config):
    """Treating a file as a directory is simply a miss."""
    with pytest.raises(NotFound):
        resolve(site_root, strict_config, "/about.html/child")


def test_os_errors_surface_as_io_errors(site_root, strict_config, monkeypatch):
    """Failures other than absence are reported as I/O errors."""

    def deny(*_args, **_kwargs):
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(resolver, "open", deny, raising=False)
    with pytest.raises(ResolutionIOError) as excinfo:
        resolve(site_root, strict_config, "/about.html")
    assert excinfo.value.error.errno == errno.EACCES


def test_resolution_is_repeatable(site_root, strict_config):
    """Resolving twice without disk changes gives equivalent results."""
    first = resolve(site_root, strict_config, "/about")
    second = resolve(site_root, strict_config, "/about")
    assert (first.path, first.size, first.is_directory) == (
        second.path,
        second.size,
        second.is_directory,
    )
    first.close()
    second.close()


def test_resolution_reflects_disk_changes(site_root, strict_config):
    """Nothing is cached between calls."""
    with pytest.raises(NotFound):
        resolve(site_root, strict_config, "/fresh")
    (site_root.directory / "fresh.html").write_text("new")
    resolved = resolve(site_root, strict_config, "/fresh")
    assert _read(resolved) == b"new"


def test_close_releases_handle_once(site_root, strict_config):
    """Closing twice is harmless and the handle ends up closed."""
    resolved = resolve(site_root, strict_config, "/style.css")
    handle = resolved.handle
    resolved.close()
    resolved.close()
    assert handle.closed
    assert resolved.handle is None


def test_stream_close_before_iteration_releases_handle(site_root, strict_config):
    """Aborting a stream that never started still frees the file."""
    resolved = resolve(site_root, strict_config, "/style.css")
    handle = resolved.handle
    stream = resolved.stream()
    stream.close()
    assert handle.closed
    assert list(stream) == []


def test_stream_reads_in_chunks(site_root, strict_config):
    """Chunked reads concatenate to the full content and close the file."""
    resolved = resolve(site_root, strict_config, "/style.css")
    handle = resolved.handle
    chunks = list(resolved.stream(chunk_size=4))
    assert b"".join(chunks) == b"body { color: black; }"
    assert all(len(chunk) <= 4 for chunk in chunks)
    assert handle.closed



def test_stream_stops_at_resolved_size_when_file_grows(site_root, strict_config):
    """Bytes appended after resolution are not sent."""
    resolved = resolve(site_root, strict_config, "/style.css")
    with open(resolved.path, "ab") as rewritten:
        rewritten.write(b"/* rebuilt */" * 10)
    assert b"".join(resolved.stream(chunk_size=8)) == b"body { color: black; }"
    assert resolved.handle is None


def test_stream_raises_when_file_shrinks(site_root, strict_config):
    """A file truncated mid-transfer cannot satisfy its advertised length."""
    resolved = resolve(site_root, strict_config, "/style.css")
    handle = resolved.handle
    with open(resolved.path, "r+b") as rewritten:
        rewritten.truncate(4)
    stream = resolved.stream()
    assert next(stream) == b"body"
    with pytest.raises(FileTruncated):
        next(stream)
    assert handle.closed


def test_config_is_immutable():
    """Configuration cannot be changed after construction."""
    config = PreviewConfig()
    with pytest.raises(AttributeError):
        config.hidden_files_allowed = True  # type: ignore[misc]
