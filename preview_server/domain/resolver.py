"""Resolution of request paths to files under the preview root."""

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from preview_server.bootstrap.config import PreviewConfig
from preview_server.domain.correlation_id import get_logger
from preview_server.domain.sandbox import FileSystemRoot, ForbiddenPath
from preview_server.domain.visibility import path_contains_hidden

RESOLVER_LOGGER = get_logger("domain.resolver")

INDEX_DOCUMENT = "index.html"
HTML_EXTENSION = ".html"


class ResolutionError(Exception):
    """Base class for request path resolution failures."""


class PermissionDenied(ResolutionError):
    """Raised when a hidden or out-of-root path is requested."""


class NotFound(ResolutionError):
    """Raised when nothing servable exists for the requested path."""


class ResolutionIOError(ResolutionError):
    """Raised when the filesystem fails for a reason other than absence."""

    def __init__(self, error: OSError) -> None:
        super().__init__(str(error))
        self.error = error


@dataclass
class ResolvedFile:
    """A file or directory chosen to answer a request.

    Regular files carry an open handle owned by the request; ``close`` is
    idempotent so the handle is released exactly once.
    """

    path: Path
    is_directory: bool
    size: int
    modified: float
    for_listing: bool = False
    from_directory: bool = False
    handle: Optional[BinaryIO] = field(default=None, repr=False)

    def close(self) -> None:
        """Release the underlying file handle if one is still open."""
        handle, self.handle = self.handle, None
        if handle is not None:
            handle.close()

    def stream(self, chunk_size: int = 65536) -> "FileStream":
        """Iterate over the file contents in fixed-size chunks."""
        return FileStream(self, chunk_size)

    def __enter__(self) -> "ResolvedFile":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FileTruncated(OSError):
    """Raised when a file shrinks below its advertised size while streaming."""


class FileStream:
    """Chunk iterator over a resolved file that owns releasing its handle.

    Exactly ``resolved.size`` bytes are produced, matching the advertised
    ``Content-Length`` even if the file grows during the transfer. Unlike a
    generator, ``close`` releases the handle even when iteration never
    started.
    """

    def __init__(self, resolved: ResolvedFile, chunk_size: int) -> None:
        self._resolved = resolved
        self._chunk_size = chunk_size
        self._remaining = resolved.size

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        handle = self._resolved.handle
        if handle is None:
            raise StopIteration
        if self._remaining <= 0:
            self.close()
            raise StopIteration
        chunk = handle.read(min(self._chunk_size, self._remaining))
        if not chunk:
            self.close()
            raise FileTruncated(
                f"{self._resolved.path.as_posix()} ended {self._remaining} bytes early"
            )
        self._remaining -= len(chunk)
        return chunk

    def close(self) -> None:
        """Release the underlying file handle."""
        self._resolved.close()



def _has_extension(path: str) -> bool:
    final_segment = path.rsplit("/", 1)[-1]
    return "." in final_segment


def _open_target(target: Path) -> ResolvedFile:
    """Open a path and describe it, raising the raw OSError on failure."""
    info = os.stat(target)
    if stat.S_ISDIR(info.st_mode):
        return ResolvedFile(target, True, info.st_size, info.st_mtime)
    handle = open(target, "rb")  # pylint: disable=consider-using-with
    try:
        info = os.fstat(handle.fileno())
    except OSError:
        handle.close()
        raise
    return ResolvedFile(target, False, info.st_size, info.st_mtime, handle=handle)


def _open_within_root(root: FileSystemRoot, path: str) -> ResolvedFile:
    try:
        target = root.locate(path)
    except ForbiddenPath as exc:
        raise PermissionDenied(path) from exc
    return _open_target(target)


def _open_with_html_fallback(root: FileSystemRoot, path: str) -> ResolvedFile:
    try:
        return _open_within_root(root, path)
    except FileNotFoundError:
        if path.endswith("/") or _has_extension(path):
            raise
    if RESOLVER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        RESOLVER_LOGGER.debug(
            "Retrying with html extension",
            extra={"event": "html_fallback", "path": path},
        )
    return _open_within_root(root, path + HTML_EXTENSION)


def _resolve_directory(
    root: FileSystemRoot, resolved: ResolvedFile, config: PreviewConfig
) -> ResolvedFile:
    relative = resolved.path.relative_to(root.directory).as_posix()
    try:
        index = _open_within_root(root, f"{relative}/{INDEX_DOCUMENT}")
    except FileNotFoundError:
        index = None
    if index is not None and not index.is_directory:
        index.from_directory = True
        return index
    if index is not None:
        index.close()
    if not config.directory_listings_enabled:
        raise NotFound(resolved.path.as_posix())
    resolved.for_listing = True
    resolved.from_directory = True
    return resolved


def resolve(root: FileSystemRoot, config: PreviewConfig, path: str) -> ResolvedFile:
    """Resolve a request path to a servable file or directory listing.

    Raises ``PermissionDenied`` for hidden or escaping paths, ``NotFound``
    when nothing matches, and ``ResolutionIOError`` for other filesystem
    failures. The caller owns the returned handle.
    """
    if not config.hidden_files_allowed and path_contains_hidden(path):
        raise PermissionDenied(path)

    try:
        resolved = _open_with_html_fallback(root, path)
        if resolved.is_directory:
            return _resolve_directory(root, resolved, config)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound(path) from exc
    except OSError as exc:
        raise ResolutionIOError(exc) from exc
    return resolved
