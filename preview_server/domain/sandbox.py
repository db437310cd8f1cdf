"""Filesystem sandbox utilities for safe path resolution."""

import posixpath
from dataclasses import dataclass
from pathlib import Path


class ForbiddenPath(Exception):
    """Raised when a requested path escapes the configured sandbox."""


@dataclass(frozen=True)
class FileSystemRoot:
    """Base directory every request path is resolved against."""

    directory: Path

    @classmethod
    def from_directory(cls, directory: str) -> "FileSystemRoot":
        """Pin the root to its absolute, symlink-free location."""
        return cls(Path(directory).resolve())

    def locate(self, request_path: str) -> Path:
        """Map a slash-separated request path to a location inside the root.

        ``..`` segments are clamped lexically at the root, then the final
        location is checked again after symlink resolution.
        """
        if "\x00" in request_path:
            raise ForbiddenPath

        cleaned = posixpath.normpath("/" + request_path.lstrip("/"))
        relative_part = cleaned.lstrip("/")
        if not relative_part or relative_part == ".":
            return self.directory

        target = (self.directory / relative_part).resolve()
        if not (target == self.directory or self.directory in target.parents):
            raise ForbiddenPath

        return target
