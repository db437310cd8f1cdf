"""Directory enumeration and HTML rendering for directory listings."""

import html
import os
import urllib.parse
from dataclasses import dataclass
from pathlib import Path

from preview_server.bootstrap.config import PreviewConfig
from preview_server.domain.visibility import is_hidden

LISTING_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass(frozen=True)
class DirectoryEntry:
    """Name of a directory member and whether it is itself a directory."""

    name: str
    is_directory: bool


def list_directory(directory: Path, config: PreviewConfig) -> list[DirectoryEntry]:
    """Read the directory from disk, dropping hidden entries unless allowed.

    Entries keep the order reported by the operating system.
    """
    entries = []
    with os.scandir(directory) as iterator:
        for entry in iterator:
            if not config.hidden_files_allowed and is_hidden(entry.name):
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            entries.append(DirectoryEntry(entry.name, is_dir))
    return entries


def render_listing(entries: list[DirectoryEntry]) -> bytes:
    """Render entries as a minimal HTML document of links."""
    lines = [
        "<!doctype html>",
        '<meta name="viewport" content="width=device-width">',
        "<pre>",
    ]
    for entry in entries:
        name = entry.name + "/" if entry.is_directory else entry.name
        href = urllib.parse.quote(name)
        lines.append(f'<a href="{html.escape(href)}">{html.escape(name)}</a>')
    lines.append("</pre>")
    return ("\n".join(lines) + "\n").encode("utf-8")
