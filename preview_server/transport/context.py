"""Context object shared across worker threads."""

from dataclasses import dataclass
from typing import Optional

from preview_server.bootstrap.config import PreviewConfig, ServerConfig
from preview_server.domain.sandbox import FileSystemRoot
from preview_server.lifecycle.state import ServerLifecycle
from preview_server.pipeline.access_log import AccessLog


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    root: FileSystemRoot
    preview: PreviewConfig
    lifecycle: Optional[ServerLifecycle] = None
    config: Optional[ServerConfig] = None
    access_log: Optional[AccessLog] = None
