"""Host workspace: files on disk, overridden by open editor buffers."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from findingsync.services.position_resolver import TextSnapshot

logger = logging.getLogger(__name__)


class SnapshotUnreadableError(Exception):
    """The current content of a file could not be obtained."""


class ResourceNotFoundError(Exception):
    """The resource no longer exists in the workspace."""


@dataclass(frozen=True)
class Resource:
    """A workspace file, identified by its path relative to the workspace root."""

    path: str
    project: str = ""

    def __str__(self) -> str:
        return self.path


class Workspace:
    """Reads file snapshots relative to a root directory."""

    def __init__(self, root: str | Path, encoding: str = "utf-8"):
        self.root = Path(root)
        self.encoding = encoding
        self._open_documents: dict[str, str] = {}
        self._lock = threading.Lock()

    def location(self, resource: Resource) -> Path:
        return self.root / resource.path

    def exists(self, resource: Resource) -> bool:
        with self._lock:
            if resource.path in self._open_documents:
                return True
        return self.location(resource).is_file()

    def open_document(self, resource: Resource, text: str) -> None:
        """Register unsaved editor content; it wins over the file on disk."""
        with self._lock:
            self._open_documents[resource.path] = text

    def close_document(self, resource: Resource) -> None:
        with self._lock:
            self._open_documents.pop(resource.path, None)

    def get_snapshot(self, resource: Resource) -> TextSnapshot:
        with self._lock:
            text = self._open_documents.get(resource.path)
        if text is not None:
            return TextSnapshot.from_text(text)

        path = self.location(resource)
        try:
            return TextSnapshot.from_file(path, self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to read {path}: {e}")
            raise SnapshotUnreadableError(f"Unable to read {resource.path}: {e}") from e
