"""Convert host objects into workspace resources with ordered strategies."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from findingsync.services.workspace import Resource, Workspace

logger = logging.getLogger(__name__)


class ResourceAdapter(ABC):
    """One conversion strategy; returns None when it does not apply."""

    @abstractmethod
    def adapt(self, obj: Any) -> Optional[Resource]:
        raise NotImplementedError


class IdentityAdapter(ResourceAdapter):
    def adapt(self, obj: Any) -> Optional[Resource]:
        return obj if isinstance(obj, Resource) else None


class PathAdapter(ResourceAdapter):
    """Paths relative to the workspace root, or absolute paths inside it."""

    def __init__(self, workspace: Workspace, project: str = ""):
        self.workspace = workspace
        self.project = project

    def adapt(self, obj: Any) -> Optional[Resource]:
        if not isinstance(obj, (str, Path)):
            return None
        path = Path(obj)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(self.workspace.root.resolve())
            except ValueError:
                return None
        if not str(path) or str(path) == "." or ".." in path.parts:
            return None
        return Resource(path.as_posix(), self.project)


class MappingAdapter(ResourceAdapter):
    """Objects shaped like ``{"path": ..., "project": ...}``, e.g. JSON requests."""

    def adapt(self, obj: Any) -> Optional[Resource]:
        if not isinstance(obj, Mapping):
            return None
        path = obj.get("path")
        if not path:
            return None
        return Resource(str(path), str(obj.get("project") or ""))


class ResourceResolver:
    """Tries each adapter in order; the first match wins."""

    def __init__(self, adapters: Iterable[ResourceAdapter]):
        self.adapters = list(adapters)

    @classmethod
    def for_workspace(cls, workspace: Workspace, project: str = "") -> "ResourceResolver":
        return cls([IdentityAdapter(), MappingAdapter(), PathAdapter(workspace, project)])

    def register(self, adapter: ResourceAdapter, first: bool = False) -> None:
        if first:
            self.adapters.insert(0, adapter)
        else:
            self.adapters.append(adapter)

    def resolve(self, obj: Any) -> Optional[Resource]:
        for adapter in self.adapters:
            resource = adapter.adapt(obj)
            if resource is not None:
                return resource
        logger.debug("No adapter for %r", obj)
        return None
