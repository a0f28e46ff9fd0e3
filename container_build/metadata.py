"""Optional metadata generation collaborator.

Tag and label generation lives in a separate distribution. It is looked up
through the ``container_build.metadata`` entry point group, and only when a
build requests it.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Protocol

from container_build.context import ProjectContext
from container_build.errors import MissingDependencyError
from container_build.schema import MetadataOptions

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "container_build.metadata"


class MetadataResult(Protocol):
    """Generated image metadata."""

    def get_labels(self) -> list[str]: ...

    def get_tags(self) -> list[str]: ...


class MetadataGenerator(Protocol):
    """Callable producing metadata for a project."""

    def __call__(self, options: MetadataOptions, project: ProjectContext) -> MetadataResult: ...


def load_metadata_generator(name: str = "default") -> MetadataGenerator:
    """Load the metadata generator registered under ``name``.

    Raises:
        MissingDependencyError: If no generator is installed under that name,
            or it fails to import.
    """
    matches = [ep for ep in entry_points(group=ENTRY_POINT_GROUP) if ep.name == name]
    if not matches:
        raise MissingDependencyError(
            f"Metadata generation was requested but no '{name}' generator is "
            f"installed in the {ENTRY_POINT_GROUP} entry point group"
        )
    entry_point = matches[0]
    try:
        generator = entry_point.load()
    except ImportError as e:
        raise MissingDependencyError(
            f"Metadata generator {entry_point.value} could not be imported: {e}"
        ) from e
    logger.debug("Loaded metadata generator %s", entry_point.value)
    return generator


__all__ = [
    "ENTRY_POINT_GROUP",
    "MetadataGenerator",
    "MetadataResult",
    "load_metadata_generator",
]
