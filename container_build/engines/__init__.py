"""Build engine adapters.

This package handles:
- The EngineAdapter contract shared by every engine
- docker, docker buildx and podman adapters
- Selecting an adapter from a provider identifier
"""

from container_build.engines.base import EngineAdapter
from container_build.engines.buildx import BuildxEngine
from container_build.engines.docker import DockerEngine
from container_build.engines.factory import EngineFactory
from container_build.engines.podman import PodmanEngine

__all__ = [
    "BuildxEngine",
    "DockerEngine",
    "EngineAdapter",
    "EngineFactory",
    "PodmanEngine",
]
