"""Podman builder adapter (``podman build``)."""

from container_build.engines.docker import DockerEngine
from container_build.types import EngineProvider


class PodmanEngine(DockerEngine):
    """Adapter for daemonless builds with podman.

    Podman accepts the docker build flag set and can target several
    platforms in one invocation.
    """

    name = EngineProvider.PODMAN.value
    binary = "podman"
    multi_platform = True


__all__ = ["PodmanEngine"]
