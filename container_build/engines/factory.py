"""Engine selection by provider identifier."""

from __future__ import annotations

import logging

from container_build.engines.base import EngineAdapter
from container_build.engines.buildx import BuildxEngine
from container_build.engines.docker import DockerEngine
from container_build.engines.podman import PodmanEngine
from container_build.errors import UnknownEngineError
from container_build.process import CommandExecutor
from container_build.types import EngineProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = EngineProvider.DOCKER

BUILTIN_ENGINES: dict[EngineProvider, type[EngineAdapter]] = {
    EngineProvider.DOCKER: DockerEngine,
    EngineProvider.BUILDX: BuildxEngine,
    EngineProvider.PODMAN: PodmanEngine,
}


class EngineFactory:
    """Creates engine adapters from provider identifiers.

    Lookup is case-insensitive; an empty identifier selects docker.
    Construction has no side effects.
    """

    _registry: dict[str, type[EngineAdapter]] = {
        provider.value: engine for provider, engine in BUILTIN_ENGINES.items()
    }

    @classmethod
    def register(cls, provider: str, engine: type[EngineAdapter]) -> None:
        """Make an additional engine available under ``provider``."""
        cls._registry[provider.strip().lower()] = engine

    @classmethod
    def unregister(cls, provider: str) -> None:
        """Remove an engine added with register().

        A built-in provider reverts to its default adapter.
        """
        key = provider.strip().lower()
        builtin = {p.value: engine for p, engine in BUILTIN_ENGINES.items()}
        if key in builtin:
            cls._registry[key] = builtin[key]
        else:
            cls._registry.pop(key, None)

    @classmethod
    def providers(cls) -> list[str]:
        return sorted(cls._registry)

    @classmethod
    def create(
        cls, provider: str | None = None, executor: CommandExecutor | None = None
    ) -> EngineAdapter:
        """Construct the adapter for ``provider``.

        Raises:
            UnknownEngineError: If the provider is not registered.
        """
        key = (provider or DEFAULT_PROVIDER.value).strip().lower() or DEFAULT_PROVIDER.value
        engine = cls._registry.get(key)
        if engine is None:
            raise UnknownEngineError(provider or "", known=cls.providers())
        logger.debug("Using %s engine (%s)", key, engine.__name__)
        return engine(executor=executor)


__all__ = ["BUILTIN_ENGINES", "DEFAULT_PROVIDER", "EngineFactory"]
