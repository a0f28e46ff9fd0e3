"""Error types for container_build.

Every error carries a stable ``code`` string for programmatic handling
(CLI JSON output, CI annotations). All of them are fatal to a run.
"""


class ContainerBuildError(Exception):
    """Base error for build orchestration."""

    default_code = "container_build_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class EngineInitError(ContainerBuildError):
    """Raised when a build engine is unavailable or misconfigured."""

    default_code = "engine_init_error"


class UnknownEngineError(ContainerBuildError):
    """Raised when an engine provider identifier is not recognized."""

    default_code = "unknown_engine"

    def __init__(self, provider: str, known: list[str] | None = None) -> None:
        message = f"Unknown build engine: {provider!r}"
        if known:
            message += f" (expected one of: {', '.join(known)})"
        super().__init__(message)
        self.provider = provider


class BuildExecutionError(ContainerBuildError):
    """Raised when the external build process reports failure."""

    default_code = "build_failed"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


class EngineFinalizeError(ContainerBuildError):
    """Raised when expected post-build artifacts are missing."""

    default_code = "engine_finalize_error"


class MissingDependencyError(ContainerBuildError):
    """Raised when an optional collaborator is requested but unavailable."""

    default_code = "missing_dependency"


class DockerfileNotFoundError(ContainerBuildError):
    """Raised when the Dockerfile does not exist before the build starts."""

    default_code = "dockerfile_not_found"


__all__ = [
    "BuildExecutionError",
    "ContainerBuildError",
    "DockerfileNotFoundError",
    "EngineFinalizeError",
    "EngineInitError",
    "MissingDependencyError",
    "UnknownEngineError",
]
