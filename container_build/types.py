"""Shared type definitions for container_build.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

import shlex
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class EngineProvider(str, Enum):
    """Identifier of a supported build engine."""

    DOCKER = "docker"
    BUILDX = "buildx"
    PODMAN = "podman"


class OutputKey(str, Enum):
    """Keys reported to the output collaborator."""

    IMAGE_ID = "imageid"
    DIGEST = "digest"
    METADATA = "metadata"


@dataclass(frozen=True)
class BuildCommand:
    """An engine binary plus its ordered argument list."""

    command: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        """Return the full argument vector suitable for subprocess."""
        return [self.command, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class ExecResult:
    """Captured outcome of an external process."""

    exit_code: int
    stdout: str
    stderr: str


@dataclass
class BuildOutputs:
    """Outputs extracted from an engine after finalize.

    Every field is optional; not every engine produces every value.
    """

    image_id: str | None = None
    digest: str | None = None
    metadata: str | None = None

    def items(self) -> Iterator[tuple[OutputKey, str]]:
        """Yield the present outputs in reporting order."""
        if self.image_id:
            yield OutputKey.IMAGE_ID, self.image_id
        if self.digest:
            yield OutputKey.DIGEST, self.digest
        if self.metadata:
            yield OutputKey.METADATA, self.metadata


@dataclass
class RunResult:
    """Result of a complete orchestration run."""

    success: bool
    outputs: dict[str, str] = field(default_factory=dict)


__all__ = [
    "BuildCommand",
    "BuildOutputs",
    "EngineProvider",
    "ExecResult",
    "OutputKey",
    "RunResult",
]
