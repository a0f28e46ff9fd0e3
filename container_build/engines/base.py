"""Engine adapter contract.

An engine adapter hides everything engine-specific behind one interface so
the orchestrator never branches on which engine it is driving.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

from container_build.context import DefaultContext, ExecContext, InputContext
from container_build.errors import EngineFinalizeError, EngineInitError
from container_build.process import CommandExecutor
from container_build.types import BuildCommand, ExecResult

logger = logging.getLogger(__name__)

IIDFILE_NAME = "iidfile"
METADATA_FILE_NAME = "metadata-file"


def iidfile_path(tmp_dir: Path) -> Path:
    """Path of the image id file inside a run's temp directory."""
    return tmp_dir / IIDFILE_NAME


def metadata_file_path(tmp_dir: Path) -> Path:
    """Path of the build metadata file inside a run's temp directory."""
    return tmp_dir / METADATA_FILE_NAME


def read_artifact(path: Path) -> str | None:
    """Return the stripped content of an artifact file, or None if absent/empty."""
    if not path.is_file():
        return None
    content = path.read_text(encoding="utf-8").strip()
    return content or None


class EngineAdapter(ABC):
    """Base class for build engine adapters.

    Subclasses set ``binary`` and implement get_args(). The remaining
    operations have defaults that suit engines writing an iid file.

    Lifecycle per run: initialize -> get_args -> get_command -> (execute)
    -> finalize -> get_image_id / get_metadata / get_digest.
    """

    name: ClassVar[str]
    binary: ClassVar[str]

    def __init__(self, executor: CommandExecutor | None = None) -> None:
        self.executor = executor or CommandExecutor()
        self._image_id: str | None = None
        self._metadata: str | None = None

    def initialize(self, inputs: InputContext, ctx: ExecContext) -> None:
        """Verify the engine is usable and prepare the run's temp directory.

        Raises:
            EngineInitError: If the engine is unavailable or misconfigured.
        """
        self.check_available()
        self.validate_inputs(inputs)
        try:
            ctx.defaults.tmp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EngineInitError(
                f"Cannot create temp directory {ctx.defaults.tmp_dir}: {e}"
            ) from e
        logger.debug("%s engine initialized", self.name)

    def check_available(self) -> None:
        """Probe the engine binary.

        Raises:
            EngineInitError: If the version probe fails.
        """
        self.probe(self.version_args(), "is not available")

    def version_args(self) -> list[str]:
        return ["version"]

    def validate_inputs(self, inputs: InputContext) -> None:
        """Reject inputs the engine cannot handle. No-op by default."""

    def probe(self, args: Sequence[str], failure: str) -> ExecResult:
        """Run a short engine command, raising EngineInitError on failure."""
        result = self.executor.run(BuildCommand(self.binary, tuple(args)))
        if result.exit_code != 0:
            detail = _last_line(result.stderr) or f"exit code {result.exit_code}"
            raise EngineInitError(f"{self.name} engine {failure}: {detail}")
        return result

    @abstractmethod
    def get_args(self, inputs: InputContext, defaults: DefaultContext) -> list[str]:
        """Translate inputs into engine arguments. Must be pure."""

    def get_command(self, args: Sequence[str]) -> BuildCommand:
        return BuildCommand(command=self.binary, args=tuple(args))

    def finalize(self, inputs: InputContext, ctx: ExecContext) -> None:
        """Read the image id written by the build.

        Raises:
            EngineFinalizeError: If the iid file is missing.
        """
        path = iidfile_path(ctx.defaults.tmp_dir)
        self._image_id = read_artifact(path)
        if self._image_id is None:
            raise EngineFinalizeError(f"{self.name} build did not write an image id to {path}")

    def get_image_id(self) -> str | None:
        return self._image_id

    def get_metadata(self) -> str | None:
        return self._metadata

    def get_digest(self, metadata: str | None) -> str | None:
        return None

    def push_tags(self, inputs: InputContext) -> None:
        """Push every effective tag with ``<binary> push``.

        Raises:
            EngineFinalizeError: If a push fails.
        """
        for tag in inputs.effective_tags:
            logger.info("Pushing %s", tag)
            result = self.executor.run(BuildCommand(self.binary, ("push", tag)))
            if result.exit_code != 0:
                detail = _last_line(result.stderr) or f"exit code {result.exit_code}"
                raise EngineFinalizeError(f"Failed to push {tag}: {detail}")

    def common_args(self, inputs: InputContext) -> list[str]:
        """Arguments shared by every engine, in a fixed order."""
        args: list[str] = []
        args += ["--file", str(inputs.file)]
        for tag in inputs.effective_tags:
            args += ["--tag", tag]
        for label in inputs.effective_labels:
            args += ["--label", label]
        for key, value in inputs.build_args.items():
            args += ["--build-arg", f"{key}={value}"]
        if inputs.target:
            args += ["--target", inputs.target]
        if inputs.network:
            args += ["--network", inputs.network]
        for host in inputs.add_hosts:
            args += ["--add-host", host]
        if inputs.shm_size:
            args += ["--shm-size", inputs.shm_size]
        for ulimit in inputs.ulimits:
            args += ["--ulimit", ulimit]
        if inputs.cgroup_parent:
            args += ["--cgroup-parent", inputs.cgroup_parent]
        for output in inputs.outputs:
            args += ["--output", output]
        if inputs.pull:
            args.append("--pull")
        if inputs.no_cache:
            args.append("--no-cache")
        if inputs.quiet:
            args.append("--quiet")
        return args

    @staticmethod
    def engine_option_args(inputs: InputContext) -> list[str]:
        """Render engine passthrough options as --key [value], sorted by key."""
        args: list[str] = []
        for key in sorted(inputs.engine_options):
            value = inputs.engine_options[key]
            args.append(f"--{key.lstrip('-')}")
            if value:
                args.append(value)
        return args


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


__all__ = [
    "EngineAdapter",
    "iidfile_path",
    "metadata_file_path",
    "read_artifact",
]
