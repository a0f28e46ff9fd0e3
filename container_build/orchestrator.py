"""Build orchestration.

This module provides the top-level build pipeline:
- run(): resolve inputs, select an engine, build, report outputs
- check_build_result(): classify the build process outcome
- cleanup(): remove the run's temp directory

The temp directory is removed on every exit path; errors propagate to the
caller unchanged and nothing is retried.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Mapping
from pathlib import Path

from container_build.config import Settings, get_settings
from container_build.context import (
    ExecContext,
    ProjectContext,
    default_context,
    get_inputs,
    project_environment,
    resolve_engine_provider,
    tmp_dir,
)
from container_build.engines.factory import EngineFactory
from container_build.errors import BuildExecutionError, DockerfileNotFoundError
from container_build.metadata import MetadataGenerator, load_metadata_generator
from container_build.outputs import MemoryOutputs, OutputReporter
from container_build.process import CommandExecutor
from container_build.schema import BuildOptions
from container_build.types import BuildOutputs, ExecResult, RunResult

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "unknown error"

_ERROR_TAG = re.compile(r"^error:\s*", re.IGNORECASE)


def build_failed(result: ExecResult) -> bool:
    """Whether a build process result counts as a failure.

    Engines print warnings to stderr on success and some exit non-zero on
    benign conditions, so only a non-zero exit together with stderr output
    is a failure.
    """
    return result.exit_code != 0 and len(result.stderr) > 0


def failure_reason(stderr: str) -> str:
    """Return the last non-empty stderr line without a leading ``error:`` tag."""
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    if not lines:
        return UNKNOWN_ERROR
    return _ERROR_TAG.sub("", lines[-1]) or UNKNOWN_ERROR


def check_build_result(result: ExecResult) -> None:
    """Raise if the build process failed.

    Raises:
        BuildExecutionError: Carrying the last stderr line as its message.
    """
    if build_failed(result):
        reason = failure_reason(result.stderr)
        logger.error("Build failed with exit code %d: %s", result.exit_code, reason)
        raise BuildExecutionError(reason, exit_code=result.exit_code)
    if result.exit_code != 0:
        logger.warning("Build exited with code %d but reported no errors", result.exit_code)


def cleanup(path: Path) -> bool:
    """Remove a temp directory tree if it exists.

    A removal failure is logged, not raised.

    Returns:
        True if something was removed.
    """
    if not path.exists():
        return False
    logger.info("Removing temp folder %s", path)
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning("Failed to remove temp folder %s: %s", path, e)
        return False
    return True


def run(
    options: BuildOptions,
    project: ProjectContext | None = None,
    *,
    settings: Settings | None = None,
    executor: CommandExecutor | None = None,
    reporter: OutputReporter | None = None,
    metadata_generator: MetadataGenerator | None = None,
    environ: Mapping[str, str] | None = None,
) -> RunResult:
    """Run a container image build.

    Args:
        options: Validated build options.
        project: Project the build runs for; the working directory if not set.
        settings: Settings; loaded from the environment if not set.
        executor: Command executor shared by the engine and the build step.
        reporter: Receives the imageid, digest and metadata outputs.
        metadata_generator: Metadata collaborator; loaded from entry points
            on demand if not set.
        environ: Environment used for the engine override lookup and by
            the default executor; the process environment over the
            workspace .env file if not set.

    Returns:
        RunResult with success=True and the reported outputs.

    Raises:
        UnknownEngineError: If the engine provider is not recognized.
        DockerfileNotFoundError: If the Dockerfile does not exist.
        EngineInitError: If the engine cannot be used.
        MissingDependencyError: If metadata is requested but no generator exists.
        BuildExecutionError: If the build process fails.
        EngineFinalizeError: If post-build artifacts are missing.
    """
    settings = settings or get_settings()
    project = project or ProjectContext.from_cwd()
    env = project_environment(project.root) if environ is None else environ
    executor = executor or CommandExecutor(env=env, timeout=settings.build_timeout)
    outputs = MemoryOutputs()

    run_tmp_dir = tmp_dir(settings.tmp_dir)
    try:
        defaults = default_context(project, run_tmp_dir)
        inputs = get_inputs(defaults, options, project)
        ctx = ExecContext(project=project, defaults=defaults)

        provider = resolve_engine_provider(
            options.engine, project.project_name, env, default=settings.engine
        )
        engine = EngineFactory.create(provider, executor=executor)

        if not inputs.file.is_file():
            raise DockerfileNotFoundError(f"Dockerfile not found: {inputs.file}")

        logger.info("Initializing %s engine", engine.name)
        engine.initialize(inputs, ctx)

        if options.metadata is not None and options.metadata.requested:
            generator = metadata_generator or load_metadata_generator(
                settings.metadata_entry_point
            )
            logger.info("Generating metadata")
            meta = generator(options.metadata, project)
            inputs = inputs.with_metadata(tags=meta.get_tags(), labels=meta.get_labels())

        logger.info("Starting build...")
        args = engine.get_args(inputs, defaults)
        build_command = engine.get_command(args)
        logger.info("Executing build: %s", build_command)
        check_build_result(executor.run(build_command))

        engine.finalize(inputs, ctx)

        metadata = engine.get_metadata()
        result = BuildOutputs(
            image_id=engine.get_image_id(),
            digest=engine.get_digest(metadata),
            metadata=metadata,
        )
        for key, value in result.items():
            logger.info("%s: %s", key.value, value)
            outputs.set_output(key.value, value)
            if reporter is not None:
                reporter.set_output(key.value, value)
    finally:
        cleanup(run_tmp_dir)

    return RunResult(success=True, outputs=outputs.values)


__all__ = [
    "build_failed",
    "check_build_result",
    "cleanup",
    "failure_reason",
    "run",
]
