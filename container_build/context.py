"""Build input resolution.

This module handles:
- Per-run temp directory paths
- Run defaults (DefaultContext)
- Normalizing BuildOptions into an immutable InputContext
- Resolving the engine provider from options and environment
- Loading the workspace .env file under the process environment
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import dotenv_values

from container_build.schema import BuildOptions

logger = logging.getLogger(__name__)

TMP_DIR_PREFIX = "container-build-"


@dataclass(frozen=True)
class ProjectContext:
    """Describes the project a build runs for.

    Attributes:
        root: Workspace root; relative option paths resolve against it.
        project_name: Project name, used to scope environment overrides.
        project_root: Project directory; defaults to the workspace root.
    """

    root: Path
    project_name: str | None = None
    project_root: Path | None = None

    @property
    def resolved_root(self) -> Path:
        """Absolute project directory."""
        if self.project_root is None:
            return self.root
        if self.project_root.is_absolute():
            return self.project_root
        return self.root / self.project_root

    @classmethod
    def from_cwd(
        cls, project_name: str | None = None, project_root: Path | None = None
    ) -> ProjectContext:
        """Create a context rooted at the current working directory."""
        return cls(root=Path.cwd(), project_name=project_name, project_root=project_root)


@dataclass(frozen=True)
class DefaultContext:
    """Defaults computed once per run.

    Attributes:
        context: Build context used when options do not name one.
        tmp_dir: This run's temp directory (created lazily by engines).
    """

    context: str
    tmp_dir: Path


@dataclass(frozen=True)
class ExecContext:
    """Execution context handed to engine initialize/finalize."""

    project: ProjectContext
    defaults: DefaultContext


@dataclass(frozen=True)
class InputContext:
    """Fully resolved, engine-neutral build configuration.

    Tags and labels may be replaced once by metadata generation through
    with_metadata(); engines always read effective_tags/effective_labels.
    """

    file: Path
    context: str
    tags: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    build_args: Mapping[str, str] = field(default_factory=dict)
    platforms: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    engine_options: Mapping[str, str] = field(default_factory=dict)
    target: str | None = None
    push: bool = False
    load: bool = False
    pull: bool = False
    no_cache: bool = False
    quiet: bool = False
    network: str | None = None
    add_hosts: tuple[str, ...] = ()
    shm_size: str | None = None
    ulimits: tuple[str, ...] = ()
    cgroup_parent: str | None = None
    cache_from: tuple[str, ...] = ()
    cache_to: tuple[str, ...] = ()
    build_contexts: tuple[str, ...] = ()
    secret_files: tuple[str, ...] = ()
    ssh: tuple[str, ...] = ()
    allow: tuple[str, ...] = ()
    builder: str | None = None
    provenance: str | None = None
    sbom: str | None = None
    tags_override: tuple[str, ...] | None = None
    labels_override: tuple[str, ...] | None = None

    @property
    def effective_tags(self) -> tuple[str, ...]:
        if self.tags_override is not None:
            return self.tags_override
        return self.tags

    @property
    def effective_labels(self) -> tuple[str, ...]:
        if self.labels_override is not None:
            return self.labels_override
        return self.labels

    def with_metadata(self, tags: Iterable[str], labels: Iterable[str]) -> InputContext:
        """Return a copy whose tags and labels come from generated metadata.

        Raises:
            ValueError: If metadata was already applied to this context.
        """
        if self.tags_override is not None or self.labels_override is not None:
            raise ValueError("metadata overrides can only be applied once")
        return replace(self, tags_override=tuple(tags), labels_override=tuple(labels))


def tmp_dir(root: Path | None = None) -> Path:
    """Return a fresh, unique temp directory path for one run.

    The directory is not created.

    Args:
        root: Parent directory; uses the system temp directory if not set.
    """
    base = Path(root) if root is not None else Path(tempfile.gettempdir())
    return base / f"{TMP_DIR_PREFIX}{uuid.uuid4().hex}"


def default_context(project: ProjectContext, tmp_path: Path) -> DefaultContext:
    """Compute the run defaults for a project."""
    return DefaultContext(context=str(project.resolved_root), tmp_dir=tmp_path)


def constant_name(name: str) -> str:
    """Convert a project name to CONSTANT_CASE.

    >>> constant_name("my-app")
    'MY_APP'
    >>> constant_name("myApp")
    'MY_APP'
    """
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return re.sub(r"[^A-Za-z0-9]+", "_", spaced).strip("_").upper()


ENV_FILE = ".env"


def project_environment(
    root: Path, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return the environment for a run in ``root``.

    Variables from ``root/.env`` are added underneath the process
    environment, which wins on conflicts. Keys declared without a value are
    skipped. A missing file contributes nothing.
    """
    path = root / ENV_FILE
    env = {key: value for key, value in dotenv_values(path).items() if value is not None}
    if env:
        logger.debug("Loaded %d variables from %s", len(env), path)
    env.update(os.environ if environ is None else environ)
    return env


def resolve_engine_provider(
    option: str | None,
    project_name: str | None,
    environ: Mapping[str, str] | None = None,
    default: str = "docker",
) -> str:
    """Resolve the engine provider identifier.

    Precedence: explicit option > <PROJECT>_INPUT_ENGINE > INPUT_ENGINE > default.
    """
    if option:
        return option
    env = os.environ if environ is None else environ
    keys = ["INPUT_ENGINE"]
    prefix = constant_name(project_name) if project_name else ""
    if prefix:
        keys.insert(0, f"{prefix}_INPUT_ENGINE")
    for key in keys:
        value = env.get(key, "").strip()
        if value:
            logger.debug("Engine provider taken from %s", key)
            return value
    return default


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


def _parse_build_args(items: Iterable[str]) -> dict[str, str]:
    build_args: dict[str, str] = {}
    for item in items:
        key, _, value = item.partition("=")
        build_args[key] = value
    return build_args


def _resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def _resolve_context(root: Path, value: str) -> str:
    # Remote contexts (git URLs, tarball URLs, stdin) are passed through.
    if "://" in value or value.startswith("git@") or value == "-":
        return value
    return str(_resolve_path(root, value))


def get_inputs(
    defaults: DefaultContext,
    options: BuildOptions,
    project: ProjectContext,
) -> InputContext:
    """Normalize build options into an InputContext.

    Args:
        defaults: Run defaults.
        options: Validated build options.
        project: Project the build runs for.

    Returns:
        InputContext with absolute paths and de-duplicated platforms.
    """
    if options.file:
        file = _resolve_path(project.root, options.file)
    else:
        file = project.resolved_root / "Dockerfile"

    context = _resolve_context(project.root, options.context) if options.context else defaults.context

    return InputContext(
        file=file,
        context=context,
        tags=tuple(options.tags),
        labels=tuple(options.labels),
        build_args=_parse_build_args(options.build_args),
        platforms=_unique(p for item in options.platforms for p in item.split(",")),
        outputs=tuple(options.outputs),
        engine_options=dict(options.engine_options),
        target=options.target,
        push=options.push,
        load=options.load,
        pull=options.pull,
        no_cache=options.no_cache,
        quiet=options.quiet,
        network=options.network,
        add_hosts=tuple(options.add_hosts),
        shm_size=options.shm_size,
        ulimits=tuple(options.ulimits),
        cgroup_parent=options.cgroup_parent,
        cache_from=tuple(options.cache_from),
        cache_to=tuple(options.cache_to),
        build_contexts=tuple(options.build_contexts),
        secret_files=tuple(options.secret_files),
        ssh=tuple(options.ssh),
        allow=tuple(options.allow),
        builder=options.builder,
        provenance=options.provenance,
        sbom=options.sbom,
    )


__all__ = [
    "DefaultContext",
    "ExecContext",
    "InputContext",
    "ProjectContext",
    "constant_name",
    "default_context",
    "get_inputs",
    "project_environment",
    "resolve_engine_provider",
    "tmp_dir",
]
