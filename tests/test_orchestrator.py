"""Tests for orchestrator.py module.

Covers result classification, cleanup guarantees, metadata overrides and
end-to-end runs against a fake executor.
"""

from pathlib import Path

import pytest

from container_build.engines.base import EngineAdapter
from container_build.engines.factory import EngineFactory
from container_build.errors import (
    BuildExecutionError,
    DockerfileNotFoundError,
    EngineFinalizeError,
    EngineInitError,
    MissingDependencyError,
    UnknownEngineError,
)
from container_build.orchestrator import (
    UNKNOWN_ERROR,
    build_failed,
    check_build_result,
    cleanup,
    failure_reason,
    run,
)
from container_build.outputs import MemoryOutputs
from container_build.schema import BuildOptions, MetadataOptions
from container_build.types import ExecResult

from .conftest import BUILDX_METADATA, DIGEST, IMAGE_ID


def _leftover_tmp_dirs(settings) -> list[Path]:
    return list(settings.tmp_dir.iterdir())


class FakeMetadata:
    def __init__(self, tags: list[str], labels: list[str]) -> None:
        self._tags = tags
        self._labels = labels

    def get_tags(self) -> list[str]:
        return self._tags

    def get_labels(self) -> list[str]:
        return self._labels


class TestBuildResultClassification:
    """Tests for build_failed and check_build_result."""

    def test_exit_zero_with_stderr_is_success(self):
        """Exit code 0 succeeds whatever stderr contains."""
        result = ExecResult(exit_code=0, stdout="", stderr="WARNING: deprecated\n")
        assert build_failed(result) is False
        check_build_result(result)

    def test_nonzero_exit_with_empty_stderr_is_success(self):
        """Exit code 137 with empty stderr is not a failure."""
        result = ExecResult(exit_code=137, stdout="done\n", stderr="")
        assert build_failed(result) is False
        check_build_result(result)

    def test_nonzero_exit_with_stderr_fails(self):
        """Exit code 1 with stderr raises with the last line."""
        result = ExecResult(exit_code=1, stdout="", stderr="error: foo\n")
        assert build_failed(result) is True
        with pytest.raises(BuildExecutionError) as exc_info:
            check_build_result(result)
        assert str(exc_info.value) == "foo"
        assert exc_info.value.exit_code == 1
        assert exc_info.value.code == "build_failed"

    def test_failure_reason_uses_last_non_empty_line(self):
        """Should skip trailing blank lines."""
        stderr = "#1 building\n#2 ERROR: failed\nfailed: no space left on device\n\n  \n"
        assert failure_reason(stderr) == "failed: no space left on device"

    def test_failure_reason_strips_error_tag(self):
        """Should drop a leading 'ERROR:' tag, case-insensitively."""
        assert failure_reason("ERROR: failed to solve: exit 2\n") == "failed to solve: exit 2"

    def test_failure_reason_blank(self):
        """Should fall back to a generic message."""
        assert failure_reason("\n  \n") == UNKNOWN_ERROR
        assert failure_reason("error:\n") == UNKNOWN_ERROR


class TestCleanup:
    """Tests for cleanup function."""

    def test_removes_existing_tree(self, tmp_path):
        """Should remove the directory and everything below it."""
        target = tmp_path / "run"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "iidfile").write_text("x")

        assert cleanup(target) is True
        assert not target.exists()

    def test_missing_directory_is_noop(self, tmp_path):
        """Should do nothing when the directory was never created."""
        assert cleanup(tmp_path / "never-created") is False

    def test_removal_error_is_logged(self, tmp_path, monkeypatch, caplog):
        """A removal error is logged as a warning instead of raised."""
        target = tmp_path / "run"
        target.mkdir()

        def _deny(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("container_build.orchestrator.shutil.rmtree", _deny)

        with caplog.at_level("WARNING", logger="container_build.orchestrator"):
            assert cleanup(target) is False
        assert "Failed to remove temp folder" in caplog.text


class TestRunSuccess:
    """End-to-end runs that succeed."""

    def test_docker_build_reports_image_id(self, project, settings, fake_executor):
        """docker engine with an existing Dockerfile reports imageid."""
        reporter = MemoryOutputs()
        options = BuildOptions(engine="docker", file="Dockerfile")

        result = run(
            options,
            project,
            settings=settings,
            executor=fake_executor,
            reporter=reporter,
            environ={},
        )

        assert result.success is True
        assert result.outputs == {"imageid": IMAGE_ID}
        assert reporter.values == {"imageid": IMAGE_ID}
        assert _leftover_tmp_dirs(settings) == []

    def test_docker_build_command(self, project, settings, fake_executor, workspace):
        """Should execute docker build with the resolved Dockerfile and context."""
        options = BuildOptions(file="Dockerfile", tags=["app:1.0"])

        run(options, project, settings=settings, executor=fake_executor, environ={})

        [build] = fake_executor.build_calls
        assert build.command == "docker"
        assert build.args[0] == "build"
        assert str(workspace / "Dockerfile") in build.args
        assert build.args[-1] == str(workspace)
        assert "app:1.0" in build.args

    def test_engine_probe_runs_before_build(self, project, settings, fake_executor):
        """initialize should probe the engine before the build command."""
        run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

        assert fake_executor.calls[0].args == ("version",)
        assert fake_executor.calls[-1].args[0] == "build"

    def test_buildx_reports_all_outputs(self, project, settings, fake_executor):
        """buildx reports imageid, digest and metadata in that order."""
        fake_executor.metadata = BUILDX_METADATA
        reporter = MemoryOutputs()

        result = run(
            BuildOptions(engine="buildx"),
            project,
            settings=settings,
            executor=fake_executor,
            reporter=reporter,
            environ={},
        )

        assert list(result.outputs) == ["imageid", "digest", "metadata"]
        assert result.outputs["digest"] == DIGEST
        assert result.outputs["metadata"] == BUILDX_METADATA
        assert reporter.values == result.outputs

    def test_nonzero_exit_without_stderr_succeeds(self, project, settings, fake_executor):
        """A benign non-zero exit is not treated as a failure."""
        fake_executor.build_result = ExecResult(exit_code=137, stdout="", stderr="")
        result = run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})
        assert result.success is True

    def test_provider_from_project_env(self, project, settings, fake_executor):
        """Project-scoped env override selects the engine when no option is given."""
        fake_executor.metadata = BUILDX_METADATA

        result = run(
            BuildOptions(),
            project,
            settings=settings,
            executor=fake_executor,
            environ={"MY_APP_INPUT_ENGINE": "buildx"},
        )

        assert fake_executor.build_calls[0].args[:2] == ("buildx", "build")
        assert "digest" in result.outputs

    def test_explicit_engine_beats_env(self, project, settings, fake_executor):
        """Explicit option wins over environment overrides."""
        run(
            BuildOptions(engine="docker"),
            project,
            settings=settings,
            executor=fake_executor,
            environ={"MY_APP_INPUT_ENGINE": "buildx", "INPUT_ENGINE": "podman"},
        )

        [build] = fake_executor.build_calls
        assert build.command == "docker"
        assert build.args[0] == "build"

    def test_provider_from_dotenv(self, project, settings, fake_executor, monkeypatch):
        """A workspace .env file can select the engine."""
        monkeypatch.delenv("MY_APP_INPUT_ENGINE", raising=False)
        monkeypatch.delenv("INPUT_ENGINE", raising=False)
        (project.root / ".env").write_text("MY_APP_INPUT_ENGINE=buildx\n")

        run(BuildOptions(), project, settings=settings, executor=fake_executor)

        assert fake_executor.build_calls[0].args[:2] == ("buildx", "build")

    def test_process_env_beats_dotenv(self, project, settings, fake_executor, monkeypatch):
        monkeypatch.delenv("MY_APP_INPUT_ENGINE", raising=False)
        monkeypatch.setenv("INPUT_ENGINE", "podman")
        (project.root / ".env").write_text("INPUT_ENGINE=buildx\n")

        run(BuildOptions(), project, settings=settings, executor=fake_executor)

        assert fake_executor.build_calls[0].command == "podman"

    def test_default_executor_receives_dotenv(self, project, settings, fake_executor, monkeypatch):
        """Build argument placeholders can be filled from the .env file."""
        monkeypatch.delenv("MY_APP_INPUT_ENGINE", raising=False)
        monkeypatch.delenv("INPUT_ENGINE", raising=False)
        monkeypatch.delenv("NPM_TOKEN", raising=False)
        (project.root / ".env").write_text("NPM_TOKEN=from-dotenv\n")
        created = {}

        def _executor(**kwargs):
            created.update(kwargs)
            return fake_executor

        monkeypatch.setattr("container_build.orchestrator.CommandExecutor", _executor)

        run(BuildOptions(build_args=["TOKEN=${NPM_TOKEN}"]), project, settings=settings)

        assert created["env"]["NPM_TOKEN"] == "from-dotenv"
        assert created["timeout"] == settings.build_timeout

    def test_local_export_without_image_id(self, project, settings, fake_executor):
        """A docker build exporting files succeeds without an image id."""
        fake_executor.write_iidfile = False

        result = run(
            BuildOptions(outputs=["type=local,dest=out"]),
            project,
            settings=settings,
            executor=fake_executor,
            environ={},
        )

        assert result.success is True
        assert result.outputs == {}
        assert _leftover_tmp_dirs(settings) == []

    def test_tmp_dir_unique_per_run(self, project, settings, fake_executor):
        """Each run uses its own temp directory."""
        run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})
        run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

        first, second = (
            c.args[c.args.index("--iidfile") + 1] for c in fake_executor.build_calls
        )
        assert Path(first).parent != Path(second).parent


class TestRunFailures:
    """Runs that fail still clean up."""

    def test_build_failure_message_and_cleanup(self, project, settings, fake_executor):
        """A failing build raises with the last stderr line; temp dir removed."""
        fake_executor.build_result = ExecResult(
            exit_code=1, stdout="", stderr="failed: no space left on device\n"
        )

        with pytest.raises(BuildExecutionError) as exc_info:
            run(
                BuildOptions(engine="docker", file="Dockerfile"),
                project,
                settings=settings,
                executor=fake_executor,
                environ={},
            )

        assert str(exc_info.value).endswith("no space left on device")
        assert _leftover_tmp_dirs(settings) == []

    def test_unknown_engine_spawns_nothing(self, project, settings, fake_executor):
        """Unknown engine fails before any process is spawned."""
        with pytest.raises(UnknownEngineError):
            run(
                BuildOptions(engine="foo"),
                project,
                settings=settings,
                executor=fake_executor,
                environ={},
            )

        assert fake_executor.calls == []
        assert _leftover_tmp_dirs(settings) == []

    def test_missing_dockerfile(self, project, settings, fake_executor):
        """A missing Dockerfile aborts before the engine is initialized."""
        with pytest.raises(DockerfileNotFoundError):
            run(
                BuildOptions(file="docker/Missing.Dockerfile"),
                project,
                settings=settings,
                executor=fake_executor,
                environ={},
            )

        assert fake_executor.calls == []

    def test_engine_init_failure(self, project, settings, fake_executor):
        """A failed engine probe aborts before the build command."""
        fake_executor.probe_result = ExecResult(
            exit_code=1, stdout="", stderr="Cannot connect to the Docker daemon\n"
        )

        with pytest.raises(EngineInitError, match="Cannot connect"):
            run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

        assert fake_executor.build_calls == []
        assert _leftover_tmp_dirs(settings) == []

    def test_finalize_failure_removes_tmp(self, project, settings, fake_executor):
        """Missing iid file raises EngineFinalizeError and still cleans up."""
        fake_executor.write_iidfile = False

        with pytest.raises(EngineFinalizeError):
            run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

        assert _leftover_tmp_dirs(settings) == []

    def test_unexpected_exception_cleans_up(self, project, settings, fake_executor):
        """Cleanup also runs when the executor raises an arbitrary error."""

        def _explode(build_command):
            fake_executor.calls.append(build_command)
            if "build" in build_command.args:
                raise RuntimeError("boom")
            return fake_executor.probe_result

        fake_executor.run = _explode

        with pytest.raises(RuntimeError, match="boom"):
            run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

        assert _leftover_tmp_dirs(settings) == []

    def test_cleanup_error_keeps_build_error(self, project, settings, fake_executor, monkeypatch):
        """A failing temp dir removal does not mask the build failure."""
        fake_executor.build_result = ExecResult(exit_code=1, stdout="", stderr="error: bad\n")

        def _deny(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("container_build.orchestrator.shutil.rmtree", _deny)

        with pytest.raises(BuildExecutionError, match="bad"):
            run(BuildOptions(), project, settings=settings, executor=fake_executor, environ={})

    def test_no_outputs_reported_on_failure(self, project, settings, fake_executor):
        """The reporter is never called when the build fails."""
        fake_executor.build_result = ExecResult(exit_code=2, stdout="", stderr="error: bad\n")
        reporter = MemoryOutputs()

        with pytest.raises(BuildExecutionError):
            run(
                BuildOptions(),
                project,
                settings=settings,
                executor=fake_executor,
                reporter=reporter,
                environ={},
            )

        assert reporter.values == {}


class TestMetadataGeneration:
    """Tests for the optional metadata collaborator."""

    def test_metadata_overrides_tags_and_labels(self, project, settings, fake_executor):
        """Generated tags/labels replace the supplied ones in the build args."""
        calls = []

        def generator(options, proj):
            calls.append((options, proj))
            return FakeMetadata(
                tags=["ghcr.io/acme/app:main", "ghcr.io/acme/app:sha-1234"],
                labels=["org.opencontainers.image.revision=1234"],
            )

        options = BuildOptions(
            tags=["app:manual"],
            labels=["stale=1"],
            metadata=MetadataOptions(images=["ghcr.io/acme/app"]),
        )

        run(
            options,
            project,
            settings=settings,
            executor=fake_executor,
            metadata_generator=generator,
            environ={},
        )

        [build] = fake_executor.build_calls
        args = list(build.args)
        tags = [args[i + 1] for i, a in enumerate(args) if a == "--tag"]
        labels = [args[i + 1] for i, a in enumerate(args) if a == "--label"]
        assert tags == ["ghcr.io/acme/app:main", "ghcr.io/acme/app:sha-1234"]
        assert labels == ["org.opencontainers.image.revision=1234"]
        assert calls[0][0].images == ["ghcr.io/acme/app"]
        assert calls[0][1] is project

    def test_not_requested_never_loads(self, project, settings, fake_executor, monkeypatch):
        """Without images, no generator is looked up."""

        def _fail(name):
            raise AssertionError("generator should not be loaded")

        monkeypatch.setattr("container_build.orchestrator.load_metadata_generator", _fail)

        result = run(
            BuildOptions(tags=["app:1"], metadata=MetadataOptions()),
            project,
            settings=settings,
            executor=fake_executor,
            environ={},
        )
        assert result.success is True

    def test_requested_but_unavailable(self, project, settings, fake_executor, monkeypatch):
        """Requested metadata with no generator installed is fatal."""
        monkeypatch.setattr(
            "container_build.metadata.entry_points", lambda group: []
        )

        with pytest.raises(MissingDependencyError):
            run(
                BuildOptions(metadata=MetadataOptions(images=["acme/app"])),
                project,
                settings=settings,
                executor=fake_executor,
                environ={},
            )

        assert fake_executor.build_calls == []
        assert _leftover_tmp_dirs(settings) == []


class TestEngineSubstitution:
    """Any conforming adapter works without orchestrator changes."""

    def test_registered_engine_is_used(self, project, settings, fake_executor):
        """A custom adapter registered with the factory drives the run."""

        class NerdctlEngine(EngineAdapter):
            name = "nerdctl"
            binary = "nerdctl"

            def get_args(self, inputs, defaults):
                return ["build", "--iidfile", str(defaults.tmp_dir / "iidfile"), inputs.context]

        EngineFactory.register("nerdctl", NerdctlEngine)
        try:
            result = run(
                BuildOptions(engine="NERDCTL"),
                project,
                settings=settings,
                executor=fake_executor,
                environ={},
            )
        finally:
            EngineFactory.unregister("nerdctl")

        assert fake_executor.build_calls[0].command == "nerdctl"
        assert result.outputs == {"imageid": IMAGE_ID}
