"""Tests for shared type definitions."""

from container_build.types import (
    BuildCommand,
    BuildOutputs,
    EngineProvider,
    ExecResult,
    OutputKey,
    RunResult,
)


class TestEnums:
    """Test enum values stay stable."""

    def test_engine_provider_values(self):
        assert EngineProvider.DOCKER.value == "docker"
        assert EngineProvider.BUILDX.value == "buildx"
        assert EngineProvider.PODMAN.value == "podman"

    def test_output_key_values(self):
        assert [k.value for k in OutputKey] == ["imageid", "digest", "metadata"]

    def test_str_enum(self):
        assert EngineProvider("podman") is EngineProvider.PODMAN
        assert OutputKey.IMAGE_ID == "imageid"


class TestBuildCommand:
    """Test BuildCommand dataclass."""

    def test_argv(self):
        cmd = BuildCommand("docker", ("build", "."))
        assert cmd.argv == ["docker", "build", "."]

    def test_str_quotes_arguments(self):
        cmd = BuildCommand("docker", ("build", "--label", "title=my app", "."))
        assert str(cmd) == "docker build --label 'title=my app' ."


class TestBuildOutputs:
    """Test BuildOutputs.items."""

    def test_all_absent(self):
        assert list(BuildOutputs().items()) == []

    def test_only_present_values(self):
        outputs = BuildOutputs(image_id="sha256:1", metadata="{}")
        assert list(outputs.items()) == [
            (OutputKey.IMAGE_ID, "sha256:1"),
            (OutputKey.METADATA, "{}"),
        ]

    def test_empty_string_is_absent(self):
        assert list(BuildOutputs(image_id="", digest="").items()) == []


class TestResults:
    def test_exec_result(self):
        result = ExecResult(exit_code=1, stdout="", stderr="x")
        assert result.exit_code == 1

    def test_run_result_defaults(self):
        result = RunResult(success=True)
        assert result.outputs == {}
