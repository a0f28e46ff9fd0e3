"""Shared fixtures for container_build tests.

Engine binaries are never invoked: FakeExecutor records every command and
simulates what docker/buildx/podman would leave behind.
"""

from pathlib import Path

import pytest

from container_build.config import Settings
from container_build.context import ProjectContext
from container_build.types import BuildCommand, ExecResult

IMAGE_ID = "sha256:2f3c0e5b9a7d"
DIGEST = "sha256:9d1e4f0c7b2a"
BUILDX_METADATA = '{"containerimage.digest": "%s", "image.name": "app:latest"}' % DIGEST


def _flag_value(args: tuple[str, ...], flag: str) -> str | None:
    if flag in args:
        return args[args.index(flag) + 1]
    return None


class FakeExecutor:
    """Stand-in for CommandExecutor.

    Attributes:
        calls: Every BuildCommand received, in order.
        build_result: Result returned for the build command.
        probe_result: Result returned for any other command.
        write_iidfile: Write IMAGE_ID to --iidfile on a successful build.
        metadata: Content written to --metadata-file on a successful build.
    """

    def __init__(self) -> None:
        self.calls: list[BuildCommand] = []
        self.build_result = ExecResult(exit_code=0, stdout="", stderr="")
        self.probe_result = ExecResult(exit_code=0, stdout="24.0.7\n", stderr="")
        self.write_iidfile = True
        self.metadata: str | None = None

    @property
    def build_calls(self) -> list[BuildCommand]:
        return [c for c in self.calls if "build" in c.args]

    def run(self, build_command: BuildCommand) -> ExecResult:
        self.calls.append(build_command)
        if "build" not in build_command.args:
            return self.probe_result
        result = self.build_result
        if result.exit_code == 0 or not result.stderr:
            iidfile = _flag_value(build_command.args, "--iidfile")
            if iidfile and self.write_iidfile:
                Path(iidfile).write_text(IMAGE_ID + "\n")
            metadata_file = _flag_value(build_command.args, "--metadata-file")
            if metadata_file and self.metadata is not None:
                Path(metadata_file).write_text(self.metadata)
        return self.build_result


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace directory containing a Dockerfile."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "Dockerfile").write_text("FROM alpine:3.19\n")
    return root


@pytest.fixture
def project(workspace: Path) -> ProjectContext:
    return ProjectContext(root=workspace, project_name="my-app")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with temp directories rooted under tmp_path."""
    tmp_root = tmp_path / "tmp"
    tmp_root.mkdir()
    return Settings(tmp_dir=tmp_root, engine="docker")
