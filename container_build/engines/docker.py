"""Standard docker builder adapter (``docker build``)."""

from __future__ import annotations

import logging

from container_build.context import DefaultContext, ExecContext, InputContext
from container_build.engines.base import EngineAdapter, iidfile_path, read_artifact
from container_build.errors import EngineInitError
from container_build.types import EngineProvider

logger = logging.getLogger(__name__)

IMAGE_EXPORTERS = frozenset({"image", "docker", "registry"})


def exports_image(outputs: tuple[str, ...]) -> bool:
    """Whether a build with these ``--output`` values produces an image.

    No outputs means the default image exporter. Outputs without a ``type=``
    field (a directory or ``-``) are local exports.
    """
    if not outputs:
        return True
    for output in outputs:
        for part in output.split(","):
            key, _, value = part.strip().partition("=")
            if key == "type" and value in IMAGE_EXPORTERS:
                return True
    return False


class DockerEngine(EngineAdapter):
    """Adapter for the classic ``docker build`` command.

    Builds a single platform, reports the image id through ``--iidfile`` and
    pushes tags with ``docker push`` when requested. It produces no build
    metadata, so metadata and digest are always absent.
    """

    name = EngineProvider.DOCKER.value
    binary = "docker"
    multi_platform = False

    def validate_inputs(self, inputs: InputContext) -> None:
        if len(inputs.platforms) > 1 and not self.multi_platform:
            raise EngineInitError(
                f"{self.name} engine builds a single platform, got "
                f"{', '.join(inputs.platforms)}; use the buildx engine instead"
            )
        if inputs.load:
            logger.debug("%s engine always loads the image; ignoring load", self.name)

    def get_args(self, inputs: InputContext, defaults: DefaultContext) -> list[str]:
        args = ["build", "--iidfile", str(iidfile_path(defaults.tmp_dir))]
        if inputs.platforms:
            args += ["--platform", ",".join(inputs.platforms)]
        args += self.common_args(inputs)
        args += self.engine_option_args(inputs)
        args.append(inputs.context)
        return args

    def finalize(self, inputs: InputContext, ctx: ExecContext) -> None:
        """Read the image id, push tags when requested.

        Local and tar exports write no iid file, so the image id is only
        required when an image exporter is in use.
        """
        if exports_image(inputs.outputs):
            super().finalize(inputs, ctx)
        else:
            self._image_id = read_artifact(iidfile_path(ctx.defaults.tmp_dir))
            logger.debug("%s build exported no image; image id not required", self.name)
        if inputs.push:
            self.push_tags(inputs)


__all__ = ["DockerEngine", "IMAGE_EXPORTERS", "exports_image"]
