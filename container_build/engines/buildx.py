"""Extended builder adapter (``docker buildx build``).

Supports multi-platform builds, cache import/export, extra build contexts,
secrets, attestations and a metadata file from which the image digest is
read after the build.
"""

from __future__ import annotations

import json
import logging

from container_build.context import DefaultContext, ExecContext, InputContext
from container_build.engines.base import (
    EngineAdapter,
    iidfile_path,
    metadata_file_path,
    read_artifact,
)
from container_build.errors import EngineFinalizeError
from container_build.types import EngineProvider

logger = logging.getLogger(__name__)

DIGEST_KEY = "containerimage.digest"


class BuildxEngine(EngineAdapter):
    """Adapter for BuildKit builds through ``docker buildx``."""

    name = EngineProvider.BUILDX.value
    binary = "docker"

    def version_args(self) -> list[str]:
        return ["buildx", "version"]

    def initialize(self, inputs: InputContext, ctx: ExecContext) -> None:
        super().initialize(inputs, ctx)
        if inputs.builder:
            self.probe(["buildx", "inspect", inputs.builder], f"builder {inputs.builder!r} is not usable")

    def get_args(self, inputs: InputContext, defaults: DefaultContext) -> list[str]:
        args = [
            "buildx",
            "build",
            "--iidfile",
            str(iidfile_path(defaults.tmp_dir)),
            "--metadata-file",
            str(metadata_file_path(defaults.tmp_dir)),
        ]
        if inputs.builder:
            args += ["--builder", inputs.builder]
        if inputs.platforms:
            args += ["--platform", ",".join(inputs.platforms)]
        args += self.common_args(inputs)
        for source in inputs.cache_from:
            args += ["--cache-from", source]
        for dest in inputs.cache_to:
            args += ["--cache-to", dest]
        for build_context in inputs.build_contexts:
            args += ["--build-context", build_context]
        for secret in inputs.secret_files:
            secret_id, _, src = secret.partition("=")
            args += ["--secret", f"id={secret_id},src={src}"]
        for ssh in inputs.ssh:
            args += ["--ssh", ssh]
        for entitlement in inputs.allow:
            args += ["--allow", entitlement]
        if inputs.provenance:
            args += ["--provenance", inputs.provenance]
        if inputs.sbom:
            args += ["--sbom", inputs.sbom]
        if inputs.push:
            args.append("--push")
        if inputs.load:
            args.append("--load")
        args += self.engine_option_args(inputs)
        args.append(inputs.context)
        return args

    def finalize(self, inputs: InputContext, ctx: ExecContext) -> None:
        """Collect the iid file and the metadata file.

        Either may be missing depending on the outputs requested; only the
        absence of both is an error.

        Raises:
            EngineFinalizeError: If the build left neither artifact behind.
        """
        tmp = ctx.defaults.tmp_dir
        self._image_id = read_artifact(iidfile_path(tmp))
        metadata = read_artifact(metadata_file_path(tmp))
        self._metadata = None if metadata in (None, "null") else metadata
        if self._image_id is None and metadata is None:
            raise EngineFinalizeError(
                f"{self.name} build wrote neither an image id nor a metadata file in {tmp}"
            )

    def get_digest(self, metadata: str | None) -> str | None:
        if not metadata:
            return None
        try:
            data = json.loads(metadata)
        except json.JSONDecodeError:
            logger.warning("Build metadata is not valid JSON; digest unavailable")
            return None
        if not isinstance(data, dict):
            return None
        digest = data.get(DIGEST_KEY)
        return digest if isinstance(digest, str) and digest else None


__all__ = ["BuildxEngine"]
