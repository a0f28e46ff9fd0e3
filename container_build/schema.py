"""Pydantic models for build option validation.

This module defines the options accepted by a build run, whether they come
from CLI flags or from a YAML/JSON options file.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

BUILD_ARG_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


class MetadataOptions(BaseModel):
    """Configuration handed to the metadata generation collaborator.

    Only ``images`` is interpreted here; every other key is passed through
    untouched to the generator.

    Attributes:
        images: Image names to generate tags for. Generation is requested
            only when this list is non-empty.
        tags: Tag rules understood by the generator.
        labels: Extra labels to merge into the generated ones.
        flavor: Global tag flavor rules.
    """

    model_config = ConfigDict(extra="allow")

    images: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    flavor: list[str] = Field(default_factory=list)

    @property
    def requested(self) -> bool:
        """Whether metadata generation should run."""
        return bool(self.images)


class BuildOptions(BaseModel):
    """Schema for the options of a single build run.

    List-valued options keep the order given by the user; that order is
    preserved in the generated command line.
    """

    model_config = ConfigDict(extra="forbid")

    # Sources
    file: str | None = Field(default=None, description="Path to the Dockerfile")
    context: str | None = Field(default=None, description="Build context path or URL")

    # Image identity
    tags: list[str] = Field(default_factory=list, description="Image tags")
    labels: list[str] = Field(default_factory=list, description="Image labels (KEY=VALUE)")
    build_args: list[str] = Field(
        default_factory=list, description="Build-time variables (KEY=VALUE)"
    )
    target: str | None = Field(default=None, description="Target build stage")

    # Engine selection
    engine: str | None = Field(default=None, description="Build engine provider")
    engine_options: dict[str, str] = Field(
        default_factory=dict,
        description="Engine-specific flags passed through as --key value",
    )
    builder: str | None = Field(default=None, description="Named buildx builder instance")

    # Platforms and exports
    platforms: list[str] = Field(default_factory=list, description="Target platforms")
    outputs: list[str] = Field(default_factory=list, description="Output destinations")
    push: bool = Field(default=False, description="Push the image after building")
    load: bool = Field(default=False, description="Load the image into the local store")

    # Build behaviour
    pull: bool = Field(default=False, description="Always attempt to pull base images")
    no_cache: bool = Field(default=False, description="Do not use cache")
    quiet: bool = Field(default=False, description="Suppress build output")
    network: str | None = Field(default=None, description="Networking mode for RUN")
    add_hosts: list[str] = Field(default_factory=list, description="Custom host-to-IP mappings")
    shm_size: str | None = Field(default=None, description="Size of /dev/shm")
    ulimits: list[str] = Field(default_factory=list, description="Ulimit options")
    cgroup_parent: str | None = Field(default=None, description="Parent cgroup")

    # Extended builder options
    cache_from: list[str] = Field(default_factory=list, description="External cache sources")
    cache_to: list[str] = Field(default_factory=list, description="Cache export destinations")
    build_contexts: list[str] = Field(
        default_factory=list, description="Additional build contexts (name=path)"
    )
    secret_files: list[str] = Field(
        default_factory=list, description="Secret files exposed to the build (id=path)"
    )
    ssh: list[str] = Field(default_factory=list, description="SSH agent sockets or keys")
    allow: list[str] = Field(default_factory=list, description="Extra privileged entitlements")
    provenance: str | None = Field(default=None, description="Provenance attestation")
    sbom: str | None = Field(default=None, description="SBOM attestation")

    # Collaborators
    metadata: MetadataOptions | None = Field(
        default=None, description="Metadata generation configuration"
    )

    @field_validator("build_args", "labels")
    @classmethod
    def validate_key_value(cls, v: list[str]) -> list[str]:
        """Validate entries are KEY=VALUE pairs."""
        for item in v:
            if "=" not in item:
                raise ValueError(f"expected KEY=VALUE, got '{item}'")
        return v

    @field_validator("build_args")
    @classmethod
    def validate_build_arg_names(cls, v: list[str]) -> list[str]:
        """Validate build-arg names are valid identifiers."""
        for item in v:
            if not BUILD_ARG_PATTERN.match(item):
                raise ValueError(f"invalid build-arg name in '{item}'")
        return v

    @field_validator("secret_files", "build_contexts")
    @classmethod
    def validate_named_paths(cls, v: list[str]) -> list[str]:
        """Validate entries are name=path pairs."""
        for item in v:
            name, _, path = item.partition("=")
            if not name or not path:
                raise ValueError(f"expected name=path, got '{item}'")
        return v

    @field_validator("engine")
    @classmethod
    def normalize_engine(cls, v: str | None) -> str | None:
        """Treat blank engine names as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()


__all__ = ["BuildOptions", "MetadataOptions"]
