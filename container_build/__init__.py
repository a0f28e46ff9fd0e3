"""Container Build - engine-agnostic container image build orchestration.

This package drives a container image build through one of several
interchangeable build engines (docker, docker buildx, podman) and normalizes
their results into image id, digest and metadata outputs.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
