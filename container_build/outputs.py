"""Build output reporting.

Reporters receive ``(key, value)`` pairs for the image id, digest and
metadata of a build, each at most once per run.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class OutputReporter(Protocol):
    """Accepts build outputs."""

    def set_output(self, key: str, value: str) -> None: ...


class MemoryOutputs:
    """Keeps reported outputs in a dict."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    def set_output(self, key: str, value: str) -> None:
        self.values[key] = value


class FileOutputs(MemoryOutputs):
    """Appends outputs to a file using the CI ``key=value`` convention.

    Multi-line values are written as a heredoc block with a random
    delimiter::

        metadata<<ghadelimiter_<uuid>
        {...}
        ghadelimiter_<uuid>
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    def set_output(self, key: str, value: str) -> None:
        super().set_output(key, value)
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            entry = f"{key}<<{delimiter}\n{value}\n{delimiter}\n"
        else:
            entry = f"{key}={value}\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(entry)
        logger.debug("Wrote output %s to %s", key, self.path)


__all__ = ["FileOutputs", "MemoryOutputs", "OutputReporter"]
