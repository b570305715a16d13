"""Per-asset error kinds.

Everything raised while processing a single asset derives from AssetError so
the pipeline can report it and move on to the next file.
"""

from pathlib import Path
from typing import Optional


class SourceRootError(Exception):
    """The source root is missing or not a directory. Fatal for the whole run."""


class AssetError(Exception):
    """Failure scoped to one source asset."""

    def __init__(self, message: str, source: Optional[Path] = None, destination: Optional[Path] = None):
        self.message = message
        self.source = source
        self.destination = destination
        super().__init__(self.__str__())

    def __str__(self) -> str:
        parts = [self.message]
        if self.source is not None:
            parts.append(f"source: {self.source}")
        if self.destination is not None:
            parts.append(f"destination: {self.destination}")
        return ", ".join(parts)


class PathError(AssetError):
    """Source path outside the source root, or missing a required name/extension."""


class TranscodeError(AssetError):
    """The image transcoder failed or produced no output."""


class AssetIOError(AssetError):
    """Directory creation, copy or metadata read failed."""


class SelfCopyError(AssetError):
    """Source and destination resolve to the same file."""


class CollisionError(AssetError):
    """Destination already claimed by a different source file in this run."""
