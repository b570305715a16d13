"""Source tree enumeration.

Walking and processing are separate: SourceTree only yields classified Asset
values, the pipeline decides what to do with them. Iterating a SourceTree a
second time walks the filesystem again.
"""

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from .config import IMAGE_EXTS

logger = logging.getLogger("asset_mirror")


class AssetKind(Enum):
    IMAGE = "image"
    PLAIN_FILE = "plain"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Asset:
    path: Path
    relative_path: Path
    size: int
    kind: AssetKind


def is_image_path(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTS


def classify(path: Path, mode: int) -> AssetKind:
    if not stat.S_ISREG(mode):
        return AssetKind.IGNORED
    if is_image_path(path):
        return AssetKind.IMAGE
    return AssetKind.PLAIN_FILE


class SourceTree:
    """Depth-first, sorted walk of every file under `root`, following directory links.

    Each real directory is entered once, so symlink cycles terminate. Directories
    listed in `exclude` (typically a destination root nested inside the source)
    are pruned. Entries that cannot be stat'ed or read are skipped.
    """

    def __init__(self, root: Path, exclude: Iterable[Path] = ()):
        self.root = Path(root)
        self.exclude: List[Path] = [Path(p).resolve() for p in exclude]

    def __iter__(self) -> Iterator[Asset]:
        return self.walk()

    def walk(self) -> Iterator[Asset]:
        seen: Set[Tuple[int, int]] = set()
        for dirpath, dirnames, filenames in os.walk(self.root, followlinks=True, onerror=self._on_error):
            current = Path(dirpath)
            try:
                st = current.stat()
            except OSError as exc:
                logger.debug("Skipping unreadable directory %s: %s", current, exc)
                dirnames[:] = []
                continue
            key = (st.st_dev, st.st_ino)
            if key in seen:
                dirnames[:] = []
                continue
            seen.add(key)
            dirnames[:] = sorted(d for d in dirnames if not self._is_excluded(current / d))
            for name in sorted(filenames):
                asset = self._make_asset(current / name)
                if asset is not None:
                    yield asset

    def _is_excluded(self, path: Path) -> bool:
        if not self.exclude:
            return False
        try:
            resolved = path.resolve()
        except OSError:
            return False
        return resolved in self.exclude

    def _make_asset(self, path: Path) -> Optional[Asset]:
        try:
            st = path.stat()
        except OSError as exc:
            logger.debug("Skipping unreadable entry %s: %s", path, exc)
            return None
        kind = classify(path, st.st_mode)
        if kind is not AssetKind.IGNORED and not os.access(path, os.R_OK):
            logger.debug("Skipping unreadable entry %s", path)
            return None
        return Asset(
            path=path,
            relative_path=path.relative_to(self.root),
            size=st.st_size,
            kind=kind,
        )

    @staticmethod
    def _on_error(exc: OSError) -> None:
        logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)
