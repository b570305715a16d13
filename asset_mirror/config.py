"""Run configuration and the fixed derivative tiers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

MIB = 2 ** 20

DEFAULT_ASSET_PATH = "./"
DEFAULT_DESTINATION_PATH = "../dist/assets/"
DEFAULT_MAX_FILE_SIZE_MIB = 20
DEFAULT_TRANSCODE_TIMEOUT = 300.0

IMAGE_EXTS = {".jpg", ".jpeg", ".png"}
LOSSY_EXT = ".jpg"
PNG_EXT = ".png"


@dataclass(frozen=True)
class DerivativeSpec:
    """One derivative tier: bound on the longest side, quality and blur."""

    tier: str
    max_dimension: int
    quality: int
    blur: Optional[float]
    suffix: str
    output_format: str = "JPEG"

    @property
    def resize_geometry(self) -> str:
        # ">" only ever shrinks
        return f"{self.max_dimension}x{self.max_dimension}>"


STANDARD = DerivativeSpec(tier="standard", max_dimension=1920, quality=85, blur=0.05, suffix="")
HIGH = DerivativeSpec(tier="high", max_dimension=3840, quality=85, blur=None, suffix="_high")
THUMBNAIL = DerivativeSpec(tier="thumbnail", max_dimension=640, quality=85, blur=0.01, suffix="_thumb")

# Processing order matters only for reporting; tiers never read each other's output.
TIERS: Tuple[DerivativeSpec, ...] = (STANDARD, HIGH, THUMBNAIL)


@dataclass(frozen=True)
class RunConfig:
    """Settings for one pass over the source tree. Built once, never mutated."""

    source_root: Path
    destination_root: Path
    size_cutoff: int = DEFAULT_MAX_FILE_SIZE_MIB * MIB
    clean: bool = False
    threads: int = 1
    transcode_timeout: Optional[float] = DEFAULT_TRANSCODE_TIMEOUT

    @classmethod
    def from_mib(
        cls,
        source_root: Path,
        destination_root: Path,
        max_file_size_mib: float = DEFAULT_MAX_FILE_SIZE_MIB,
        clean: bool = False,
        threads: Optional[int] = None,
        transcode_timeout: Optional[float] = DEFAULT_TRANSCODE_TIMEOUT,
    ) -> "RunConfig":
        if threads is None:
            threads = os.cpu_count() or 4
        if transcode_timeout is not None and transcode_timeout <= 0:
            transcode_timeout = None
        return cls(
            source_root=Path(source_root).resolve(),
            destination_root=Path(destination_root).resolve(),
            size_cutoff=int(max_file_size_mib * MIB),
            clean=clean,
            threads=max(1, threads),
            transcode_timeout=transcode_timeout,
        )
