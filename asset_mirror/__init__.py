"""Mirror an asset tree, turning images into sized JPEG derivatives."""

from .config import TIERS, DerivativeSpec, RunConfig
from .derivatives import ConversionTask, ImageResult, process_image
from .errors import (
    AssetError,
    AssetIOError,
    CollisionError,
    PathError,
    SelfCopyError,
    SourceRootError,
    TranscodeError,
)
from .pipeline import RunSummary, run
from .transcode import ImageMagickTranscoder, PillowTranscoder, Transcoder, select_transcoder
from .walker import Asset, AssetKind, SourceTree

__version__ = "0.1.0"

__all__ = [
    "Asset",
    "AssetError",
    "AssetIOError",
    "AssetKind",
    "CollisionError",
    "ConversionTask",
    "DerivativeSpec",
    "ImageMagickTranscoder",
    "ImageResult",
    "PathError",
    "PillowTranscoder",
    "RunConfig",
    "RunSummary",
    "SelfCopyError",
    "SourceRootError",
    "SourceTree",
    "TIERS",
    "TranscodeError",
    "Transcoder",
    "process_image",
    "run",
    "select_transcoder",
]
