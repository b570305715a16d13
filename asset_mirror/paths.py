"""Source-to-destination path mapping. Pure functions, no filesystem access."""

from pathlib import Path

from .config import LOSSY_EXT, PNG_EXT, DerivativeSpec
from .errors import PathError


def relative_to_root(source: Path, source_root: Path) -> Path:
    try:
        return Path(source).relative_to(source_root)
    except ValueError:
        raise PathError(f"path is not under source root {source_root}", source=Path(source)) from None


def normalize_extension(path: Path) -> Path:
    """Rewrite a .png extension (any case) to the lossy container; leave the rest alone."""
    if path.suffix.lower() == PNG_EXT:
        return path.with_suffix(LOSSY_EXT)
    return path


def map_destination(source: Path, source_root: Path, dest_root: Path) -> Path:
    relative = relative_to_root(source, source_root)
    return normalize_extension(Path(dest_root) / relative)


def tier_path(base: Path, spec: DerivativeSpec) -> Path:
    """Insert the tier suffix before the extension of an already normalized base path.

    photo.jpg -> photo.jpg, photo_high.jpg, photo_thumb.jpg
    """
    if not base.stem or base.name in (".", ".."):
        raise PathError("destination has no file name", destination=base)
    if not base.suffix:
        raise PathError("destination has no extension", destination=base)
    if not spec.suffix:
        return base
    return base.with_name(f"{base.stem}{spec.suffix}{base.suffix}")
