"""Verbatim copy of non-image files, gated by size."""

import logging
from pathlib import Path

from .config import RunConfig
from .errors import SelfCopyError
from .files import copy_bytes, ensure_parent, same_file
from .paths import map_destination
from .walker import Asset

logger = logging.getLogger("asset_mirror")


def plain_destination(asset: Asset, config: RunConfig) -> Path:
    return map_destination(asset.path, config.source_root, config.destination_root)


def copy_plain_file(asset: Asset, config: RunConfig) -> bool:
    """Copy `asset` to its mirrored destination.

    Returns False when the file was skipped for being at or above the size
    cutoff. Raises SelfCopyError before touching anything if the destination is
    the source itself.
    """
    destination = plain_destination(asset, config)
    if same_file(asset.path, destination):
        raise SelfCopyError("source and destination paths are the same", source=asset.path, destination=destination)
    if asset.size >= config.size_cutoff:
        logger.debug("Skipping %s: %d bytes >= cutoff %d", asset.relative_path, asset.size, config.size_cutoff)
        return False
    ensure_parent(destination)
    copy_bytes(asset.path, destination)
    return True
