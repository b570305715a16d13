"""Replace a freshly generated derivative with the original when it came out bigger."""

import logging
from pathlib import Path

from .errors import AssetIOError
from .files import atomic_copy, discard, file_size

logger = logging.getLogger("asset_mirror")


def reconcile(derivative: Path, source: Path) -> bool:
    """Overwrite `derivative` with the bytes of `source` if the derivative is larger.

    Returns True when the original was substituted. Equal sizes keep the derivative.
    If the substitution fails the oversized derivative is removed, so the next
    incremental run builds the tier again instead of trusting it.
    """
    derivative_size = file_size(derivative)
    source_size = file_size(source)
    if derivative_size <= source_size:
        return False
    logger.debug(
        "Derivative %s (%d bytes) larger than original (%d bytes), using original",
        derivative,
        derivative_size,
        source_size,
    )
    try:
        atomic_copy(source, derivative)
    except AssetIOError:
        discard(derivative)
        raise
    return True
