"""One pass over the source tree.

The walk happens on the calling thread; each asset is then handled
independently, optionally on a bounded thread pool. Destinations are claimed in
walk order before any work is scheduled, so when two sources map to the same
destination the first one wins and the second is reported as a collision.
"""

import concurrent.futures as cf
import logging
import sys
from dataclasses import dataclass
from os.path import normcase
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .config import RunConfig
from .copier import copy_plain_file, plain_destination
from .derivatives import FALLBACK, SKIPPED, ImageResult, derivative_paths, process_image
from .errors import AssetError, CollisionError, SourceRootError
from .transcode import Transcoder
from .walker import Asset, AssetKind, SourceTree

logger = logging.getLogger("asset_mirror")


@dataclass
class AssetOutcome:
    asset: Asset
    status: str
    image: Optional[ImageResult] = None
    copied: bool = False
    error: Optional[AssetError] = None


@dataclass
class RunSummary:
    images: int = 0
    generated: int = 0
    fallbacks: int = 0
    tiers_skipped: int = 0
    copied: int = 0
    too_large: int = 0
    ignored: int = 0
    errors: int = 0

    def add(self, outcome: AssetOutcome) -> None:
        if outcome.error is not None:
            self.errors += 1
        elif outcome.image is not None:
            self.images += 1
            self.generated += outcome.image.generated
            self.fallbacks += outcome.image.count(FALLBACK)
            self.tiers_skipped += outcome.image.count(SKIPPED)
        elif outcome.copied:
            self.copied += 1
        else:
            self.too_large += 1

    def line(self) -> str:
        return (
            f"Images: {self.images} (derivatives generated {self.generated}, original kept {self.fallbacks}, "
            f"up to date {self.tiers_skipped}), copied: {self.copied}, over size limit: {self.too_large}, "
            f"ignored: {self.ignored}, errors: {self.errors}"
        )


def print_outcome(outcome: AssetOutcome) -> None:
    print(outcome.status, file=sys.stderr if outcome.error is not None else sys.stdout)


def validate_source_root(path: Path) -> None:
    if not path.exists():
        raise SourceRootError(f"Asset path does not exist: {path}")
    if not path.is_dir():
        raise SourceRootError(f"Asset path is not a directory: {path}")


class DestinationClaims:
    """Remembers which source owns each destination path during a run.

    Keys are case-folded where the platform folds case, so a.JPG and a.jpg
    collide on Windows.
    """

    def __init__(self):
        self._owners: Dict[str, Path] = {}

    def claim(self, asset: Asset, destinations: Iterable[Path]) -> None:
        destinations = list(destinations)
        for dst in destinations:
            owner = self._owners.get(normcase(str(dst)))
            if owner is not None and owner != asset.path:
                raise CollisionError(f"destination already written from {owner}", source=asset.path, destination=dst)
        for dst in destinations:
            self._owners[normcase(str(dst))] = asset.path


def destinations_for(asset: Asset, config: RunConfig) -> List[Path]:
    if asset.kind is AssetKind.IMAGE:
        return derivative_paths(asset, config)
    return [plain_destination(asset, config)]


def failed(asset: Asset, exc: AssetError) -> AssetOutcome:
    logger.debug("Failed to process %s", asset.path, exc_info=exc)
    return AssetOutcome(asset=asset, status=f"ERR   {asset.relative_path.as_posix()}: {exc}", error=exc)


def process_asset(asset: Asset, config: RunConfig, transcoder: Transcoder) -> AssetOutcome:
    """Handle one image or plain file. Per-asset errors become an ERR outcome."""
    name = asset.relative_path.as_posix()
    try:
        if asset.kind is AssetKind.IMAGE:
            image = process_image(asset, config, transcoder)
            return AssetOutcome(asset=asset, status=image.status(), image=image)
        if copy_plain_file(asset, config):
            return AssetOutcome(asset=asset, status=f"COPY  {name}", copied=True)
        return AssetOutcome(asset=asset, status=f"SKIP  {name} is over the size limit")
    except AssetError as exc:
        return failed(asset, exc)
    except Exception as exc:
        wrapped = AssetError(f"unexpected {type(exc).__name__}: {exc}", source=asset.path)
        wrapped.__cause__ = exc
        return failed(asset, wrapped)


def source_tree_for(config: RunConfig) -> SourceTree:
    exclude = []
    dest = config.destination_root
    if dest != config.source_root:
        try:
            dest.relative_to(config.source_root)
        except ValueError:
            pass
        else:
            exclude.append(dest)
    return SourceTree(config.source_root, exclude=exclude)


def run(
    config: RunConfig,
    transcoder: Transcoder,
    report: Callable[[AssetOutcome], None] = print_outcome,
) -> RunSummary:
    """Mirror config.source_root into config.destination_root.

    Raises SourceRootError before doing anything if the source root is unusable.
    Every other failure is per asset and only shows up in the summary.
    """
    validate_source_root(config.source_root)
    summary = RunSummary()
    claims = DestinationClaims()

    def finish(outcome: AssetOutcome) -> None:
        summary.add(outcome)
        report(outcome)

    def admitted(tree: SourceTree):
        for asset in tree:
            if asset.kind is AssetKind.IGNORED:
                logger.debug("Ignoring %s", asset.path)
                summary.ignored += 1
                continue
            try:
                claims.claim(asset, destinations_for(asset, config))
            except AssetError as exc:
                finish(failed(asset, exc))
                continue
            yield asset

    tree = source_tree_for(config)
    if config.threads <= 1:
        for asset in admitted(tree):
            finish(process_asset(asset, config, transcoder))
        return summary

    with cf.ThreadPoolExecutor(max_workers=config.threads) as ex:
        futures = [ex.submit(process_asset, asset, config, transcoder) for asset in admitted(tree)]
        for fut in cf.as_completed(futures):
            finish(fut.result())
    return summary
