"""Derivative generation for one source image.

Every image gets three tiers (standard, high, thumbnail). The destination for
each tier is derived from the same normalized base path. A tier is (re)built
when the run is clean or the file is missing; right after building, a
derivative that came out larger than the original is replaced by the original.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .config import TIERS, DerivativeSpec, RunConfig
from .errors import SelfCopyError
from .fallback import reconcile
from .files import ensure_parent, same_file
from .paths import map_destination, tier_path
from .transcode import Transcoder
from .walker import Asset

logger = logging.getLogger("asset_mirror")

GENERATED = "generated"
FALLBACK = "fallback"
SKIPPED = "skipped"


@dataclass(frozen=True)
class ConversionTask:
    asset: Asset
    spec: DerivativeSpec
    destination: Path
    regenerate: bool


@dataclass
class ImageResult:
    asset: Asset
    outcomes: List[Tuple[ConversionTask, str]] = field(default_factory=list)

    def count(self, outcome: str) -> int:
        return sum(1 for _, o in self.outcomes if o == outcome)

    @property
    def generated(self) -> int:
        # fallbacks were generated too, they just lost the size comparison
        return self.count(GENERATED) + self.count(FALLBACK)

    def status(self) -> str:
        name = self.asset.relative_path.as_posix()
        if self.generated == 0:
            return f"SKIP  {name} up to date"
        tiers = " ".join(f"{task.spec.tier}:{outcome}" for task, outcome in self.outcomes)
        return f"DONE  {name} -> {tiers}"


def derivative_paths(asset: Asset, config: RunConfig) -> List[Path]:
    base = map_destination(asset.path, config.source_root, config.destination_root)
    return [tier_path(base, spec) for spec in TIERS]


def plan_tasks(asset: Asset, config: RunConfig) -> List[ConversionTask]:
    tasks = []
    for spec, destination in zip(TIERS, derivative_paths(asset, config)):
        regenerate = config.clean or not destination.exists()
        tasks.append(ConversionTask(asset=asset, spec=spec, destination=destination, regenerate=regenerate))
    return tasks


def generate(task: ConversionTask, transcoder: Transcoder) -> bool:
    """Transcode one tier and apply the size fallback. Returns True if the original was kept."""
    source = task.asset.path
    if same_file(source, task.destination):
        raise SelfCopyError("derivative would overwrite its source image", source=source, destination=task.destination)
    ensure_parent(task.destination)
    transcoder.transcode(source, task.destination, task.spec)
    return reconcile(task.destination, source)


def process_image(asset: Asset, config: RunConfig, transcoder: Transcoder) -> ImageResult:
    """Build the missing (or, for clean runs, all) tiers of `asset`.

    The first failing tier raises and the remaining tiers of this asset are not
    attempted.
    """
    result = ImageResult(asset=asset)
    for task in plan_tasks(asset, config):
        if not task.regenerate:
            logger.debug("Keeping existing %s derivative %s", task.spec.tier, task.destination)
            result.outcomes.append((task, SKIPPED))
            continue
        fell_back = generate(task, transcoder)
        result.outcomes.append((task, FALLBACK if fell_back else GENERATED))
    return result
