"""Image transcoders.

A transcoder turns one source image into one derivative: shrink so the longest
side fits the tier bound, optionally blur, drop metadata and write a
progressive JPEG. Output goes to a hidden temp file next to the destination and
is moved into place only when the encoder succeeded, so a failed run never
leaves a truncated derivative behind.

Requires: ImageMagick (optional), Pillow
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from PIL import Image, ImageFilter

from .config import DerivativeSpec
from .errors import AssetIOError, TranscodeError
from .files import discard, ensure_parent, temp_path_for

logger = logging.getLogger("asset_mirror")

ENGINES = ("auto", "imagemagick", "pillow")


class Transcoder(Protocol):
    def transcode(self, source: Path, destination: Path, spec: DerivativeSpec) -> None:
        ...


def commit_output(tmp: Path, source: Path, destination: Path) -> None:
    """Move a finished temp file over the destination, or fail if nothing was written."""
    try:
        written = tmp.stat().st_size
    except FileNotFoundError:
        written = 0
    if written == 0:
        discard(tmp)
        raise TranscodeError("transcoder produced no output", source=source, destination=destination)
    try:
        os.replace(tmp, destination)
    except OSError as exc:
        discard(tmp)
        raise AssetIOError(f"could not move derivative into place: {exc}", source=source, destination=destination) from exc


# ---------- ImageMagick ----------

IMAGEMAGICK_CANDIDATES = ("convert", "magick")


def imagemagick_version(exe: str) -> Optional[str]:
    """Return the first line of `exe -version` if it is ImageMagick, else None."""
    try:
        proc = subprocess.run([exe, "-version"], capture_output=True, text=True, errors="replace")
    except OSError:
        return None
    banner = proc.stdout or proc.stderr
    if proc.returncode != 0 or "ImageMagick" not in banner:
        return None
    return banner.strip().splitlines()[0]


def find_imagemagick_bin(explicit: Optional[str] = None) -> Tuple[str, bool]:
    """Locate ImageMagick. IM7's `magick` front end needs `convert` as its first argument."""
    candidates = ([explicit] if explicit else []) + list(IMAGEMAGICK_CANDIDATES)
    for exe in candidates:
        version = imagemagick_version(exe)
        if version is None:
            continue
        logger.debug("Using %s (%s)", exe, version)
        return exe, Path(exe).name.lower().startswith("magick")
    raise TranscodeError("Could not find ImageMagick. Install it or pass --imagemagick-bin")


def build_convert_cmd(
    im_bin: str,
    requires_wrapper: bool,
    src: Path,
    dst: Path,
    spec: DerivativeSpec,
) -> List[str]:
    cmd = []
    if requires_wrapper:
        cmd += [im_bin, "convert"]
    else:
        cmd += [im_bin]
    cmd += [str(src), "-strip", "-interlace", "Plane"]
    if spec.blur:
        cmd += ["-gaussian-blur", f"{spec.blur:g}"]
    cmd += ["-quality", f"{spec.quality}%", "-resize", spec.resize_geometry]
    # explicit format prefix, the temp name does not end in .jpg
    cmd += [f"{spec.output_format}:{dst}"]
    return cmd


class ImageMagickTranscoder:
    def __init__(self, im_bin: str, requires_wrapper: bool = False, timeout: Optional[float] = None):
        self.im_bin = im_bin
        self.requires_wrapper = requires_wrapper
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"ImageMagickTranscoder({self.im_bin!r})"

    def transcode(self, source: Path, destination: Path, spec: DerivativeSpec) -> None:
        ensure_parent(destination)
        tmp = temp_path_for(destination)
        cmd = build_convert_cmd(self.im_bin, self.requires_wrapper, source, tmp, spec)
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True, errors="replace", timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            discard(tmp)
            raise TranscodeError(
                f"{spec.tier} transcode timed out after {self.timeout:g}s", source=source, destination=destination
            ) from None
        except OSError as exc:
            discard(tmp)
            raise TranscodeError(f"could not run {self.im_bin}: {exc}", source=source, destination=destination) from exc
        if proc.returncode != 0:
            discard(tmp)
            detail = proc.stderr.strip() or proc.stdout.strip()
            raise TranscodeError(
                f"{self.im_bin} exited with status {proc.returncode}: {detail}", source=source, destination=destination
            )
        commit_output(tmp, source, destination)


# ---------- Pillow ----------

def flatten_to_rgb(im: Image.Image) -> Image.Image:
    """JPEG has no alpha; composite transparent images onto white like ImageMagick does."""
    has_alpha = ("A" in im.mode) or (im.info.get("transparency") is not None)
    if not has_alpha:
        return im.convert("RGB")
    rgba = im.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


class PillowTranscoder:
    def __repr__(self) -> str:
        return "PillowTranscoder()"

    def transcode(self, source: Path, destination: Path, spec: DerivativeSpec) -> None:
        ensure_parent(destination)
        tmp = temp_path_for(destination)
        try:
            with Image.open(source) as im:
                img = flatten_to_rgb(im)
            img.thumbnail((spec.max_dimension, spec.max_dimension), Image.Resampling.LANCZOS)
            if spec.blur:
                img = img.filter(ImageFilter.GaussianBlur(spec.blur))
            # no exif/icc passed on save, which strips metadata
            img.save(tmp, spec.output_format, quality=spec.quality, optimize=True, progressive=True)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            discard(tmp)
            raise TranscodeError(f"{spec.tier} transcode failed: {exc}", source=source, destination=destination) from exc
        commit_output(tmp, source, destination)


def select_transcoder(
    engine: str = "auto",
    imagemagick_bin: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Transcoder:
    """Pick the transcoder for a run. Raises TranscodeError if ImageMagick is required but missing."""
    if engine not in ENGINES:
        raise ValueError(f"unknown engine {engine!r}, expected one of {', '.join(ENGINES)}")
    if engine == "pillow":
        return PillowTranscoder()
    try:
        im_bin, requires_wrapper = find_imagemagick_bin(imagemagick_bin)
    except TranscodeError:
        if engine == "imagemagick":
            raise
        logger.info("ImageMagick not found, falling back to Pillow")
        return PillowTranscoder()
    return ImageMagickTranscoder(im_bin, requires_wrapper, timeout=timeout)
