"""Small filesystem helpers that turn OSError into per-asset errors."""

import os
import shutil
from pathlib import Path

from .errors import AssetIOError


def ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise AssetIOError(f"could not create directory {path.parent}: {exc}", destination=path) from exc


def file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        raise AssetIOError(f"could not read size: {exc}", source=path) from exc


def copy_bytes(source: Path, destination: Path) -> None:
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise AssetIOError(f"copy failed: {exc}", source=source, destination=destination) from exc


def same_file(a: Path, b: Path) -> bool:
    if a.resolve() == b.resolve():
        return True
    try:
        return os.path.samefile(a, b)
    except OSError:
        # destination does not exist yet
        return False


def temp_path_for(target: Path) -> Path:
    return target.with_name(f".{target.name}.tmp")


def discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy through a temp sibling so `destination` is either the old file or a full copy."""
    tmp = temp_path_for(destination)
    try:
        shutil.copyfile(source, tmp)
        os.replace(tmp, destination)
    except OSError as exc:
        discard(tmp)
        raise AssetIOError(f"copy failed: {exc}", source=source, destination=destination) from exc
