import threading
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from asset_mirror.config import RunConfig
from asset_mirror.errors import TranscodeError
from asset_mirror.walker import Asset, classify


class FakeTranscoder:
    """Writes a fixed number of bytes per tier instead of encoding an image.

    Without an explicit size a tier comes out at half the source size.
    """

    def __init__(self, sizes: Optional[Dict[str, int]] = None, fail_on: Iterable[str] = ()):
        self.sizes = dict(sizes or {})
        self.fail_on = set(fail_on)
        self.calls = []
        self._lock = threading.Lock()

    def transcode(self, source: Path, destination: Path, spec) -> None:
        with self._lock:
            self.calls.append((source, destination, spec.tier))
        if spec.tier in self.fail_on:
            raise TranscodeError("fake failure", source=source, destination=destination)
        size = self.sizes.get(spec.tier)
        if size is None:
            size = max(1, source.stat().st_size // 2)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"J" * size)

    def tiers_called(self):
        return [tier for _, _, tier in self.calls]


@pytest.fixture
def fake_transcoder_cls():
    return FakeTranscoder


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "assets"
    root.mkdir()
    return root


@pytest.fixture
def dest_root(tmp_path: Path) -> Path:
    return tmp_path / "dist" / "assets"


@pytest.fixture
def config(source_root: Path, dest_root: Path) -> RunConfig:
    return RunConfig(source_root=source_root, destination_root=dest_root, size_cutoff=1000)


@pytest.fixture
def make_asset(source_root: Path):
    def _make(relative: str, data: bytes = b"x" * 100, root: Optional[Path] = None) -> Asset:
        base = root or source_root
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        st = path.stat()
        return Asset(path=path, relative_path=Path(relative), size=st.st_size, kind=classify(path, st.st_mode))

    return _make


def snapshot(root: Path) -> Dict[str, bytes]:
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def tree_snapshot():
    return snapshot
