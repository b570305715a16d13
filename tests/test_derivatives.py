from pathlib import Path

import pytest

from asset_mirror.config import RunConfig
from asset_mirror.derivatives import FALLBACK, GENERATED, SKIPPED, plan_tasks, process_image
from asset_mirror.errors import AssetIOError, SelfCopyError, TranscodeError


def test_plan_tasks_orders_tiers_and_maps_paths(config, make_asset, dest_root: Path) -> None:
    asset = make_asset("gallery/photo.PNG")
    tasks = plan_tasks(asset, config)
    assert [t.spec.tier for t in tasks] == ["standard", "high", "thumbnail"]
    assert [t.destination for t in tasks] == [
        dest_root / "gallery/photo.jpg",
        dest_root / "gallery/photo_high.jpg",
        dest_root / "gallery/photo_thumb.jpg",
    ]
    assert all(t.regenerate for t in tasks)


def test_process_image_generates_all_tiers(config, make_asset, dest_root: Path, fake_transcoder_cls) -> None:
    asset = make_asset("photo.jpg", b"x" * 400)
    transcoder = fake_transcoder_cls()

    result = process_image(asset, config, transcoder)

    assert transcoder.tiers_called() == ["standard", "high", "thumbnail"]
    assert [o for _, o in result.outcomes] == [GENERATED, GENERATED, GENERATED]
    for name in ("photo.jpg", "photo_high.jpg", "photo_thumb.jpg"):
        assert (dest_root / name).read_bytes() == b"J" * 200
    assert result.status().startswith("DONE  photo.jpg")


def test_existing_tiers_are_skipped(config, make_asset, dest_root: Path, fake_transcoder_cls) -> None:
    asset = make_asset("photo.jpg")
    dest_root.mkdir(parents=True)
    (dest_root / "photo.jpg").write_bytes(b"old")
    (dest_root / "photo_thumb.jpg").write_bytes(b"old")
    transcoder = fake_transcoder_cls()

    result = process_image(asset, config, transcoder)

    assert transcoder.tiers_called() == ["high"]
    assert [o for _, o in result.outcomes] == [SKIPPED, GENERATED, SKIPPED]
    assert (dest_root / "photo.jpg").read_bytes() == b"old"


def test_all_tiers_present_reports_up_to_date(config, make_asset, dest_root: Path, fake_transcoder_cls) -> None:
    asset = make_asset("photo.jpg")
    dest_root.mkdir(parents=True)
    for name in ("photo.jpg", "photo_high.jpg", "photo_thumb.jpg"):
        (dest_root / name).write_bytes(b"old")

    result = process_image(asset, config, fake_transcoder_cls())

    assert result.generated == 0
    assert result.status() == "SKIP  photo.jpg up to date"


def test_clean_regenerates_existing_tiers(source_root, dest_root, make_asset, fake_transcoder_cls) -> None:
    config = RunConfig(source_root=source_root, destination_root=dest_root, clean=True)
    asset = make_asset("photo.jpg", b"x" * 10)
    dest_root.mkdir(parents=True)
    for name in ("photo.jpg", "photo_high.jpg", "photo_thumb.jpg"):
        (dest_root / name).write_bytes(b"old")
    transcoder = fake_transcoder_cls()

    process_image(asset, config, transcoder)

    assert transcoder.tiers_called() == ["standard", "high", "thumbnail"]
    assert (dest_root / "photo_high.jpg").read_bytes() == b"J" * 5


def test_oversized_thumbnail_falls_back_to_original(config, make_asset, dest_root, fake_transcoder_cls) -> None:
    original = bytes(range(250)) * 2
    asset = make_asset("photo.PNG", original)
    transcoder = fake_transcoder_cls(sizes={"standard": 300, "high": 480, "thumbnail": 520})

    result = process_image(asset, config, transcoder)

    assert [o for _, o in result.outcomes] == [GENERATED, GENERATED, FALLBACK]
    assert (dest_root / "photo_thumb.jpg").read_bytes() == original
    assert (dest_root / "photo.jpg").read_bytes() == b"J" * 300


def test_tier_failure_stops_remaining_tiers(config, make_asset, dest_root, fake_transcoder_cls) -> None:
    asset = make_asset("photo.jpg")
    transcoder = fake_transcoder_cls(fail_on={"high"})

    with pytest.raises(TranscodeError):
        process_image(asset, config, transcoder)

    assert transcoder.tiers_called() == ["standard", "high"]
    assert (dest_root / "photo.jpg").exists()
    assert not (dest_root / "photo_thumb.jpg").exists()


def test_refuses_to_transcode_onto_source(source_root, make_asset, fake_transcoder_cls) -> None:
    config = RunConfig(source_root=source_root, destination_root=source_root, clean=True)
    asset = make_asset("photo.jpg", b"original")
    transcoder = fake_transcoder_cls()

    with pytest.raises(SelfCopyError):
        process_image(asset, config, transcoder)

    assert transcoder.calls == []
    assert asset.path.read_bytes() == b"original"


def test_interrupted_fallback_is_rebuilt_next_run(config, make_asset, dest_root, fake_transcoder_cls, monkeypatch) -> None:
    original = b"o" * 500
    asset = make_asset("photo.jpg", original)
    transcoder = fake_transcoder_cls(sizes={"standard": 100, "high": 100, "thumbnail": 520})

    def broken_copy(src, dst):
        Path(dst).write_bytes(b"o" * 3)
        raise OSError(5, "Input/output error")

    with monkeypatch.context() as m:
        m.setattr("asset_mirror.files.shutil.copyfile", broken_copy)
        with pytest.raises(AssetIOError):
            process_image(asset, config, transcoder)
    assert not (dest_root / "photo_thumb.jpg").exists()

    retry = fake_transcoder_cls(sizes={"thumbnail": 520})
    result = process_image(asset, config, retry)

    assert retry.tiers_called() == ["thumbnail"]
    assert [o for _, o in result.outcomes] == [SKIPPED, SKIPPED, FALLBACK]
    assert (dest_root / "photo_thumb.jpg").read_bytes() == original
