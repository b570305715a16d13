"""Command-line entry point: mirror an asset folder into a distribution folder."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import (
    DEFAULT_ASSET_PATH,
    DEFAULT_DESTINATION_PATH,
    DEFAULT_MAX_FILE_SIZE_MIB,
    DEFAULT_TRANSCODE_TIMEOUT,
    TIERS,
    RunConfig,
)
from .errors import SourceRootError, TranscodeError
from .pipeline import run, validate_source_root
from .transcode import ENGINES, select_transcoder

EXPECTED_SOURCE_NAME = "assets"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy an asset folder to a destination, converting images into standard, high-res and thumbnail JPEGs."
    )
    parser.add_argument("-a", "--asset-path", default=DEFAULT_ASSET_PATH, help="Path to the folder with original assets")
    parser.add_argument("-d", "--destination-path", default=DEFAULT_DESTINATION_PATH, help="Path to the destination folder")
    parser.add_argument("-m", "--max-file-size", type=float, default=DEFAULT_MAX_FILE_SIZE_MIB,
                        help="The maximum file size of copied non-image files in MiB")
    parser.add_argument("-c", "--clean", action="store_true",
                        help="Re-encode every image even if the derivative already exists")
    parser.add_argument("--threads", type=int, default=os.cpu_count() or 4, help="Worker threads")
    parser.add_argument("--engine", choices=ENGINES, default="auto",
                        help="Image engine. auto uses ImageMagick when available, otherwise Pillow")
    parser.add_argument("--imagemagick-bin", default=None, help='ImageMagick binary. For example "convert" or "magick"')
    parser.add_argument("--timeout", type=float, default=DEFAULT_TRANSCODE_TIMEOUT,
                        help="Seconds before an ImageMagick call is abandoned (0 disables)")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def confirm_source(source_root: Path, ask: Callable[[str], str] = input) -> bool:
    """Ask before processing a folder that is not called "assets"."""
    if source_root.name == EXPECTED_SOURCE_NAME:
        return True
    try:
        answer = ask(f'Program not started in a directory called "{EXPECTED_SOURCE_NAME}", do you want to continue? [y/N] ')
    except EOFError:
        return False
    return answer.strip() in ("y", "Y")


def main(argv: Optional[Sequence[str]] = None, ask: Callable[[str], str] = input) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    config = RunConfig.from_mib(
        source_root=Path(args.asset_path),
        destination_root=Path(args.destination_path),
        max_file_size_mib=args.max_file_size,
        clean=args.clean,
        threads=args.threads,
        transcode_timeout=args.timeout,
    )
    print(f"Processing files in {config.source_root}")

    try:
        validate_source_root(config.source_root)
    except SourceRootError as e:
        print(e, file=sys.stderr)
        return 1

    if not args.yes and not confirm_source(config.source_root, ask):
        return 0

    try:
        transcoder = select_transcoder(args.engine, args.imagemagick_bin, config.transcode_timeout)
    except TranscodeError as e:
        print(e, file=sys.stderr)
        return 1

    print(f"Destination: {config.destination_root}")
    print(f"Tiers: {', '.join(f'{s.tier} {s.max_dimension}px' for s in TIERS)}, engine={transcoder!r}")
    print(f"Threads={config.threads}, clean={'on' if config.clean else 'off'}, max copy size={args.max_file_size:g} MiB")

    try:
        summary = run(config, transcoder)
    except SourceRootError as e:
        print(e, file=sys.stderr)
        return 1
    print(summary.line())
    return 0


if __name__ == "__main__":
    sys.exit(main())
