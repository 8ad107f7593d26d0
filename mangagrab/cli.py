"""Command-line entry point for the episode downloader."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .config import (
    DEFAULT_NUM_CONNECTIONS,
    DEFAULT_REQUEST_TIMEOUT,
    Compression,
    ImageFormat,
    PipelineConfig,
    SaveFormat,
)
from .errors import MangaGrabError
from .pipeline import download_episode

logger = logging.getLogger("mangagrab.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("episode", *argv)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _add_episode_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Episode URL on a supported site")
    parser.add_argument(
        "--output-dir",
        default=".",
        type=Path,
        help="Directory where the episode should be written",
    )
    parser.add_argument(
        "--save-as",
        choices=[fmt.value for fmt in SaveFormat],
        default=SaveFormat.RAW.value,
        help="Container for the pages (default: raw image files)",
    )
    parser.add_argument(
        "--format",
        choices=[fmt.value for fmt in ImageFormat],
        default=ImageFormat.PNG.value,
        help="Image encoding for each page",
    )
    parser.add_argument(
        "--compression",
        choices=[method.value for method in Compression],
        default=Compression.DEFLATED.value,
        help="Compression method for zip and cbz archives",
    )
    parser.add_argument(
        "--connections",
        type=_positive_int,
        default=DEFAULT_NUM_CONNECTIONS,
        help="Maximum number of concurrent page downloads",
    )
    parser.add_argument(
        "--threads",
        type=_positive_int,
        default=None,
        help="Worker threads for decryption and image processing (default: CPU count)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace an existing output with the same name",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide progress bars",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download manga episodes from supported web viewers.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    episode_parser = subparsers.add_parser(
        "episode", help="Download a single episode"
    )
    _add_episode_arguments(episode_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    options = dict(
        num_connections=args.connections,
        request_timeout=args.timeout,
        save_as=SaveFormat(args.save_as),
        image_format=ImageFormat(args.format),
        compression=Compression(args.compression),
        overwrite=args.overwrite,
        progress=not args.no_progress,
    )
    if args.threads is not None:
        options["num_threads"] = args.threads
    return PipelineConfig(**options)


def _run_episode(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid options: %s", exc)
        return 1

    try:
        result = asyncio.run(download_episode(args.url, config, output_dir=args.output_dir))
    except MangaGrabError as exc:
        logger.error("Download failed: %s", exc)
        return 1

    logger.info(
        "Saved %d pages of %s to %s in %.2fs",
        result.page_count,
        result.title or result.episode_id,
        result.destination,
        result.total_seconds,
    )
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "episode":
        sys.exit(_run_episode(args))


if __name__ == "__main__":
    main()
