"""Command-line entry point for the page gallery builder."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_FORMAT_PRIORITY, GalleryConfig
from .discovery import FormatAwareDiscoveryLoader
from .gallery import DEFAULT_VIEWPORT, Gallery, GalleryReport
from .images import build_fetcher
from .models import ImageCandidate
from .observability import DebugTracker
from .viewport import Viewport

logger = logging.getLogger("pagefolio.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return ("build",)
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return ("build", *argv)


def _parse_formats(value: str) -> List[str]:
    formats = [item.strip() for item in value.split(",") if item.strip()]
    if not formats:
        raise argparse.ArgumentTypeError("at least one format is required")
    return formats


def _add_discovery_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "base",
        nargs="?",
        default=".",
        help="Gallery root: a local folder or an http(s) URL (default: current directory)",
    )
    parser.add_argument(
        "--image-folder",
        default="images",
        help="Folder under the base that holds one sub-folder per format",
    )
    parser.add_argument(
        "--formats",
        type=_parse_formats,
        default=list(DEFAULT_FORMAT_PRIORITY),
        help="Comma-separated format priority (default: avif,webp,png)",
    )
    parser.add_argument("--prefix", default="page_", help="Page filename prefix")
    parser.add_argument(
        "--padding", type=int, default=2, help="Zero padding of page numbers"
    )
    parser.add_argument(
        "--max-pages", type=int, default=100, help="Highest page number to probe"
    )
    parser.add_argument(
        "--max-failures",
        type=int,
        default=5,
        help="Stop after this many consecutive missing pages",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_build_arguments(parser: argparse.ArgumentParser) -> None:
    _add_discovery_arguments(parser)
    parser.add_argument(
        "--output",
        default="gallery.html",
        type=Path,
        help="File the rendered gallery HTML is written to",
    )
    parser.add_argument(
        "--hotspots",
        default="config/hotspots.txt",
        help="Hotspot config location, relative to the base",
    )
    parser.add_argument(
        "--animations",
        default="config/animations.txt",
        help="Animation config location, relative to the base",
    )
    parser.add_argument(
        "--icons",
        default="assets/icons",
        help="Folder under the base that holds animation SVG icons",
    )
    parser.add_argument(
        "--viewport-width",
        type=int,
        default=DEFAULT_VIEWPORT[0],
        help="Viewport width used for layout and hotspot geometry",
    )
    parser.add_argument(
        "--viewport-height",
        type=int,
        default=DEFAULT_VIEWPORT[1],
        help="Viewport height used for visibility",
    )
    parser.add_argument(
        "--goto",
        type=int,
        default=None,
        help="Resolve a deep link to this page before writing the output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print a summary of renders and requests when finished",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discover numbered page images and build a progressive gallery page.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build", help="Discover pages, render the gallery and write it as HTML"
    )
    _add_build_arguments(build_parser)

    probe_parser = subparsers.add_parser(
        "probe", help="List discovered pages and the format each was found in"
    )
    _add_discovery_arguments(probe_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_config(args: argparse.Namespace) -> GalleryConfig:
    kwargs = dict(
        base=args.base,
        image_folder=args.image_folder,
        formats=tuple(args.formats),
        filename_prefix=args.prefix,
        filename_padding=args.padding,
        max_pages=args.max_pages,
        max_consecutive_failures=args.max_failures,
        fetch_timeout=args.timeout,
    )
    if getattr(args, "hotspots", None):
        kwargs["hotspot_file"] = args.hotspots
    if getattr(args, "animations", None):
        kwargs["animation_file"] = args.animations
    if getattr(args, "icons", None):
        kwargs["icons_folder"] = args.icons
    return GalleryConfig(**kwargs)


async def build_gallery(
    config: GalleryConfig,
    viewport: Viewport,
    goto: Optional[int] = None,
    tracker: Optional[DebugTracker] = None,
) -> Tuple[Gallery, GalleryReport]:
    gallery = Gallery(config, viewport=viewport, sink=tracker)
    await gallery.start()
    if goto is not None:
        result = await gallery.navigate(goto)
        if result is not None and result.found:
            logger.info("Deep link resolved to page %d", goto)
        else:
            logger.warning("Deep link to page %d could not be resolved", goto)
    await gallery.wait_until_loaded()
    return gallery, gallery.report()


async def probe_pages(config: GalleryConfig) -> List[ImageCandidate]:
    loader = FormatAwareDiscoveryLoader(config, build_fetcher(config.base))
    found: List[ImageCandidate] = []
    while True:
        candidate = await loader.next()
        if candidate is None:
            break
        found.append(candidate)
    loader.finalize()
    return found


def _run_build(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    viewport = Viewport(args.viewport_width, args.viewport_height, layout=config.layout)
    tracker = DebugTracker() if args.debug else None
    gallery, report = asyncio.run(build_gallery(config, viewport, args.goto, tracker))

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(gallery.to_html(), encoding="utf-8")

    logger.info(
        "Finished in %.2fs (%d pages, %d failed, %d hotspots, %d animations) -> %s",
        report.total_seconds,
        report.page_count,
        len(report.failed_pages),
        report.hotspot_count,
        report.animation_count,
        output,
    )
    if args.verbose:
        for page_number, fmt in sorted(report.formats.items()):
            logger.debug("Page %d -> %s", page_number, fmt)

    if tracker is not None:
        sys.stdout.write(tracker.summary() + "\n")
        sys.stdout.flush()
    return 1 if report.no_content else 0


def _run_probe(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    candidates = asyncio.run(probe_pages(config))
    for candidate in candidates:
        sniffed = candidate.sniffed_format or "-"
        sys.stdout.write(
            f"{candidate.page_number}\t{candidate.format}\t{candidate.path}\t{sniffed}\n"
        )
    sys.stdout.flush()
    return 0 if candidates else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "probe":
        return _run_probe(args)
    return _run_build(args)


if __name__ == "__main__":
    sys.exit(main())
