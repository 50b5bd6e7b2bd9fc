#!/usr/bin/env python3
"""
Real-time avatar tracking CLI.

Usage:
    python -m avatar_control.cli.run \
        --camera 0 \
        --output frames.txt

    python -m avatar_control.cli.run \
        --replay session.jsonl \
        --output -
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from typing import List, Optional

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Drive avatar pose and expression from face tracking",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Input arguments
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--replay",
        type=str,
        default=None,
        metavar="PATH",
        help="Play back a recorded JSON-lines session instead of the camera",
    )
    source.add_argument(
        "--camera",
        type=int,
        default=0,
        help="Camera device ID",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Path to face_landmarker.task (downloaded if not specified)",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Loop the replay file",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML or JSON)",
    )

    # Output arguments
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        metavar="PATH",
        help="Where to write encoded frames ('-' for stdout)",
    )

    # Processing arguments
    parser.add_argument(
        "--smoothing",
        type=float,
        default=None,
        help="Per-tick smoothing coefficient (0, 1]",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=None,
        help="Tick rate cap (0 for uncapped)",
    )
    parser.add_argument(
        "--face-timeout",
        type=float,
        default=None,
        help="Seconds without a face before easing to neutral",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for blink timing",
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=None,
        help="Stop after this many frames",
    )

    # Misc arguments
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--create-config",
        type=str,
        default=None,
        metavar="PATH",
        help="Create a default config file and exit",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace):
    """Load the config file (or defaults) and apply command line overrides."""
    from avatar_control.config import load_config

    config = load_config(args.config)

    overrides = {}
    if args.smoothing is not None:
        overrides["smoothing_coefficient"] = args.smoothing
    if args.fps is not None:
        overrides["target_fps"] = args.fps if args.fps > 0 else None
    if args.face_timeout is not None:
        overrides["face_timeout"] = args.face_timeout
    if args.seed is not None:
        overrides["seed"] = args.seed

    return replace(config, **overrides) if overrides else config


def build_detector(args: argparse.Namespace):
    if args.replay:
        from avatar_control.detectors.replay import ReplayDetector
        return ReplayDetector.from_file(args.replay, loop=args.loop)

    from avatar_control.detectors.mediapipe_detector import MediaPipeDetector
    return MediaPipeDetector(camera_id=args.camera, model_path=args.model)


async def run_async(args: argparse.Namespace) -> int:
    from avatar_control.appliers import StreamApplier
    from avatar_control.controller import FrameOrchestrator
    from avatar_control.detectors.base import DetectorUnavailableError

    config = build_config(args)
    detector = build_detector(args)
    applier = StreamApplier.to_path(args.output)

    orchestrator = FrameOrchestrator(detector, applier, config=config)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, orchestrator.stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's event loop
            pass

    try:
        async with orchestrator:
            logger.info("Starting tracking loop (Ctrl+C to stop)")
            await orchestrator.run(max_frames=args.max_frames)
    except DetectorUnavailableError as e:
        logger.error(f"Failed to initialize detector: {e}")
        detector.close()
        applier.close()
        return 1

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tracking CLI."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    if args.create_config:
        from avatar_control.config import create_default_config
        create_default_config(args.create_config)
        logger.info(f"Created default config at: {args.create_config}")
        return 0

    try:
        return asyncio.run(run_async(args))
    except (FileNotFoundError, ImportError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
