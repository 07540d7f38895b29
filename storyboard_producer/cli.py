"""
CLI: Storyboard Producer
========================

Command-line tool for generating a storyboard video.

Usage:
    storyboard-producer --scene "A fox wakes up" --scene "The fox runs into the forest"
    storyboard-producer --storyboard story.yaml --transition fade -o fox.mp4
    storyboard-producer -s "Walking" -s "Running" --style noir \\
        --character "Detective in trench coat" -r refs/detective.png --music score.mp3
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .core.config import Config, StoryboardConfig, TransitionKind
from .core.exceptions import AllScenesFailedError, StoryboardError
from .workflow import StoryboardProducer, StoryboardResult

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="storyboard-producer",
        description="Generate a video from a storyboard of scene descriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -s "A fox wakes up" -s "The fox runs into the forest"
  %(prog)s --storyboard story.yaml --transition cut
  %(prog)s -s "Walking" -s "Running" --style noir -r refs/hero.png --music score.mp3
        """,
    )

    # Scenes
    parser.add_argument(
        "-s", "--scene",
        action="append",
        dest="scenes",
        help="Scene description, in order (can be specified multiple times)",
    )
    parser.add_argument(
        "--storyboard",
        help="Storyboard YAML file (flags given on the command line override it)",
    )

    # Consistency
    parser.add_argument(
        "--style",
        help="Visual style applied to every scene (e.g. 'film noir')",
    )
    parser.add_argument(
        "--character",
        help="Character description prefixed to every scene",
    )
    parser.add_argument(
        "-r", "--reference",
        action="append",
        dest="references",
        help="Reference image path, up to 3 (can be specified multiple times)",
    )

    # Video settings
    parser.add_argument(
        "--aspect-ratio",
        choices=sorted(StoryboardConfig.VALID_ASPECT_RATIOS),
        help="Aspect ratio (default: 16:9)",
    )
    parser.add_argument(
        "--transition",
        choices=[kind.value for kind in TransitionKind],
        help="Transition between scenes (default: crossfade)",
    )
    parser.add_argument(
        "--transition-duration",
        type=float,
        help="Transition length in seconds (default: 0.5)",
    )

    # Audio
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="Generate scenes without audio",
    )
    parser.add_argument(
        "--music",
        help="Background music file mixed under the final video",
    )
    parser.add_argument(
        "--music-volume",
        type=float,
        help="Background music volume from 0.0 to 1.0 (default: 0.5)",
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Output file path (default: auto-generated)",
    )

    # Config
    parser.add_argument(
        "--config",
        help="Path to config file",
    )
    parser.add_argument(
        "--api-key",
        help=f"Gemini API key (default: generation.api_key, then ${API_KEY_ENV})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def build_storyboard(args: argparse.Namespace) -> StoryboardConfig:
    """Merge the storyboard file (if any) with command line overrides."""
    data = StoryboardConfig.load(args.storyboard).to_dict() if args.storyboard else {}
    audio = dict(data.get("audio") or {})

    overrides = {
        "scenes": args.scenes,
        "style": args.style,
        "character_description": args.character,
        "reference_images": args.references,
        "aspect_ratio": args.aspect_ratio,
        "transition": args.transition,
        "transition_duration": args.transition_duration,
        "output_path": args.output,
    }
    data.update({key: value for key, value in overrides.items() if value is not None})

    if args.no_audio:
        audio["generate_audio"] = False
    if args.music is not None:
        audio["background_music"] = args.music
    if args.music_volume is not None:
        audio["music_volume"] = args.music_volume
    data["audio"] = audio

    return StoryboardConfig.from_dict(data)


def build_config(args: argparse.Namespace) -> Config:
    """Load configuration and resolve the API key."""
    config = Config.load(args.config)
    api_key = args.api_key or config.generation.api_key or os.getenv(API_KEY_ENV)
    if api_key:
        config.generation.api_key = api_key
    return config


def print_result(result: StoryboardResult) -> None:
    print("\n" + "-" * 50)
    print(f"Video saved: {result.video_path}")
    print(f"Scenes: {result.success_count} succeeded, {result.failure_count} failed")
    for timing in result.scene_times:
        status = "failed" if timing.index in result.failures else "ok"
        print(f"  Scene {timing.scene}: {timing.elapsed:.1f}s ({status})")
    for index, error in sorted(result.failures.items()):
        print(f"  Scene {index + 1} error: {error}")
    print(f"Total time: {result.total_time:.1f}s")
    if result.metadata_path:
        print(f"Metadata: {result.metadata_path}")
    print("=" * 50)


async def run(args: argparse.Namespace) -> int:
    """Run one storyboard and return the process exit code."""
    try:
        config = build_config(args)
        storyboard = build_storyboard(args)
    except StoryboardError as e:
        print(f"Error: {e}")
        return 1

    logger.debug(f"Configuration: {config.to_dict()}")

    if not config.generation.api_key:
        print(f"Error: no API key. Pass --api-key or set {API_KEY_ENV}")
        return 1

    print("=" * 50)
    print("Storyboard Video Producer")
    print("=" * 50)
    print(f"Scenes: {len(storyboard.scenes)}")
    print(f"Transition: {storyboard.transition.value}")
    if storyboard.style:
        print(f"Style: {storyboard.style}")

    try:
        async with StoryboardProducer(config) as producer:
            result = await producer.generate_storyboard(storyboard)
    except AllScenesFailedError as e:
        print(f"\nError: {e}")
        for index, error in sorted(e.failures.items()):
            print(f"  Scene {index + 1}: {error}")
        return 1
    except StoryboardError as e:
        print(f"\nError: {e}")
        return 1

    print_result(result)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Request logging would print the URL of every poll
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not args.scenes and not args.storyboard:
        print("Error: Either --scene or --storyboard is required")
        return 1

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nCancelled")
        return 130


if __name__ == "__main__":
    sys.exit(main())
