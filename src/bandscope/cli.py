"""
Command-line band analysis.

Analyzes an audio file frame by frame and writes a JSON band manifest.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from bandscope.core.config import (
    AnalyzerConfig,
    BandStrategy,
    get_preset,
    load_config,
    load_presets,
)
from bandscope.pipeline import BandPipeline

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> AnalyzerConfig:
    """Preset or config file first, then individual overrides."""
    if args.config is not None:
        config = load_config(args.config)
    else:
        config = get_preset(args.preset) or AnalyzerConfig()

    overrides = {}
    if args.bands is not None:
        overrides["num_bands"] = args.bands
    if args.strategy is not None:
        overrides["strategy"] = BandStrategy(args.strategy)
    if args.sample_size is not None:
        overrides["sample_size"] = args.sample_size
    if args.start_frequency is not None:
        overrides["start_frequency"] = args.start_frequency
    if args.end_frequency is not None:
        overrides["end_frequency"] = args.end_frequency

    return replace(config, **overrides).clamped()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="bandscope",
        description="Analyze an audio file into smoothed, normalized frequency bands",
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, mp3, flac)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output JSON file (default: <audio>_bands.json)",
    )

    parser.add_argument(
        "-p", "--preset",
        choices=sorted(load_presets()),
        default="spectrum",
        help="Analyzer preset (default: spectrum)",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Analyzer config JSON file (overrides --preset)",
    )

    parser.add_argument(
        "-b", "--bands",
        type=int,
        default=None,
        help="Number of bands",
    )

    parser.add_argument(
        "-s", "--strategy",
        choices=[s.value for s in BandStrategy],
        default=None,
        help="Banding strategy",
    )

    parser.add_argument(
        "--sample-size",
        type=int,
        default=None,
        help="Spectrum size in bins (power of two, 64-8192)",
    )

    parser.add_argument("--start-frequency", type=float, default=None, help="Lowest band edge in Hz")
    parser.add_argument("--end-frequency", type=float, default=None, help="Highest band edge in Hz")

    parser.add_argument(
        "-f", "--fps",
        type=int,
        default=60,
        help="Analysis frames per second (default: 60)",
    )

    parser.add_argument(
        "--max-duration",
        type=float,
        default=None,
        help="Analyze at most this many seconds",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        return 1
    if args.config is not None and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1

    output = args.output
    if output is None:
        output = args.audio.with_name(f"{args.audio.stem}_bands.json")

    pipeline = BandPipeline(build_config(args), target_fps=args.fps)
    pipeline.process_to_file(args.audio, output, max_duration=args.max_duration)
    return 0


if __name__ == "__main__":
    sys.exit(main())
