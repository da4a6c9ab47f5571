"""CLI commands for the Lumina photo editor."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..adjustments import ADJUSTMENT_FIELDS, AdjustmentSet
from ..batch import ARCHIVE_FILENAME, BatchPolicy, BatchQueue, BatchRunner, write_archive
from ..blender import blend
from ..errors import LuminaError
from ..pipeline import PixelPipeline
from ..presets import get_available_presets, get_preset
from ..session import DEFAULT_EXPORT_FILENAME
from ..straighten import session_straightener
from ..utils import load_image, save_image

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_overrides(pairs: Optional[List[str]]) -> Dict[str, float]:
    """Parse ``field=value`` pairs from the command line.

    Raises:
        ValueError: If a pair is malformed or names an unknown field
    """
    overrides = {}
    for pair in pairs or []:
        field, sep, value = pair.partition("=")
        field = field.strip()
        if not sep or field not in ADJUSTMENT_FIELDS:
            raise ValueError(f"Invalid adjustment '{pair}', expected one of {', '.join(ADJUSTMENT_FIELDS)} as field=value")
        overrides[field] = float(value)
    return overrides


def render_command(args: argparse.Namespace) -> int:
    """Run the render command.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        # Check if input file exists
        input_path = Path(args.input)
        if not input_path.exists():
            logger.error(f"Input file does not exist: {input_path}")
            return 1

        adjustments = AdjustmentSet()
        if args.preset:
            adjustments = blend(adjustments, get_preset(args.preset), args.intensity)

        overrides = parse_overrides(args.set)
        if args.auto_straighten:
            overrides["rotate"] = session_straightener(args.seed).estimate()
        if overrides:
            adjustments = adjustments.replace(**overrides)

        logger.info(f"Loading image: {input_path}")
        image = load_image(str(input_path))

        logger.info(f"Rendering with {adjustments!r}")
        result = PixelPipeline().render(image, adjustments)

        output_path = args.output or DEFAULT_EXPORT_FILENAME
        logger.info(f"Saving rendered image to: {output_path}")
        save_image(result, output_path)

        return 0
    except (LuminaError, ValueError) as e:
        logger.error(f"Error rendering image: {e}")
        return 1


def batch_command(args: argparse.Namespace) -> int:
    """Run the batch command.

    Args:
        args: Command line arguments

    Returns:
        Exit code: 0 if at least one image was processed, 1 otherwise
    """
    try:
        queue = BatchQueue()
        queue.add_files(args.inputs)

        policy = BatchPolicy.portra(
            apply_portra=not args.no_portra,
            auto_straighten=not args.no_straighten,
            seed=args.seed
        )
        runner = BatchRunner(queue, policy, config={'max_workers': args.workers})

        logger.info(f"Processing {len(queue)} images")
        summary = runner.run()

        output_path = args.output or ARCHIVE_FILENAME
        write_archive(output_path, queue)
        logger.info(f"Archive written to: {output_path}")

        print(json.dumps(summary.to_dict(), indent=2))
        return 0 if summary.done > 0 else 1
    except (LuminaError, ValueError, OSError) as e:
        logger.error(f"Error running batch: {e}")
        return 1


def presets_command(args: argparse.Namespace) -> int:
    """List the preset catalog."""
    presets = get_available_presets(include_auto=True)
    if args.json:
        print(json.dumps([preset.to_dict() for preset in presets], indent=2))
        return 0

    for preset in presets:
        values = ", ".join(f"{field}={value:g}" for field, value in preset.values.items() if value)
        print(f"{preset.id:<12} {preset.name:<14} {preset.description}")
        if values:
            print(f"{'':<12} {values}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the top-level argument parser."""
    parser = argparse.ArgumentParser(
        description="Film-style photo adjustments for single images and batches."
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Create parser for the "render" command
    render_parser = subparsers.add_parser(
        "render",
        help="Render a preset and/or adjustments onto one image"
    )
    render_parser.add_argument(
        "input",
        help="Input image file path"
    )
    render_parser.add_argument(
        "-p", "--preset",
        choices=[preset.id for preset in get_available_presets(include_auto=True)],
        help="Preset to apply"
    )
    render_parser.add_argument(
        "-i", "--intensity",
        type=float,
        default=100.0,
        help="Preset intensity from 0 to 100 (default: 100)"
    )
    render_parser.add_argument(
        "--set",
        action="append",
        metavar="FIELD=VALUE",
        help="Set an individual adjustment, e.g. --set exposure=20 (repeatable)"
    )
    render_parser.add_argument(
        "--auto-straighten",
        action="store_true",
        help="Apply a small automatic rotation"
    )
    render_parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for --auto-straighten"
    )
    render_parser.add_argument(
        "-o", "--output",
        help=f"Output image file path (defaults to '{DEFAULT_EXPORT_FILENAME}')"
    )

    # Create parser for the "batch" command
    batch_parser = subparsers.add_parser(
        "batch",
        help="Apply the batch policy to many images and bundle the results"
    )
    batch_parser.add_argument(
        "inputs",
        nargs="+",
        help="Input image file paths"
    )
    batch_parser.add_argument(
        "--no-portra",
        action="store_true",
        help="Do not apply the Portra Auto preset"
    )
    batch_parser.add_argument(
        "--no-straighten",
        action="store_true",
        help="Do not apply the per-photo auto-straighten tilt"
    )
    batch_parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Number of images rendered in parallel (default: 1)"
    )
    batch_parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for the auto-straighten tilt"
    )
    batch_parser.add_argument(
        "-o", "--output",
        help=f"Output archive path (defaults to '{ARCHIVE_FILENAME}')"
    )

    # Create parser for the "presets" command
    presets_parser = subparsers.add_parser(
        "presets",
        help="List available presets"
    )
    presets_parser.add_argument(
        "--json",
        action="store_true",
        help="Print presets as JSON"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Execute appropriate command
    if args.command == "render":
        return render_command(args)
    elif args.command == "batch":
        return batch_command(args)
    elif args.command == "presets":
        return presets_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
