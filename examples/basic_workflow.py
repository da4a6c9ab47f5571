"""Basic workflow example for Lumina.

Renders every preset at a few intensities, then runs a small batch over the
same image and writes the archive.
"""

import os
import argparse
import logging
from pathlib import Path

from lumina import AdjustmentSet, BatchPolicy, BatchQueue, BatchRunner, blend, get_available_presets, load_image, render, save_image
from lumina.batch import write_archive

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    """Run the basic workflow example."""
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="Lumina basic workflow example")
    parser.add_argument("input", help="Input image file path")
    parser.add_argument("-o", "--output", help="Output directory (defaults to 'output')")
    args = parser.parse_args()

    # Check if input file exists
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file does not exist: {input_path}")
        return 1

    # Create output directory
    output_dir = Path(args.output or "output")
    os.makedirs(output_dir, exist_ok=True)

    # Step 1: Load the image
    logger.info(f"Loading image: {input_path}")
    image = load_image(str(input_path))

    # Step 2: Render each preset at several intensities
    for preset in get_available_presets(include_auto=True):
        for intensity in (50, 100):
            adjustments = blend(AdjustmentSet(), preset, intensity)
            styled_path = output_dir / f"{preset.id}_{intensity}_{input_path.stem}.png"
            save_image(render(image, adjustments), str(styled_path))
            logger.info(f"Saved '{preset.name}' at {intensity}% to: {styled_path}")

    # Step 3: Run a batch of three copies with the default policy
    queue = BatchQueue()
    for _ in range(3):
        queue.add(str(input_path))
    summary = BatchRunner(queue, BatchPolicy.portra()).run()
    archive_path = write_archive(str(output_dir / "batch.zip"), queue)
    logger.info(f"Batch finished ({summary.done} done, {summary.error} failed): {archive_path}")

    return 0


if __name__ == "__main__":
    main()
