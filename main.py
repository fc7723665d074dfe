#!/usr/bin/env python3
"""
Rulebook Image Extractor - Main Entry Point
Extracts the illustrations of a rulebook PDF as standalone image files.
"""

import sys
import argparse
import logging
from pathlib import Path
import yaml
from typing import Dict, Any

from rulebook_images import ImageExtractionPipeline, ExtractionError
from rulebook_images.generator import ImageWriter
from rulebook_images.rebuilder import ImageType


def setup_logging(level: str = "INFO"):
    """
    Setup logging configuration.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('rulebook_images.log')
        ]
    )


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary
    """
    if config_path and Path(config_path).exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    # Default config path
    default_config = Path(__file__).parent / 'config' / 'config.yaml'
    if default_config.exists():
        with open(default_config, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    # Fallback to minimal config
    return {
        'extraction': {
            'min_image_size': 32,
            'background_area_threshold': 0.9,
            'background_min_pages': 2,
            'text_overlap_min_dpi': 300,
            'max_region_dpi': 600,
            'region_renders': True,
        },
        'output': {'format': 'webp', 'lossless': True, 'quality': 90, 'manifest': 'manifest.json'},
    }


def extract_pdf_images(pdf_path: str, output_dir: str, config: Dict[str, Any]) -> bool:
    """
    Extract the images of a PDF into a directory.

    Args:
        pdf_path: Path to input PDF file
        output_dir: Directory for image files and manifest
        config: Configuration dictionary

    Returns:
        True if successful
    """
    logger = logging.getLogger(__name__)

    try:
        pipeline = ImageExtractionPipeline(config.get('extraction', {}))
        outputs = pipeline.run(pdf_path)

        writer = ImageWriter(config.get('output', {}))
        if not writer.write(outputs, output_dir, source=pdf_path):
            logger.error("Failed to write images")
            return False

        counts = {image_type: 0 for image_type in ImageType}
        for output in outputs:
            counts[output.image_type] += 1

        logger.info("=" * 60)
        logger.info("Extraction complete!")
        logger.info(f"Input:          {pdf_path}")
        logger.info(f"Output:         {output_dir}")
        logger.info(f"Individual:     {counts[ImageType.INDIVIDUAL]}")
        logger.info(f"Background:     {counts[ImageType.BACKGROUND]}")
        logger.info(f"Region renders: {counts[ImageType.REGION_RENDER]}")
        logger.info("=" * 60)

        return True

    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}", exc_info=True)
        return False


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Extract illustrations from rulebook PDF files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py rulebook.pdf images/
  python main.py rulebook.pdf images/ --config custom_config.yaml
  python main.py rulebook.pdf images/ --min-dpi 200 --log-level DEBUG
        """
    )

    parser.add_argument('input', help='Input PDF file path')
    parser.add_argument('output', help='Output directory for extracted images')
    parser.add_argument('--config', help='Path to configuration file')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--min-dpi', type=int, help='Minimum DPI for regions overlapping text or vectors')
    parser.add_argument('--max-dpi', type=int, help='DPI ceiling for region renders')
    parser.add_argument('--no-region-renders', action='store_true',
                        help='Emit individual images only')

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    # Validate input file
    if not Path(args.input).exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    # Load configuration
    config = load_config(args.config)
    extraction = config.setdefault('extraction', {})

    # Override with command line arguments
    if args.min_dpi:
        extraction['text_overlap_min_dpi'] = args.min_dpi
    if args.max_dpi:
        extraction['max_region_dpi'] = args.max_dpi
    if args.no_region_renders:
        extraction['region_renders'] = False

    success = extract_pdf_images(args.input, args.output, config)

    return 0 if success else 1


if __name__ == '__main__':
    sys.exit(main())
