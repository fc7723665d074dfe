"""
Image Writer - Encodes output images to disk with a JSON manifest
"""

import json
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

from ..rebuilder.image_model import ImageType, OutputImage

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {'webp': 'webp', 'png': 'png'}


class ImageWriter:
    """Writes output images as WebP (or PNG) files plus a manifest."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.format = config.get('format', 'webp').lower()
        self.lossless = config.get('lossless', True)
        self.quality = config.get('quality', 90)
        self.manifest_name = config.get('manifest', 'manifest.json')
        if self.format not in FORMAT_EXTENSIONS:
            raise ValueError(f"Unsupported output format: {self.format}")

    def filename(self, output: OutputImage) -> str:
        kind = 'region' if output.image_type == ImageType.REGION_RENDER else 'img'
        return f"page_{output.page_number}_{kind}_{output.index}.{FORMAT_EXTENSIONS[self.format]}"

    def write(self, outputs: List[OutputImage], output_dir: str,
              source: Optional[str] = None) -> bool:
        """
        Save every output image and the manifest.

        Args:
            outputs: Output records in final order
            output_dir: Destination directory, created if missing
            source: Source PDF path recorded in the manifest

        Returns:
            True if successful
        """
        directory = Path(output_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)

            entries = []
            for output in outputs:
                name = self.filename(output)
                self._save_image(output, directory / name)
                entry = output.to_dict()
                entry['file'] = name
                entries.append(entry)

            manifest = {'source': source, 'count': len(entries), 'images': entries}
            with open(directory / self.manifest_name, 'w', encoding='utf-8') as f:
                json.dump(manifest, f, indent=2)

            logger.info(f"Wrote {len(entries)} image(s) to: {directory}")
            return True

        except OSError as e:
            logger.error(f"Failed to write images to {directory}: {e}")
            return False

    def _save_image(self, output: OutputImage, path: Path):
        if self.format == 'webp':
            output.image.save(path, 'WEBP', lossless=self.lossless, quality=self.quality)
        else:
            output.image.save(path, 'PNG')
