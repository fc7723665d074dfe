"""
Region Renderer - Rasterizes overlap groups at a legible resolution
"""

import logging
from typing import Dict, Any, Sequence, Tuple

from PIL import Image

from ..rebuilder.image_model import ImageInfo, OverlapGroup

logger = logging.getLogger(__name__)

BASE_DPI = 72.0


def calculate_image_dpi(image: ImageInfo) -> float:
    """
    Native resolution of an image at its placement.

    Returns:
        The larger of the horizontal and vertical DPI, or 72 for a
        degenerate placement
    """
    width_inches = image.area.width / 72.0
    height_inches = image.area.height / 72.0
    if width_inches <= 0 or height_inches <= 0:
        return BASE_DPI
    return max(image.width / width_inches, image.height / height_inches)


class RegionRenderer:
    """
    Asks the page analyzer to rasterize a group's combined region.

    The resolution follows the sharpest member image, capped to bound
    memory, and is raised to a minimum when text or vectors take part.
    """

    def __init__(self, analyzer, config: Dict[str, Any]):
        """
        Initialize the renderer.

        Args:
            analyzer: Object providing render_region(page_index, region, dpi)
            config: Extraction configuration section
        """
        self.analyzer = analyzer
        self.min_dpi = float(config.get('text_overlap_min_dpi', 300))
        self.max_dpi = float(config.get('max_region_dpi', 600))

    def calculate_dpi(self, group: OverlapGroup, images: Sequence[ImageInfo]) -> float:
        """
        Target DPI for one group.

        Args:
            group: Overlap group
            images: All image occurrences, indexed by the group's members

        Returns:
            DPI to render at
        """
        dpi = BASE_DPI
        for index in group.image_indices:
            dpi = max(dpi, calculate_image_dpi(images[index]))
        dpi = min(dpi, self.max_dpi)

        if group.has_content_overlap:
            dpi = max(dpi, self.min_dpi)
        return dpi

    def render(self, group: OverlapGroup, images: Sequence[ImageInfo]) -> Tuple[Image.Image, float]:
        """
        Rasterize a group.

        Returns:
            (RGBA image, DPI used)

        Raises:
            RenderError: If the analyzer cannot render the region
        """
        dpi = self.calculate_dpi(group, images)
        logger.debug(f"Page {group.page_index + 1}: rendering group {group.image_indices} "
                     f"at {dpi:.0f} DPI")
        image = self.analyzer.render_region(group.page_index, group.combined_region, dpi)
        return image, dpi
