"""
Image Generator - Assembles the final ordered set of output images
"""

import logging
from collections import defaultdict
from typing import List, Dict, Any, Optional, Sequence, Set

from ..errors import RenderError, SurfaceError
from ..rebuilder.image_model import ImageInfo, ImageSignature, ImageType, OutputImage, OverlapGroup
from .pixel_converter import PixelConverter
from .region_renderer import RegionRenderer

logger = logging.getLogger(__name__)


class ImageGenerator:
    """
    Produces OutputImage records page by page.

    Every kept occurrence becomes an Individual (or Background) image;
    each overlap group additionally becomes one RegionRender. Within a
    page, individual images come first in draw order, then region renders.
    """

    def __init__(self, config: Dict[str, Any], renderer: Optional[RegionRenderer] = None,
                 converter: Optional[PixelConverter] = None):
        """
        Initialize the generator.

        Args:
            config: Extraction configuration section
            renderer: Region renderer; None disables region renders
            converter: Pixel converter for standalone images
        """
        self.min_image_size = config.get('min_image_size', 32)
        self.region_renders = config.get('region_renders', True)
        self.renderer = renderer
        self.converter = converter or PixelConverter()

    def generate(self, images: Sequence[ImageInfo],
                 backgrounds: Set[ImageSignature],
                 skipped: Set[int],
                 groups: Dict[int, List[OverlapGroup]]) -> List[OutputImage]:
        """
        Build the output images of a document.

        Args:
            images: All image occurrences
            backgrounds: Background signatures
            skipped: Positions of repeated backgrounds to leave out
            groups: Page index -> overlap groups on that page

        Returns:
            Output records ordered by page then within-page index
        """
        by_page: Dict[int, List[int]] = defaultdict(list)
        for position, image in enumerate(images):
            by_page[image.page_index].append(position)

        outputs: List[OutputImage] = []
        for page_index in sorted(set(by_page) | set(groups)):
            positions = sorted(by_page.get(page_index, []), key=lambda p: images[p].image_id)
            outputs.extend(self.generate_page(page_index, images, positions, backgrounds,
                                              skipped, groups.get(page_index, [])))

        logger.info(f"Generated {len(outputs)} output image(s)")
        return outputs

    def generate_page(self, page_index: int, images: Sequence[ImageInfo],
                      positions: List[int], backgrounds: Set[ImageSignature],
                      skipped: Set[int], groups: List[OverlapGroup]) -> List[OutputImage]:
        page_number = page_index + 1
        outputs: List[OutputImage] = []
        by_position: Dict[int, OutputImage] = {}

        for position in positions:
            if position in skipped:
                continue
            image = images[position]
            try:
                pixels = self.converter.convert(image)
            except SurfaceError as e:
                logger.warning(f"Page {page_number}: skipping image {image.image_id}: {e}")
                continue

            if pixels.width < self.min_image_size or pixels.height < self.min_image_size:
                logger.debug(f"Page {page_number}: image {image.image_id} is "
                             f"{pixels.width}x{pixels.height}, below minimum size")
                continue

            image_type = ImageType.BACKGROUND if image.signature in backgrounds else ImageType.INDIVIDUAL
            output = OutputImage(page_number, len(outputs), pixels, image_type)
            outputs.append(output)
            by_position[position] = output

        if not (self.region_renders and self.renderer):
            return outputs

        for group in groups:
            try:
                pixels, dpi = self.renderer.render(group, images)
            except RenderError as e:
                logger.warning(f"Page {page_number}: region render of {group.image_indices} failed: {e}")
                continue

            members = [by_position[p] for p in group.image_indices if p in by_position]
            source_id = members[0].id if members else None
            output = OutputImage(page_number, len(outputs), pixels, ImageType.REGION_RENDER,
                                 source_image_id=source_id, dpi=int(round(dpi)))
            outputs.append(output)
            for member in members:
                member.has_region_render = True

        return outputs
