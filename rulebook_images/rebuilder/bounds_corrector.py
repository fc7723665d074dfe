"""
Bounds Corrector - Repairs image placements that fall off the page
"""

import logging
from collections import defaultdict
from typing import List, Dict, Any, Optional, Set

from .geometry import Rectangle, is_valid_bounds, page_rectangle
from .image_model import ImageInfo, PageBoxes, RendererImage

logger = logging.getLogger(__name__)


class BoundsCorrector:
    """
    Fixes invalid placements with a fallback chain.

    For each image outside the page plus margin, in order:
    1. shift by the CropBox/MediaBox origin offset
    2. adopt the bounds of an unused renderer image of the same pixel size
    3. use the full page
    """

    def __init__(self, config: Dict[str, Any]):
        self.bounds_margin = config.get('bounds_margin', 0.1)
        self.pixel_match_tolerance = config.get('pixel_match_tolerance', 3)

    def is_valid(self, image: ImageInfo, area: Optional[Rectangle] = None) -> bool:
        return is_valid_bounds(area if area is not None else image.area,
                               image.page_width, image.page_height, self.bounds_margin)

    def correct(self, images: List[ImageInfo],
                renderer_images: Dict[int, List[RendererImage]],
                page_boxes: Dict[int, PageBoxes]) -> int:
        """
        Correct every invalid placement in place.

        Args:
            images: All image occurrences of the document
            renderer_images: Page index -> renderer-reported images
            page_boxes: Page index -> media/crop boxes

        Returns:
            Number of images whose placement was rewritten
        """
        by_page: Dict[int, List[ImageInfo]] = defaultdict(list)
        for image in images:
            by_page[image.page_index].append(image)

        corrected = 0
        for page_index in sorted(by_page):
            invalid = [img for img in by_page[page_index] if not self.is_valid(img)]
            if not invalid:
                continue

            logger.debug(f"Page {page_index + 1}: {len(invalid)} image(s) with invalid bounds")
            used: Set[int] = set()
            for image in invalid:
                self.correct_image(image, page_boxes.get(page_index),
                                   renderer_images.get(page_index, []), used)
                corrected += 1

        if corrected:
            logger.info(f"Corrected bounds of {corrected} image(s)")
        return corrected

    def correct_image(self, image: ImageInfo, boxes: Optional[PageBoxes],
                      renderer_images: List[RendererImage], used: Set[int]) -> str:
        """
        Run the fallback chain for one image.

        Returns:
            Name of the correction that was applied
        """
        old = image.area

        if boxes is not None:
            dx, dy = boxes.crop_offset
            if dx or dy:
                shifted = image.area.translated(dx, dy)
                if self.is_valid(image, shifted):
                    image.area = shifted
                    logger.debug(f"Page {image.page_index + 1}: image {image.image_id} "
                                 f"shifted by crop offset {old!r} -> {shifted!r}")
                    return 'crop_offset'

        match = self._best_renderer_match(image, renderer_images, used)
        if match is not None:
            used.add(match)
            image.area = renderer_images[match].bounds.copy()
            logger.debug(f"Page {image.page_index + 1}: image {image.image_id} "
                         f"took renderer bounds {old!r} -> {image.area!r}")
            return 'renderer'

        image.area = page_rectangle(image.page_width, image.page_height)
        logger.debug(f"Page {image.page_index + 1}: image {image.image_id} "
                     f"falls back to full page")
        return 'full_page'

    def _best_renderer_match(self, image: ImageInfo, renderer_images: List[RendererImage],
                             used: Set[int]) -> Optional[int]:
        best = None
        best_diff = None
        for index, candidate in enumerate(renderer_images):
            if index in used or not self.is_valid(image, candidate.bounds):
                continue
            diff = abs(candidate.width - image.width) + abs(candidate.height - image.height)
            if diff < self.pixel_match_tolerance and (best_diff is None or diff < best_diff):
                best, best_diff = index, diff
        return best
