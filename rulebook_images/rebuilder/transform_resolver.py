"""
Transform Resolver - Matches content-stream placements to raw image occurrences
"""

import logging
from typing import List, Dict, Any, Optional, Set, Tuple

from .geometry import Rectangle, is_valid_bounds
from .image_model import ImageInfo, ImageTransform

logger = logging.getLogger(__name__)


class TransformResolver:
    """
    Attaches resolved placement matrices, clips and soft masks to images.

    The raw-image enumerator reports an axis-aligned box per image that is
    frequently wrong for rotated or clipped art. Content-stream transforms
    carry the real CTM; this class pairs the two by drawn size and position.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the resolver.

        Args:
            config: Extraction configuration section
        """
        self.dimension_tolerance = config.get('dimension_tolerance', 0.05)
        self.position_tolerance = config.get('position_tolerance', 50.0)
        self.corner_tolerance = config.get('corner_tolerance', 5.0)
        self.bounds_margin = config.get('bounds_margin', 0.1)

    def resolve(self, images: List[ImageInfo],
                transforms: Dict[int, List[ImageTransform]]) -> int:
        """
        Match every image against the transforms found on its page.

        Each transform is used at most once. Images are visited in
        draw order so earlier draws claim earlier placements.

        Args:
            images: All image occurrences of the document (mutated in place)
            transforms: Page index -> transforms found on that page

        Returns:
            Number of images that received a transform
        """
        used: Dict[int, Set[int]] = {}
        matched = 0

        for image in sorted(images, key=lambda img: (img.page_index, img.image_id)):
            page_transforms = transforms.get(image.page_index)
            if not page_transforms:
                continue

            page_used = used.setdefault(image.page_index, set())
            match = self.find_match(image, page_transforms, page_used)
            if match is None:
                logger.debug(f"Page {image.page_index + 1}: no transform for image {image.image_id}")
                continue

            index, transform = match
            page_used.add(index)
            self.apply(image, transform)
            matched += 1

        logger.info(f"Resolved transforms for {matched}/{len(images)} images")
        return matched

    def find_match(self, image: ImageInfo, candidates: List[ImageTransform],
                   used: Optional[Set[int]] = None) -> Optional[Tuple[int, ImageTransform]]:
        """
        Find the first unused transform that fits the image's reported box.

        Args:
            image: Image occurrence with its enumerator-reported area
            candidates: Transforms on the image's page
            used: Indices of already-claimed transforms

        Returns:
            (index, transform) or None
        """
        used = used or set()
        area = image.area

        for index, transform in enumerate(candidates):
            if index in used:
                continue
            if not self._dimensions_match(transform, area.width, area.height):
                continue
            if self._position_matches(transform.bounds, area):
                logger.debug(f"Page {image.page_index + 1}: image {image.image_id} "
                             f"matched transform {transform!r}")
                return index, transform

        return None

    def _dimensions_match(self, transform: ImageTransform, width: float, height: float) -> bool:
        width_ratio = abs(transform.expected_width - width) / max(width, 1.0)
        height_ratio = abs(transform.expected_height - height) / max(height, 1.0)
        return width_ratio < self.dimension_tolerance and height_ratio < self.dimension_tolerance

    def _position_matches(self, bounds: Rectangle, area: Rectangle) -> bool:
        tol = self.position_tolerance

        x_close = abs(bounds.left - area.left) < tol or abs(bounds.right - area.right) < tol
        y_close = abs(bounds.bottom - area.bottom) < tol or abs(bounds.top - area.top) < tol
        if x_close and y_close:
            return True

        bx, by = bounds.center
        ax, ay = area.center
        if abs(bx - ax) < tol and abs(by - ay) < tol:
            return True

        # Rotated placements are often only reported correctly at one corner
        return abs(bounds.left - area.left) < self.corner_tolerance

    def apply(self, image: ImageInfo, transform: ImageTransform):
        """
        Replace an image's placement with a matched transform.

        Resolved bounds are only adopted when they are plausible for the
        page. A clip narrows the placement and yields a pixel crop.
        """
        base = transform.bounds
        if not is_valid_bounds(base, image.page_width, image.page_height, self.bounds_margin):
            logger.debug(f"Page {image.page_index + 1}: resolved bounds {base!r} "
                         f"for image {image.image_id} are off-page, keeping {image.area!r}")
            base = image.area

        area = base
        crop = None
        if transform.clip is not None:
            clipped = base.intersection(transform.clip)
            if clipped is not None:
                area = clipped
                crop = self.compute_crop(base, clipped, image.width, image.height)

        image.area = area
        image.matrix = transform.matrix
        image.crop_pixels = crop
        if transform.has_smask:
            image.smask = transform.smask
            image.smask_width = transform.smask_width
            image.smask_height = transform.smask_height

    @staticmethod
    def compute_crop(base: Rectangle, clipped: Rectangle,
                     width: int, height: int) -> Optional[Tuple[int, int, int, int]]:
        """
        Scale a clipped placement into a pixel crop of the image.

        Args:
            base: Full placement of the image in points
            clipped: Visible part of the placement
            width: Image pixel width
            height: Image pixel height

        Returns:
            (x, y, width, height) in pixels with y counted from the top row,
            or None when the placement is degenerate
        """
        if base.width <= 0 or base.height <= 0 or width <= 0 or height <= 0:
            return None

        px_per_pt_x = width / base.width
        px_per_pt_y = height / base.height

        crop_x = min(int(max(0.0, (clipped.left - base.left) * px_per_pt_x)), width - 1)
        crop_y = min(int(max(0.0, (base.top - clipped.top) * px_per_pt_y)), height - 1)
        crop_w = int(max(1.0, clipped.width * px_per_pt_x))
        crop_h = int(max(1.0, clipped.height * px_per_pt_y))

        crop_w = min(crop_w, width - crop_x)
        crop_h = min(crop_h, height - crop_y)
        return (crop_x, crop_y, crop_w, crop_h)
