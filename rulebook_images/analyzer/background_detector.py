"""
Background Detector - Finds page-filling images that recur across the document
"""

import logging
from typing import List, Dict, Any, Set, Tuple

from ..rebuilder.image_model import ImageInfo, ImageSignature

logger = logging.getLogger(__name__)


class BackgroundDetector:
    """
    Detects background images and decides which occurrence to keep.

    A background is an image covering at least `background_area_threshold`
    of its page whose signature appears on `background_min_pages` or more
    distinct pages. Only the first occurrence of each background is kept.
    """

    def __init__(self, config: Dict[str, Any]):
        self.area_threshold = config.get('background_area_threshold', 0.9)
        self.min_pages = config.get('background_min_pages', 2)

    def detect(self, images: List[ImageInfo]) -> Set[ImageSignature]:
        """
        Find background signatures.

        Args:
            images: All image occurrences of the document

        Returns:
            Set of signatures classified as background
        """
        pages_by_signature: Dict[ImageSignature, Set[int]] = {}
        for image in images:
            if image.page_coverage < self.area_threshold:
                continue
            signature = image.signature
            pages_by_signature.setdefault(signature, set()).add(image.page_index)

        backgrounds = {signature for signature, pages in pages_by_signature.items()
                       if len(pages) >= self.min_pages}

        for signature in backgrounds:
            pages = sorted(p + 1 for p in pages_by_signature[signature])
            logger.info(f"Background {signature.width}x{signature.height} on pages {pages}")
        return backgrounds

    @staticmethod
    def is_background(image: ImageInfo, backgrounds: Set[ImageSignature]) -> bool:
        return image.signature in backgrounds

    def partition(self, images: List[ImageInfo],
                  backgrounds: Set[ImageSignature]) -> Tuple[Set[int], Set[int]]:
        """
        Split background occurrences into kept and skipped.

        The earliest occurrence (by page, then draw order) of each
        background signature is kept; every later one is skipped.

        Returns:
            (kept, skipped) as sets of positions in `images`
        """
        kept: Set[int] = set()
        skipped: Set[int] = set()
        seen: Set[ImageSignature] = set()

        order = sorted(range(len(images)),
                       key=lambda i: (images[i].page_index, images[i].image_id))
        for position in order:
            signature = images[position].signature
            if signature not in backgrounds:
                continue
            if signature in seen:
                skipped.add(position)
            else:
                seen.add(signature)
                kept.add(position)

        if skipped:
            logger.debug(f"Skipping {len(skipped)} repeated background occurrence(s)")
        return kept, skipped
