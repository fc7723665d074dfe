"""
Overlap Detector - Groups images that must be rendered together
"""

import logging
from typing import List, Dict, Any, Callable, Optional, Sequence

from ..rebuilder.geometry import Rectangle
from ..rebuilder.image_model import ContentRegion, ImageInfo, OverlapGroup
from .union_find import UnionFind

logger = logging.getLogger(__name__)


class OverlapDetector:
    """
    Partitions a page's foreground images into overlap groups.

    Two images join the same group when they overlap substantially, touch,
    or share a text line or path region. Each surviving group is later
    replaced by one rasterization of its combined region.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the detector.

        Args:
            config: Extraction configuration section
        """
        self.overlap_threshold = config.get('overlap_threshold', 0.7)
        self.adjacency_tolerance = config.get('adjacency_tolerance', 1.0)

    def images_related(self, a: Rectangle, b: Rectangle) -> bool:
        """Check the image-image union rule for two placements."""
        return (a.overlap_fraction(b) > self.overlap_threshold or
                a.is_adjacent(b, self.adjacency_tolerance))

    def detect_groups(self, images: Sequence[ImageInfo], indices: Sequence[int],
                      text_regions: Sequence[ContentRegion],
                      path_regions: Sequence[ContentRegion],
                      is_background: Optional[Callable[[int], bool]] = None) -> List[OverlapGroup]:
        """
        Detect overlap groups on one page.

        Args:
            images: All image occurrences of the document
            indices: Positions in `images` of this page's occurrences
            text_regions: Text line footprints on the page
            path_regions: Path and form footprints on the page
            is_background: Predicate on a position; backgrounds are excluded

        Returns:
            Groups with sorted member positions, ordered by first member
        """
        members = [i for i in indices if not (is_background and is_background(i))]
        if not members:
            return []
        members.sort(key=lambda i: (images[i].image_id, i))
        page_index = images[members[0]].page_index
        bounds = [images[i].area for i in members]

        uf = UnionFind(len(members))

        # Pass 1: image against image
        for a in range(len(members)):
            for b in range(a + 1, len(members)):
                if self.images_related(bounds[a], bounds[b]):
                    uf.union(a, b)

        # Pass 2: images sharing a text line or path region
        for region in list(text_regions) + list(path_regions):
            touching = [k for k, rect in enumerate(bounds) if rect.intersects(region.bounds)]
            for k in touching[1:]:
                uf.union(touching[0], k)

        groups = []
        for local in uf.groups():
            group = self._build_group(page_index, [members[k] for k in local],
                                      [bounds[k] for k in local], text_regions, path_regions)
            if group is not None:
                groups.append(group)

        groups = self.merge_groups(groups)
        for group in groups:
            logger.debug(f"Page {page_index + 1}: overlap group {group!r} "
                         f"region {group.combined_region!r}")
        return groups

    def _build_group(self, page_index: int, positions: List[int], rects: List[Rectangle],
                     text_regions: Sequence[ContentRegion],
                     path_regions: Sequence[ContentRegion]) -> Optional[OverlapGroup]:
        covered = list(rects)
        has_text = False
        has_path = False

        for rect in rects:
            for region in text_regions:
                if rect.intersects(region.bounds):
                    has_text = True
                    covered.append(region.bounds)
            for region in path_regions:
                if rect.intersects(region.bounds):
                    has_path = True
                    covered.append(region.bounds)

        # A lone image with nothing drawn over it stays a standalone image
        if len(positions) == 1 and not (has_text or has_path):
            return None

        return OverlapGroup(page_index, sorted(positions), Rectangle.bounding(covered),
                            has_text_overlap=has_text, has_path_overlap=has_path)

    @staticmethod
    def merge_groups(groups: List[OverlapGroup]) -> List[OverlapGroup]:
        """
        Merge groups whose combined regions intersect until none do.

        Returns:
            Merged groups with deduplicated, sorted members
        """
        groups = list(groups)
        merged = True
        while merged and len(groups) > 1:
            merged = False
            for i in range(len(groups)):
                for j in range(i + 1, len(groups)):
                    if groups[i].combined_region.intersects(groups[j].combined_region):
                        groups[i].merge(groups.pop(j))
                        merged = True
                        break
                if merged:
                    break

        for group in groups:
            group.image_indices = sorted(set(group.image_indices))
        return sorted(groups, key=lambda g: g.image_indices[0])
