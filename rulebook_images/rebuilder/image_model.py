"""
Image Model - Intermediate representation of images and page content
"""

import hashlib
import logging
import uuid
from enum import Enum
from typing import List, Dict, Any, Optional, NamedTuple, Tuple

from PIL import Image

from .geometry import Rectangle, Matrix, bounds_from_matrix, matrix_scale

logger = logging.getLogger(__name__)


class SurfaceFormat(Enum):
    """Pixel layouts produced by the raw-image enumerator."""
    ARGB32 = 'argb32'   # premultiplied, B G R A byte order
    RGB24 = 'rgb24'     # B G R x, 4 bytes per pixel
    A8 = 'a8'           # one byte per pixel


class ImageType(Enum):
    """Classification tag of an output image."""
    INDIVIDUAL = 'individual'
    BACKGROUND = 'background'
    REGION_RENDER = 'region_render'


class ImageInfo:
    """One raw embedded image occurrence on a page."""

    def __init__(self, image_id: int, area: Rectangle, data: bytes,
                 width: int, height: int, stride: int,
                 surface_format: SurfaceFormat, page_index: int,
                 page_width: float, page_height: float):
        """
        Initialize an image occurrence.

        Args:
            image_id: Draw-order identifier (lower is drawn first)
            area: Placement rectangle in page space
            data: Raw surface bytes
            width: Pixel width
            height: Pixel height
            stride: Bytes per pixel row
            surface_format: Layout of `data`
            page_index: 0-based owning page
            page_width: Page width in points
            page_height: Page height in points
        """
        self.image_id = image_id
        self.area = area
        self.data = data
        self.width = width
        self.height = height
        self.stride = stride
        self.surface_format = surface_format
        self.page_index = page_index
        self.page_width = page_width
        self.page_height = page_height
        self.xref = 0

        self.scale_x = width / area.width if area.width > 0 else 1.0
        self.scale_y = height / area.height if area.height > 0 else 1.0

        # Attached by transform resolution
        self.matrix: Optional[Matrix] = None
        self.crop_pixels: Optional[Tuple[int, int, int, int]] = None
        self.smask: Optional[bytes] = None
        self.smask_width = 0
        self.smask_height = 0

        self._signature = None

    @property
    def signature(self) -> 'ImageSignature':
        """Deduplication key, computed once."""
        if self._signature is None:
            self._signature = ImageSignature.from_image(self)
        return self._signature

    @property
    def has_alpha(self) -> bool:
        return self.surface_format == SurfaceFormat.ARGB32

    @property
    def is_grayscale(self) -> bool:
        return self.surface_format == SurfaceFormat.A8

    @property
    def has_smask(self) -> bool:
        return self.smask is not None and self.smask_width > 0 and self.smask_height > 0

    @property
    def page_area(self) -> float:
        return self.page_width * self.page_height

    @property
    def page_coverage(self) -> float:
        """Fraction of the page covered by the placement rectangle."""
        if self.page_area <= 0:
            return 0.0
        return self.area.area / self.page_area

    def __repr__(self) -> str:
        return (f"ImageInfo(id={self.image_id}, page={self.page_index}, "
                f"{self.width}x{self.height}, area={self.area!r})")


class ContentRegion:
    """Footprint of a text line or a vector path / form on one page."""

    TEXT = 'text'
    PATH = 'path'

    __slots__ = ('bounds', 'kind')

    def __init__(self, bounds: Rectangle, kind: str):
        self.bounds = bounds
        self.kind = kind

    def __repr__(self) -> str:
        return f"ContentRegion({self.kind}, {self.bounds!r})"


class ImageTransform:
    """
    Resolved placement of one image-draw operation in a content stream.

    Holds the CTM at the `Do` operator, the clip active at that moment and
    any soft mask the drawn XObject references.
    """

    def __init__(self, matrix: Matrix, name: str = '',
                 clip: Optional[Rectangle] = None):
        self.matrix = tuple(matrix)
        self.name = name
        self.clip = clip
        self.bounds = bounds_from_matrix(self.matrix)
        self.expected_width, self.expected_height = matrix_scale(self.matrix)
        self.xref = 0
        self.smask: Optional[bytes] = None
        self.smask_width = 0
        self.smask_height = 0

    @property
    def has_smask(self) -> bool:
        return self.smask is not None

    def __repr__(self) -> str:
        return (f"ImageTransform({self.name or '?'}, "
                f"{self.expected_width:.1f}x{self.expected_height:.1f}, bounds={self.bounds!r})")


class RendererImage:
    """Image bounds as reported independently by the renderer."""

    __slots__ = ('bounds', 'width', 'height')

    def __init__(self, bounds: Rectangle, width: int, height: int):
        self.bounds = bounds
        self.width = width
        self.height = height

    def __repr__(self) -> str:
        return f"RendererImage({self.width}x{self.height}, {self.bounds!r})"


class PageBoxes:
    """MediaBox and CropBox of a page."""

    def __init__(self, media_box: Rectangle, crop_box: Optional[Rectangle] = None):
        self.media_box = media_box
        self.crop_box = crop_box if crop_box is not None else media_box

    @property
    def crop_offset(self) -> Tuple[float, float]:
        """Offset of the CropBox origin relative to the MediaBox origin."""
        return (self.crop_box.left - self.media_box.left,
                self.crop_box.bottom - self.media_box.bottom)


class PageContent:
    """Everything the renderer/analyzer reports for one page."""

    def __init__(self, page_index: int, width: float, height: float,
                 boxes: Optional[PageBoxes] = None):
        self.page_index = page_index
        self.width = width
        self.height = height
        self.boxes = boxes or PageBoxes(Rectangle(0, 0, width, height))
        self.text_regions: List[ContentRegion] = []
        self.path_regions: List[ContentRegion] = []
        self.images: List[RendererImage] = []


class ImageSignature(NamedTuple):
    """Deduplication key for recurring images."""
    width: int
    height: int
    fingerprint: str

    @classmethod
    def from_image(cls, image: ImageInfo) -> 'ImageSignature':
        digest = hashlib.sha1(image.data).hexdigest()
        return cls(image.width, image.height, digest)


class OverlapGroup:
    """Images that will be flattened into one region render."""

    def __init__(self, page_index: int, image_indices: List[int],
                 combined_region: Rectangle,
                 has_text_overlap: bool = False, has_path_overlap: bool = False):
        self.page_index = page_index
        self.image_indices = image_indices
        self.combined_region = combined_region
        self.has_text_overlap = has_text_overlap
        self.has_path_overlap = has_path_overlap

    @property
    def has_content_overlap(self) -> bool:
        return self.has_text_overlap or self.has_path_overlap

    def merge(self, other: 'OverlapGroup'):
        """Absorb another group's members, region and flags."""
        self.image_indices = sorted(set(self.image_indices) | set(other.image_indices))
        self.combined_region = self.combined_region.union(other.combined_region)
        self.has_text_overlap = self.has_text_overlap or other.has_text_overlap
        self.has_path_overlap = self.has_path_overlap or other.has_path_overlap

    def __repr__(self) -> str:
        return (f"OverlapGroup(page={self.page_index}, images={self.image_indices}, "
                f"text={self.has_text_overlap}, path={self.has_path_overlap})")


class OutputImage:
    """
    Final extracted image handed to the output writer.

    `page_number` is 1-based. `index` counts within the page, individual
    images first and region renders after them.
    """

    def __init__(self, page_number: int, index: int, image: Image.Image,
                 image_type: ImageType, source_image_id: Optional[str] = None,
                 dpi: Optional[int] = None):
        self.id = uuid.uuid4().hex
        self.page_number = page_number
        self.index = index
        self.image = image
        self.image_type = image_type
        self.source_image_id = source_image_id
        self.has_region_render = False
        self.source_pages = [page_number]
        self.dpi = dpi

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'page_number': self.page_number,
            'index': self.index,
            'type': self.image_type.value,
            'width': self.width,
            'height': self.height,
            'source_image_id': self.source_image_id,
            'has_region_render': self.has_region_render,
            'source_pages': self.source_pages,
            'dpi': self.dpi,
        }

    def __repr__(self) -> str:
        return (f"OutputImage(page={self.page_number}, index={self.index}, "
                f"type={self.image_type.value}, {self.width}x{self.height})")
