"""
Placement Rebuilder Module
Image data model, page geometry, and placement repair.
"""

from .geometry import Rectangle, is_valid_bounds, needs_transformation
from .image_model import (
    ImageInfo, ImageTransform, ContentRegion, RendererImage, PageBoxes,
    PageContent, ImageSignature, OverlapGroup, OutputImage, ImageType, SurfaceFormat,
)
from .transform_resolver import TransformResolver
from .bounds_corrector import BoundsCorrector

__all__ = [
    'Rectangle', 'is_valid_bounds', 'needs_transformation',
    'ImageInfo', 'ImageTransform', 'ContentRegion', 'RendererImage', 'PageBoxes',
    'PageContent', 'ImageSignature', 'OverlapGroup', 'OutputImage', 'ImageType',
    'SurfaceFormat', 'TransformResolver', 'BoundsCorrector',
]
