"""
Image Generator Module
Converts, renders, and writes the final extracted images.
"""

from .pixel_converter import PixelConverter
from .region_renderer import RegionRenderer, calculate_image_dpi
from .image_generator import ImageGenerator
from .image_writer import ImageWriter

__all__ = ['PixelConverter', 'RegionRenderer', 'calculate_image_dpi',
           'ImageGenerator', 'ImageWriter']
