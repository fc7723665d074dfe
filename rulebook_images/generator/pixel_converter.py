"""
Pixel Converter - Turns raw surfaces into oriented RGBA images
"""

import logging
from typing import Sequence, Tuple

import numpy as np
from PIL import Image

from ..errors import SurfaceError
from ..rebuilder.geometry import needs_transformation, normalize_matrix
from ..rebuilder.image_model import ImageInfo, SurfaceFormat

logger = logging.getLogger(__name__)


class PixelConverter:
    """
    Converts a standalone image occurrence to its displayed pixels.

    Steps, in order: surface to RGBA, soft mask into alpha, clip crop,
    orientation warp.
    """

    def convert(self, image: ImageInfo) -> Image.Image:
        """
        Produce the final RGBA image for one occurrence.

        Raises:
            SurfaceError: If the surface is malformed
        """
        rgba = self.to_rgba(image.data, image.width, image.height, image.stride,
                            image.surface_format)
        if image.has_smask:
            rgba = self.apply_smask(rgba, image.smask, image.smask_width, image.smask_height)
        if image.crop_pixels is not None:
            rgba = self.crop(rgba, image.crop_pixels)
        if image.matrix is not None and needs_transformation(image.matrix):
            rgba = self.apply_orientation(rgba, image.matrix)
        return rgba

    @staticmethod
    def to_rgba(data: bytes, width: int, height: int, stride: int,
                surface_format: SurfaceFormat) -> Image.Image:
        """
        Decode one of the three surface layouts into straight-alpha RGBA.

        ARGB32 is un-premultiplied except where alpha is 0 or 255.
        RGB24 and A8 become fully opaque.
        """
        if width <= 0 or height <= 0:
            raise SurfaceError(f"Invalid surface size {width}x{height}")

        bytes_per_pixel = 1 if surface_format == SurfaceFormat.A8 else 4
        if stride < width * bytes_per_pixel:
            raise SurfaceError(f"Stride {stride} too small for width {width}")

        buffer = np.frombuffer(data, dtype=np.uint8)
        if buffer.size < stride * height:
            raise SurfaceError(f"Surface has {buffer.size} bytes, expected {stride * height}")
        rows = buffer[:stride * height].reshape(height, stride)[:, :width * bytes_per_pixel]

        rgba = np.empty((height, width, 4), dtype=np.uint8)
        if surface_format == SurfaceFormat.A8:
            rgba[:, :, 0] = rows
            rgba[:, :, 1] = rows
            rgba[:, :, 2] = rows
            rgba[:, :, 3] = 255
        elif surface_format == SurfaceFormat.RGB24:
            bgrx = rows.reshape(height, width, 4)
            rgba[:, :, 0] = bgrx[:, :, 2]
            rgba[:, :, 1] = bgrx[:, :, 1]
            rgba[:, :, 2] = bgrx[:, :, 0]
            rgba[:, :, 3] = 255
        elif surface_format == SurfaceFormat.ARGB32:
            bgra = rows.reshape(height, width, 4)
            alpha = bgra[:, :, 3]
            color = bgra[:, :, 2::-1].astype(np.float32)
            partial = (alpha > 0) & (alpha < 255)
            scale = np.where(partial, 255.0 / np.maximum(alpha, 1), 1.0).astype(np.float32)
            color = np.minimum(color * scale[:, :, None], 255.0)
            rgba[:, :, :3] = color.astype(np.uint8)
            rgba[:, :, 3] = alpha
        else:
            raise SurfaceError(f"Unknown surface format {surface_format!r}")

        return Image.fromarray(rgba, 'RGBA')

    @staticmethod
    def apply_smask(image: Image.Image, smask: bytes, smask_width: int,
                    smask_height: int) -> Image.Image:
        """
        Replace the alpha channel with a soft mask.

        A mask of a different size is resampled to the image with Lanczos.
        A truncated mask is ignored.
        """
        if len(smask) < smask_width * smask_height:
            logger.warning(f"Soft mask has {len(smask)} bytes, expected "
                           f"{smask_width * smask_height}; ignoring it")
            return image

        mask = Image.frombytes('L', (smask_width, smask_height),
                               bytes(smask[:smask_width * smask_height]))
        if mask.size != image.size:
            mask = mask.resize(image.size, Image.Resampling.LANCZOS)

        result = image.copy()
        result.putalpha(mask)
        return result

    @staticmethod
    def crop(image: Image.Image, crop_pixels: Tuple[int, int, int, int]) -> Image.Image:
        """Crop to (x, y, width, height) clamped to the image."""
        x, y, w, h = crop_pixels
        x = max(0, min(x, image.width - 1))
        y = max(0, min(y, image.height - 1))
        w = max(1, min(w, image.width - x))
        h = max(1, min(h, image.height - y))
        return image.crop((x, y, x + w, y + h))

    @staticmethod
    def apply_orientation(image: Image.Image, matrix: Sequence[float]) -> Image.Image:
        """
        Undo rotation and mirroring of a placement matrix.

        The inverse of the scale-free linear part is applied about the image
        center with bilinear sampling; uncovered pixels are transparent.
        PIL samples the source through the output-to-input map, which is the
        inverse of that warp, i.e. the normalized matrix itself.
        """
        normalized = normalize_matrix(matrix)
        if normalized is None:
            logger.warning(f"Degenerate placement matrix {tuple(matrix)}, orientation unchanged")
            return image

        a, b, c, d = normalized
        if abs(a * d - b * c) < 1e-9:
            logger.warning(f"Singular placement matrix {tuple(matrix)}, orientation unchanged")
            return image

        cx = image.width / 2.0
        cy = image.height / 2.0
        data = (a, c, cx - a * cx - c * cy,
                b, d, cy - b * cx - d * cy)
        return image.transform(image.size, Image.Transform.AFFINE, data,
                               resample=Image.Resampling.BILINEAR, fillcolor=(0, 0, 0, 0))
