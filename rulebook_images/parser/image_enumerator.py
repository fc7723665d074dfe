"""
Image Enumerator - Raw embedded image occurrences and pixel surfaces via PyMuPDF
"""

import fitz  # PyMuPDF
import logging
import numpy as np
from typing import List, Dict, Any, Optional, Tuple

from ..errors import DocumentOpenError, SurfaceError
from ..rebuilder.geometry import Rectangle
from ..rebuilder.image_model import ImageInfo, SurfaceFormat

logger = logging.getLogger(__name__)

# (data, width, height, stride, format)
Surface = Tuple[bytes, int, int, int, SurfaceFormat]


def pack_surface(samples: bytes, width: int, height: int, stride: int,
                 channels: int, has_alpha: bool) -> Surface:
    """
    Pack pixmap samples into one of the three surface layouts.

    Args:
        samples: Interleaved samples, `channels` bytes per pixel
        width: Pixel width
        height: Pixel height
        stride: Bytes per sample row
        channels: Samples per pixel including alpha
        has_alpha: Whether the last channel is alpha

    Returns:
        (data, width, height, stride, format)

    Raises:
        SurfaceError: If the channel layout is not gray, RGB or RGBA
    """
    rows = np.frombuffer(samples, dtype=np.uint8)
    if rows.size < stride * height:
        raise SurfaceError(f"Surface has {rows.size} bytes, expected {stride * height}")
    pixels = rows[:stride * height].reshape(height, stride)[:, :width * channels]
    pixels = pixels.reshape(height, width, channels)

    if channels == 1 and not has_alpha:
        data = np.ascontiguousarray(pixels[:, :, 0])
        return data.tobytes(), width, height, width, SurfaceFormat.A8

    if channels == 3 and not has_alpha:
        bgrx = np.empty((height, width, 4), dtype=np.uint8)
        bgrx[:, :, 0] = pixels[:, :, 2]
        bgrx[:, :, 1] = pixels[:, :, 1]
        bgrx[:, :, 2] = pixels[:, :, 0]
        bgrx[:, :, 3] = 255
        return bgrx.tobytes(), width, height, width * 4, SurfaceFormat.RGB24

    if channels == 4 and has_alpha:
        alpha = pixels[:, :, 3].astype(np.uint16)
        bgra = np.empty((height, width, 4), dtype=np.uint8)
        # Premultiply with rounding
        for dst, src in ((0, 2), (1, 1), (2, 0)):
            bgra[:, :, dst] = ((pixels[:, :, src].astype(np.uint16) * alpha + 127) // 255).astype(np.uint8)
        bgra[:, :, 3] = pixels[:, :, 3]
        return bgra.tobytes(), width, height, width * 4, SurfaceFormat.ARGB32

    raise SurfaceError(f"Unsupported channel layout: {channels} channels, alpha={has_alpha}")


class ImageEnumerator:
    """
    Lists every image placement on a page together with its pixel surface.

    Placements come from `page.get_image_info`, pixels from the image
    XObject itself. Surfaces are cached per xref since the same image is
    often placed many times.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.doc = None
        self._surface_cache: Dict[int, Surface] = {}

    def open(self, pdf_path: str):
        """
        Open a PDF file.

        Raises:
            DocumentOpenError: If PyMuPDF cannot read the file
        """
        try:
            self.doc = fitz.open(pdf_path)
        except Exception as e:
            raise DocumentOpenError(pdf_path, 'image enumerator', str(e)) from e
        logger.info(f"Opened {pdf_path} for image enumeration ({len(self.doc)} pages)")

    def close(self):
        """Close the PDF document."""
        if self.doc:
            self.doc.close()
            self.doc = None
        self._surface_cache.clear()

    def get_page_count(self) -> int:
        return len(self.doc) if self.doc else 0

    def enumerate_all(self) -> List[ImageInfo]:
        """Enumerate image occurrences on every page."""
        images = []
        for page_index in range(self.get_page_count()):
            page_images = self.enumerate_page(page_index)
            if page_images:
                logger.debug(f"Page {page_index + 1}: {len(page_images)} image(s)")
            images.extend(page_images)
        return images

    def enumerate_page(self, page_index: int) -> List[ImageInfo]:
        """
        Enumerate image occurrences on one page.

        Occurrences whose surface cannot be read are skipped.

        Args:
            page_index: 0-based page index

        Returns:
            ImageInfo list in draw order
        """
        page = self.doc[page_index]
        page_width = page.rect.width
        page_height = page.rect.height
        # Placements are reported relative to the CropBox, y down
        to_user = ~page.transformation_matrix
        images = []

        try:
            infos = page.get_image_info(xrefs=True)
        except Exception as e:
            logger.warning(f"Page {page_index + 1}: could not list images: {e}")
            return images

        for info in infos:
            xref = info.get('xref', 0)
            image_id = info.get('number', len(images))
            if not xref:
                logger.debug(f"Page {page_index + 1}: skipping inline image {image_id}")
                continue

            try:
                data, width, height, stride, surface_format = self.read_surface(xref)
            except SurfaceError as e:
                logger.warning(f"Page {page_index + 1}: skipping image {image_id} (xref {xref}): {e}")
                continue

            user_box = fitz.Rect(info['bbox']) * to_user
            area = Rectangle(user_box.x0, user_box.y0, user_box.x1, user_box.y1)
            image = ImageInfo(image_id, area, data, width, height, stride, surface_format,
                              page_index, page_width, page_height)
            image.xref = xref
            images.append(image)

        return images

    def read_surface(self, xref: int) -> Surface:
        """
        Decode an image XObject into a packed surface.

        A soft mask attached to the image is folded in as alpha.

        Raises:
            SurfaceError: If the image cannot be decoded
        """
        if xref in self._surface_cache:
            return self._surface_cache[xref]

        try:
            pix = fitz.Pixmap(self.doc, xref)
            if pix.colorspace is not None and pix.colorspace.n not in (1, 3):
                pix = fitz.Pixmap(fitz.csRGB, pix)
            elif pix.colorspace is None and not pix.alpha:
                raise SurfaceError(f"Image xref {xref} has no colorspace")

            smask_xref = self._smask_xref(xref)
            if smask_xref and not pix.alpha:
                mask = fitz.Pixmap(self.doc, smask_xref)
                if (mask.width, mask.height) == (pix.width, pix.height):
                    pix = fitz.Pixmap(pix, mask)
                else:
                    logger.debug(f"Soft mask of xref {xref} is {mask.width}x{mask.height}, "
                                 f"image is {pix.width}x{pix.height}; mask ignored")

            if pix.alpha and pix.n == 2:
                pix = fitz.Pixmap(fitz.csRGB, pix)

            surface = pack_surface(pix.samples, pix.width, pix.height, pix.stride,
                                   pix.n, bool(pix.alpha))
        except SurfaceError:
            raise
        except Exception as e:
            raise SurfaceError(f"Cannot decode image xref {xref}: {e}") from e

        self._surface_cache[xref] = surface
        return surface

    def _smask_xref(self, xref: int) -> int:
        kind, value = self.doc.xref_get_key(xref, "SMask")
        if kind != 'xref':
            return 0
        return int(value.split()[0])
