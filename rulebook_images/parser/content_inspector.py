"""
Content Inspector - Image placements recovered from Form XObject content streams
"""

import fitz  # PyMuPDF
import logging
import numpy as np
from typing import List, Dict, Any, Optional, Tuple

from ..errors import DocumentOpenError
from ..rebuilder.geometry import needs_transformation
from ..rebuilder.image_model import ImageTransform
from .content_stream import GraphicsStateParser, is_image_name

logger = logging.getLogger(__name__)


def parse_xref(value: str) -> int:
    """'12 0 R' -> 12"""
    try:
        return int(value.split()[0])
    except (ValueError, IndexError):
        return 0


class ContentInspector:
    """
    Walks each page's Form XObjects and records how they draw images.

    Placements inside forms are what the raw-image enumerator most often
    misreports (rotated, mirrored, clipped or soft-masked art), so only
    those are kept.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.doc = None
        self.stats = {'forms': 0, 'draws': 0, 'kept': 0, 'failed': 0}

    def open(self, pdf_path: str):
        """
        Open a PDF file.

        Raises:
            DocumentOpenError: If PyMuPDF cannot read the file
        """
        try:
            self.doc = fitz.open(pdf_path)
        except Exception as e:
            raise DocumentOpenError(pdf_path, 'content inspector', str(e)) from e

    def close(self):
        """Close the PDF document."""
        if self.doc:
            self.doc.close()
            self.doc = None

    def extract_all_transforms(self) -> Dict[int, List[ImageTransform]]:
        """
        Collect image transforms for every page.

        Returns:
            Page index -> transforms, pages without any are absent
        """
        transforms: Dict[int, List[ImageTransform]] = {}
        for page_index in range(len(self.doc)):
            try:
                page_transforms = self.extract_page_transforms(page_index)
            except Exception as e:
                self.stats['failed'] += 1
                logger.warning(f"Page {page_index + 1}: form inspection failed, page skipped: {e}")
                continue
            if page_transforms:
                transforms[page_index] = page_transforms

        logger.debug(f"Inspected {self.stats['forms']} forms, {self.stats['draws']} image draws, "
                     f"kept {self.stats['kept']}, {self.stats['failed']} unreadable")
        return transforms

    def extract_page_transforms(self, page_index: int) -> List[ImageTransform]:
        """
        Collect image transforms from the Form XObjects of one page.

        A form whose stream cannot be decoded is skipped with a warning.
        """
        page = self.doc[page_index]
        transforms = []
        seen = set()

        for form_xref, name, _invoker, _bbox in page.get_xobjects():
            if form_xref in seen:
                continue
            seen.add(form_xref)
            if self.doc.xref_get_key(form_xref, "Subtype") != ('name', '/Form'):
                continue
            self.stats['forms'] += 1

            try:
                stream = self.doc.xref_stream(form_xref)
            except Exception as e:
                self.stats['failed'] += 1
                logger.warning(f"Page {page_index + 1}: cannot decode form {name} (xref {form_xref}): {e}")
                continue
            if not stream:
                continue

            def draws_image(xobject_name: str, form_xref: int = form_xref) -> bool:
                return (is_image_name(xobject_name) or
                        self._resolve_image(form_xref, xobject_name) is not None)

            for transform in GraphicsStateParser(image_filter=draws_image).parse(stream):
                self.stats['draws'] += 1
                try:
                    self._attach_image(form_xref, transform)
                except Exception as e:
                    self.stats['failed'] += 1
                    logger.warning(f"Page {page_index + 1}: cannot resolve {transform.name} "
                                   f"in form {name}: {e}")
                    continue

                if (needs_transformation(transform.matrix) or transform.clip is not None
                        or transform.has_smask):
                    self.stats['kept'] += 1
                    transforms.append(transform)

        return transforms

    def _resolve_image(self, form_xref: int, name: str) -> Optional[int]:
        """Xref of the image XObject `name` in a form's resources, if it is one."""
        kind, value = self.doc.xref_get_key(form_xref, f"Resources/XObject/{name}")
        if kind != 'xref':
            return None
        image_xref = parse_xref(value)
        if not image_xref:
            return None
        if self.doc.xref_get_key(image_xref, "Subtype") != ('name', '/Image'):
            return None
        return image_xref

    def _attach_image(self, form_xref: int, transform: ImageTransform):
        """Resolve the drawn image inside the form's resources and read its soft mask."""
        image_xref = self._resolve_image(form_xref, transform.name)
        if image_xref is None:
            return
        transform.xref = image_xref

        kind, value = self.doc.xref_get_key(image_xref, "SMask")
        if kind != 'xref':
            return
        smask = self.read_smask(parse_xref(value))
        if smask is not None:
            transform.smask, transform.smask_width, transform.smask_height = smask
            logger.debug(f"Soft mask {transform.smask_width}x{transform.smask_height} "
                         f"for {transform.name} (xref {image_xref})")

    def read_smask(self, smask_xref: int) -> Optional[Tuple[bytes, int, int]]:
        """
        Decode a soft mask into one byte per pixel.

        Returns:
            (data, width, height) or None if the mask is unreadable
        """
        if not smask_xref:
            return None
        try:
            pix = fitz.Pixmap(self.doc, smask_xref)
        except Exception as e:
            logger.warning(f"Cannot decode soft mask xref {smask_xref}: {e}")
            return None

        if pix.n != 1:
            try:
                pix = fitz.Pixmap(fitz.csGRAY, pix)
            except Exception as e:
                logger.warning(f"Cannot convert soft mask xref {smask_xref} to gray: {e}")
                return None
        rows = np.frombuffer(pix.samples, dtype=np.uint8)
        rows = rows[:pix.stride * pix.height].reshape(pix.height, pix.stride)
        data = np.ascontiguousarray(rows[:, :pix.width]).tobytes()
        return data, pix.width, pix.height
