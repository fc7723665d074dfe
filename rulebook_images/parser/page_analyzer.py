"""
Page Analyzer - Text, vector and image footprints plus region rendering via pypdfium2
"""

import logging
from typing import List, Dict, Any, Optional

import pypdfium2 as pdfium
import pypdfium2.raw as pdfium_c
from PIL import Image

from ..errors import DocumentOpenError, PageAnalysisError, RenderError
from ..rebuilder.geometry import Rectangle
from ..rebuilder.image_model import ContentRegion, PageBoxes, PageContent, RendererImage

logger = logging.getLogger(__name__)


def merge_text_lines(char_boxes: List[Rectangle], line_break_threshold: float = 5.0) -> List[Rectangle]:
    """
    Merge consecutive character boxes into line boxes.

    A new line starts whenever a character's bottom edge moves by more
    than `line_break_threshold` points from the previous character's.

    Args:
        char_boxes: Character boxes in reading order
        line_break_threshold: Vertical jump in points

    Returns:
        One rectangle per text line
    """
    lines = []
    current: Optional[Rectangle] = None
    last_y: Optional[float] = None

    for box in char_boxes:
        if last_y is not None and abs(box.bottom - last_y) > line_break_threshold:
            if current is not None:
                lines.append(current)
            current = None

        current = box.copy() if current is None else current.union(box)
        last_y = box.bottom

    if current is not None:
        lines.append(current)
    return lines


class PageAnalyzer:
    """
    Renderer-side view of a page.

    Reports merged text lines, path and form footprints, an independent
    list of image boxes, the page boxes, and rasterizes sub-regions.
    All coordinates are PDF points with y growing upward.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.line_break_threshold = config.get('line_break_threshold', 5.0)
        self.pdf = None

    def open(self, pdf_path: str):
        """
        Open a PDF file.

        Raises:
            DocumentOpenError: If pdfium cannot read the file
        """
        try:
            self.pdf = pdfium.PdfDocument(pdf_path)
        except (pdfium.PdfiumError, OSError) as e:
            raise DocumentOpenError(pdf_path, 'page analyzer', str(e)) from e

    def close(self):
        """Close the PDF document."""
        if self.pdf is not None:
            self.pdf.close()
            self.pdf = None

    def get_page_count(self) -> int:
        return len(self.pdf) if self.pdf is not None else 0

    def analyze_page(self, page_index: int) -> PageContent:
        """
        Collect everything the pipeline needs to know about one page.

        Args:
            page_index: 0-based page index

        Returns:
            PageContent with text, path and image footprints

        Raises:
            PageAnalysisError: If pdfium cannot load or read the page
        """
        try:
            page = self.pdf[page_index]
        except pdfium.PdfiumError as e:
            raise PageAnalysisError(f"Cannot load page {page_index + 1}: {e}") from e

        try:
            width, height = page.get_size()
            boxes = PageBoxes(Rectangle(*page.get_mediabox()), Rectangle(*page.get_cropbox()))
            content = PageContent(page_index, width, height, boxes)

            content.text_regions = [ContentRegion(bounds, ContentRegion.TEXT)
                                    for bounds in self._text_lines(page)]
            content.path_regions = [ContentRegion(bounds, ContentRegion.PATH)
                                    for bounds in self._path_bounds(page, boxes.crop_box)]
            content.images = self._image_bounds(page)
        except pdfium.PdfiumError as e:
            raise PageAnalysisError(f"Cannot read page {page_index + 1}: {e}") from e
        finally:
            page.close()

        logger.debug(f"Page {page_index + 1}: {len(content.text_regions)} text lines, "
                     f"{len(content.path_regions)} path regions, {len(content.images)} renderer images")
        return content

    def _text_lines(self, page) -> List[Rectangle]:
        textpage = page.get_textpage()
        try:
            char_boxes = []
            for index in range(textpage.count_chars()):
                left, bottom, right, top = textpage.get_charbox(index)
                if right <= left and top <= bottom:
                    continue
                char_boxes.append(Rectangle(left, bottom, right, top))
        finally:
            textpage.close()
        return merge_text_lines(char_boxes, self.line_break_threshold)

    def _path_bounds(self, page, page_box: Rectangle) -> List[Rectangle]:
        """
        Footprints of top-level paths and forms, clipped to the page box.

        Form XObjects are taken whole; their children are in form space.
        """
        regions = []
        for obj in page.get_objects(filter=(pdfium_c.FPDF_PAGEOBJ_PATH, pdfium_c.FPDF_PAGEOBJ_FORM),
                                    max_depth=1):
            try:
                bounds = Rectangle(*obj.get_bounds())
            except pdfium.PdfiumError:
                continue
            visible = bounds.intersection(page_box)
            if visible is not None:
                regions.append(visible)
        return regions

    def _image_bounds(self, page) -> List[RendererImage]:
        images = []
        for obj in page.get_objects(filter=(pdfium_c.FPDF_PAGEOBJ_IMAGE,), max_depth=1):
            try:
                bounds = Rectangle(*obj.get_bounds())
            except pdfium.PdfiumError:
                continue
            try:
                width, height = obj.get_px_size()
            except pdfium.PdfiumError:
                width, height = max(1, int(bounds.width)), max(1, int(bounds.height))
            images.append(RendererImage(bounds, int(width), int(height)))
        return images

    def render_region(self, page_index: int, region: Rectangle, dpi: float) -> Image.Image:
        """
        Rasterize a sub-rectangle of a page.

        Args:
            page_index: 0-based page index
            region: Rectangle in page space
            dpi: Output resolution

        Returns:
            RGBA image of the region

        Raises:
            RenderError: If the page cannot be rendered
        """
        try:
            page = self.pdf[page_index]
        except Exception as e:
            raise RenderError(f"Cannot load page {page_index + 1}: {e}") from e

        try:
            width, height = page.get_size()
            origin_x, origin_y = page.get_cropbox()[:2]

            left = min(max(0.0, region.left - origin_x), width)
            bottom = min(max(0.0, region.bottom - origin_y), height)
            right = min(max(0.0, width - (region.right - origin_x)), width - left)
            top = min(max(0.0, height - (region.top - origin_y)), height - bottom)
            if left + right >= width or bottom + top >= height:
                raise RenderError(f"Region {region!r} lies outside page {page_index + 1}")

            logger.debug(f"Page {page_index + 1}: rendering {region!r} at {dpi:.0f} DPI")
            bitmap = page.render(scale=dpi / 72.0, crop=(left, bottom, right, top))
            image = bitmap.to_pil().convert('RGBA')
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Rendering page {page_index + 1} failed: {e}") from e
        finally:
            page.close()

        return image
