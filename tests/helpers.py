"""
Shared builders for the test suite.
"""

import sys
from pathlib import Path

import fitz  # PyMuPDF

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rulebook_images.rebuilder import ImageInfo, Rectangle, SurfaceFormat


def rgb24_surface(width, height, color=(200, 100, 50)):
    """Solid BGRx surface bytes."""
    r, g, b = color
    return bytes([b, g, r, 255]) * (width * height)


def make_image(image_id, bounds, page_index=0, width=64, height=64,
               page_size=(600.0, 800.0), color=(200, 100, 50), data=None):
    """
    Build an RGB24 image occurrence.

    Args:
        image_id: Draw-order identifier
        bounds: (x1, y1, x2, y2) placement in page space
        page_index: Owning page
        width: Pixel width
        height: Pixel height
        page_size: (width, height) of the page in points
        color: Fill color used when `data` is not given
        data: Explicit surface bytes
    """
    if data is None:
        data = rgb24_surface(width, height, color)
    page_width, page_height = page_size
    return ImageInfo(image_id, Rectangle(*bounds), data, width, height, width * 4,
                     SurfaceFormat.RGB24, page_index, page_width, page_height)


def solid_pixmap(color, size=64):
    """RGB pixmap filled with one color."""
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, size, size), False)
    pix.set_rect(pix.irect, color)
    return pix


def build_text_over_image_pdf(path):
    """
    One 600x800 page: a red image at top-left (50, 50, 250, 250) and a
    blue one at (300, 300, 500, 500) with a line of text printed over it.
    All rectangles are in top-left coordinates.
    """
    doc = fitz.open()
    page = doc.new_page(width=600, height=800)
    page.insert_image(fitz.Rect(50, 50, 250, 250), pixmap=solid_pixmap((200, 30, 30)))
    page.insert_image(fitz.Rect(300, 300, 500, 500), pixmap=solid_pixmap((30, 30, 200)))
    page.insert_text((320, 400), "Hello", fontsize=24)
    doc.save(str(path))
    doc.close()


def build_rotated_form_pdf(path):
    """
    One 600x800 page whose only content is a Form XObject drawing an
    image rotated by 90 degrees into (100, 100, 200, 200) under a clip.

    Returns:
        xref of the image XObject
    """
    doc = fitz.open()
    page = doc.new_page(width=600, height=800)
    image_xref = page.insert_image(fitz.Rect(0, 0, 64, 64), pixmap=solid_pixmap((30, 160, 30)))

    form_xref = doc.get_new_xref()
    doc.update_object(form_xref, f"<</Type/XObject/Subtype/Form/BBox[0 0 600 800]"
                                 f"/Resources<</XObject<</Im0 {image_xref} 0 R>>>>>>")
    doc.update_stream(form_xref, b"q 0 0 300 300 re W n 0 100 -100 0 200 100 cm /Im0 Do Q")

    doc.xref_set_key(page.xref, "Resources", f"<</XObject<</Fm0 {form_xref} 0 R>>>>")
    contents = page.get_contents()
    doc.update_stream(contents[0], b"q /Fm0 Do Q")
    for xref in contents[1:]:
        doc.update_stream(xref, b" ")

    doc.save(str(path))
    doc.close()
    return image_xref


def build_cropped_page_pdf(path):
    """
    One 612x792 page with a half-inch bleed cropped away (CropBox 36, 36,
    576, 756). A blue image sits at user-space (100, 392, 300, 592) and a
    line of text runs from x=270 across its right edge.
    """
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    page.insert_image(fitz.Rect(100, 200, 300, 400), pixmap=solid_pixmap((30, 30, 200)))
    page.insert_text((270, 300), "WWWWWW", fontsize=24)
    page.set_cropbox(fitz.Rect(36, 36, 576, 756))
    doc.save(str(path))
    doc.close()
