"""
PDF Parser Module
Reads raw images, content-stream placements, and page content from PDF files.
"""

from .image_enumerator import ImageEnumerator
from .content_inspector import ContentInspector
from .page_analyzer import PageAnalyzer
from .content_stream import GraphicsStateParser, parse_content_stream

__all__ = ['ImageEnumerator', 'ContentInspector', 'PageAnalyzer',
           'GraphicsStateParser', 'parse_content_stream']
