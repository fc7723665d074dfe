"""
Rulebook Images
Extracts displayed illustrations from rulebook PDFs.
"""

from .errors import ExtractionError, DocumentOpenError, SurfaceError, RenderError, PageAnalysisError
from .pipeline import ImageExtractionPipeline

__all__ = ['ImageExtractionPipeline', 'ExtractionError', 'DocumentOpenError',
           'SurfaceError', 'RenderError', 'PageAnalysisError']
