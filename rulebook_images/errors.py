"""
Extraction Errors - Exception taxonomy for the image extraction pipeline
"""


class ExtractionError(Exception):
    """Base class for all extraction failures."""


class DocumentOpenError(ExtractionError):
    """
    The document cannot be opened by one of the PDF collaborators.

    This is the only failure that aborts a whole extraction run.
    """

    def __init__(self, pdf_path: str, collaborator: str, reason: str):
        self.pdf_path = pdf_path
        self.collaborator = collaborator
        self.reason = reason
        super().__init__(f"{collaborator} could not open {pdf_path}: {reason}")


class SurfaceError(ExtractionError):
    """An image's pixel surface could not be read or has an unknown layout."""


class RenderError(ExtractionError):
    """Region rasterization of an overlap group failed."""


class PageAnalysisError(ExtractionError):
    """The renderer could not read a page's text, paths or image objects."""
