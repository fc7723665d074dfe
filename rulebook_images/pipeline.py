"""
Extraction Pipeline - Runs every extraction step for one document
"""

import logging
from collections import defaultdict
from typing import List, Dict, Any, Optional

from .analyzer import BackgroundDetector, OverlapDetector
from .errors import PageAnalysisError
from .generator import ImageGenerator, PixelConverter, RegionRenderer
from .parser import ContentInspector, ImageEnumerator, PageAnalyzer
from .rebuilder import BoundsCorrector, OutputImage, OverlapGroup, PageContent, TransformResolver

logger = logging.getLogger(__name__)


class ImageExtractionPipeline:
    """
    Extracts the displayed images of a PDF.

    Steps run strictly in order because each consumes the whole document's
    output of the previous one:
    enumerate -> resolve transforms -> correct bounds -> detect backgrounds
    -> group overlaps -> generate output.

    The three PDF collaborators can be injected; by default PyMuPDF backs
    the enumerator and inspector and pypdfium2 backs the analyzer.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 enumerator=None, inspector=None, analyzer=None):
        self.config = config or {}
        self.enumerator = enumerator or ImageEnumerator(self.config)
        self.inspector = inspector or ContentInspector(self.config)
        self.analyzer = analyzer or PageAnalyzer(self.config)

        self.resolver = TransformResolver(self.config)
        self.corrector = BoundsCorrector(self.config)
        self.background_detector = BackgroundDetector(self.config)
        self.overlap_detector = OverlapDetector(self.config)
        self.generator = ImageGenerator(self.config, RegionRenderer(self.analyzer, self.config),
                                        PixelConverter())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self, pdf_path: str):
        """
        Open the document in every collaborator.

        Raises:
            DocumentOpenError: If any collaborator cannot read the file
        """
        try:
            for collaborator in (self.enumerator, self.inspector, self.analyzer):
                collaborator.open(pdf_path)
        except Exception:
            self.close()
            raise

    def close(self):
        for collaborator in (self.enumerator, self.inspector, self.analyzer):
            collaborator.close()

    def run(self, pdf_path: str) -> List[OutputImage]:
        """
        Extract images from a PDF.

        Args:
            pdf_path: Path to the PDF file

        Returns:
            Output images ordered by page then within-page index

        Raises:
            DocumentOpenError: If the document cannot be opened
        """
        self.open(pdf_path)
        try:
            return self._extract()
        finally:
            self.close()

    def _extract(self) -> List[OutputImage]:
        self._banner("Step 1: Enumerating images and page content")
        images = self.enumerator.enumerate_all()
        pages = self._analyze_pages()
        logger.info(f"Found {len(images)} image occurrence(s) on {len(pages)} page(s)")

        self._banner("Step 2: Resolving placement transforms")
        transforms = self.inspector.extract_all_transforms()
        self.resolver.resolve(images, transforms)

        self._banner("Step 3: Correcting image bounds")
        self.corrector.correct(images,
                               {index: page.images for index, page in pages.items()},
                               {index: page.boxes for index, page in pages.items()})

        self._banner("Step 4: Detecting backgrounds")
        backgrounds = self.background_detector.detect(images)
        _kept, skipped = self.background_detector.partition(images, backgrounds)

        self._banner("Step 5: Grouping overlapping content")
        groups = self._detect_groups(images, pages, backgrounds)

        self._banner("Step 6: Generating output images")
        return self.generator.generate(images, backgrounds, skipped, groups)

    def _analyze_pages(self) -> Dict[int, PageContent]:
        pages = {}
        for page_index in range(self.analyzer.get_page_count()):
            try:
                pages[page_index] = self.analyzer.analyze_page(page_index)
            except PageAnalysisError as e:
                logger.warning(f"Page {page_index + 1}: analysis failed, page content ignored: {e}")
        return pages

    def _detect_groups(self, images, pages: Dict[int, PageContent],
                       backgrounds) -> Dict[int, List[OverlapGroup]]:
        by_page: Dict[int, List[int]] = defaultdict(list)
        for position, image in enumerate(images):
            by_page[image.page_index].append(position)

        groups = {}
        for page_index, positions in sorted(by_page.items()):
            page = pages.get(page_index)
            page_groups = self.overlap_detector.detect_groups(
                images, positions,
                page.text_regions if page else [],
                page.path_regions if page else [],
                is_background=lambda i: images[i].signature in backgrounds)
            if page_groups:
                groups[page_index] = page_groups
                logger.info(f"Page {page_index + 1}: {len(page_groups)} overlap group(s)")
        return groups

    @staticmethod
    def _banner(title: str):
        logger.info("=" * 60)
        logger.info(title)
        logger.info("=" * 60)
