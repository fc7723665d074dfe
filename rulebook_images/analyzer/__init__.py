"""
Image Analyzer Module
Detects recurring backgrounds and groups overlapping page content.
"""

from .background_detector import BackgroundDetector
from .overlap_detector import OverlapDetector
from .union_find import UnionFind

__all__ = ['BackgroundDetector', 'OverlapDetector', 'UnionFind']
