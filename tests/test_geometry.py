"""
Tests for rectangle set operations and placement matrices.
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rulebook_images.rebuilder.geometry import (
    IDENTITY_MATRIX, Rectangle, bounds_from_matrix, is_valid_bounds, matrix_scale,
    multiply_matrices, needs_transformation, normalize_matrix, transform_rectangle,
)


class TestRectangle(unittest.TestCase):
    """Rectangle measurements and set operations."""

    def test_area_of_inverted_rectangle(self):
        rect = Rectangle(100, 50, 0, 0)
        self.assertEqual(rect.width, 100)
        self.assertEqual(rect.height, 50)
        self.assertEqual(rect.area, 5000)
        self.assertEqual((rect.left, rect.bottom, rect.right, rect.top), (0, 0, 100, 50))

    def test_intersection_and_union(self):
        a = Rectangle(0, 0, 100, 100)
        b = Rectangle(50, 60, 150, 160)
        self.assertEqual(a.intersection(b), Rectangle(50, 60, 100, 100))
        self.assertEqual(a.union(b), Rectangle(0, 0, 150, 160))

    def test_touching_rectangles_intersect_without_area(self):
        a = Rectangle(0, 0, 100, 100)
        b = Rectangle(100, 0, 200, 100)
        self.assertTrue(a.intersects(b))
        self.assertIsNone(a.intersection(b))

    def test_bounding(self):
        rects = [Rectangle(0, 0, 10, 10), Rectangle(20, -5, 30, 5)]
        self.assertEqual(Rectangle.bounding(rects), Rectangle(0, -5, 30, 10))
        self.assertIsNone(Rectangle.bounding([]))

    def test_overlap_fraction_is_symmetric(self):
        """Intersection over the smaller area, in either argument order."""
        a = Rectangle(0, 0, 100, 100)
        b = Rectangle(20, 20, 120, 120)
        self.assertAlmostEqual(a.overlap_fraction(b), 0.64)
        self.assertAlmostEqual(b.overlap_fraction(a), 0.64)

        small = Rectangle(10, 10, 20, 20)
        self.assertEqual(a.overlap_fraction(small), 1.0)
        self.assertEqual(small.overlap_fraction(a), 1.0)

    def test_overlap_fraction_range(self):
        a = Rectangle(0, 0, 100, 100)
        for other in (Rectangle(200, 200, 300, 300), Rectangle(50, 0, 150, 100),
                      Rectangle(0, 0, 100, 100), Rectangle(5, 5, 5, 5)):
            fraction = a.overlap_fraction(other)
            self.assertGreaterEqual(fraction, 0.0)
            self.assertLessEqual(fraction, 1.0)

    def test_adjacency(self):
        a = Rectangle(0, 0, 100, 100)
        self.assertTrue(a.is_adjacent(Rectangle(100, 0, 200, 100)))
        self.assertTrue(a.is_adjacent(Rectangle(100.5, 0, 200, 100)))
        self.assertTrue(a.is_adjacent(Rectangle(100, 100, 200, 200)))
        self.assertFalse(a.is_adjacent(Rectangle(105, 0, 200, 100)))
        self.assertFalse(a.is_adjacent(Rectangle(20, 20, 120, 120)))
        self.assertTrue(a.is_adjacent(Rectangle(103, 0, 200, 100), tolerance=5.0))

    def test_equality_and_hash(self):
        self.assertEqual(Rectangle(1, 2, 3, 4), Rectangle(1.0, 2.0, 3.0, 4.0))
        self.assertEqual(len({Rectangle(1, 2, 3, 4), Rectangle(1, 2, 3, 4)}), 1)


class TestBoundsValidity(unittest.TestCase):
    """Page plus bleed margin checks."""

    def test_inside_page(self):
        self.assertTrue(is_valid_bounds(Rectangle(0, 0, 200, 300), 200, 300))

    def test_within_margin(self):
        # Margin is 10% of the larger side: 30 points
        self.assertTrue(is_valid_bounds(Rectangle(-20, -20, 220, 320), 200, 300))

    def test_outside_margin(self):
        self.assertFalse(is_valid_bounds(Rectangle(-50, 0, 150, 100), 200, 300))
        self.assertFalse(is_valid_bounds(Rectangle(0, 0, 200, 340), 200, 300))

    def test_inverted_rectangle(self):
        self.assertTrue(is_valid_bounds(Rectangle(150, 100, 0, 0), 200, 300))


class TestMatrices(unittest.TestCase):
    """Affine composition and decomposition."""

    def test_needs_transformation(self):
        self.assertFalse(needs_transformation(IDENTITY_MATRIX))
        self.assertFalse(needs_transformation((2, 0, 0, 2, 10, 20)))
        self.assertTrue(needs_transformation((0, 1, -1, 0, 0, 0)))
        self.assertTrue(needs_transformation((-1, 0, 0, 1, 0, 0)))
        self.assertTrue(needs_transformation((1, 0, 0, -1, 0, 0)))
        self.assertFalse(needs_transformation((1, 0.005, 0, 1, 0, 0)))

    def test_bounds_from_translation(self):
        self.assertEqual(bounds_from_matrix((1, 0, 0, 1, 100, 200)), Rectangle(100, 200, 101, 201))

    def test_bounds_from_scale(self):
        self.assertEqual(bounds_from_matrix((100, 0, 0, 50, 10, 20)), Rectangle(10, 20, 110, 70))

    def test_bounds_from_rotation(self):
        bounds = bounds_from_matrix((0, 50, -100, 0, 110, 20))
        self.assertEqual(bounds, Rectangle(10, 20, 110, 70))

    def test_multiply_applies_first_operand_first(self):
        translate = (1, 0, 0, 1, 10, 0)
        scale = (2, 0, 0, 2, 0, 0)
        self.assertEqual(multiply_matrices(translate, scale), (2, 0, 0, 2, 20, 0))
        self.assertEqual(multiply_matrices(scale, translate), (2, 0, 0, 2, 10, 0))

    def test_multiply_by_identity(self):
        m = (0.5, 0.2, -0.3, 1.5, 7, 9)
        self.assertEqual(multiply_matrices(m, IDENTITY_MATRIX), m)
        self.assertEqual(multiply_matrices(IDENTITY_MATRIX, m), m)

    def test_matrix_scale(self):
        self.assertEqual(matrix_scale((0, 50, -100, 0, 0, 0)), (50, 100))
        self.assertEqual(matrix_scale((3, 4, 0, 2, 0, 0)), (5, 2))

    def test_normalize_matrix(self):
        self.assertEqual(normalize_matrix((0, 50, -100, 0, 5, 5)), (0, 1, -1, 0))
        self.assertIsNone(normalize_matrix((0, 0, 0, 1, 0, 0)))

    def test_transform_rectangle(self):
        rect = transform_rectangle((2, 0, 0, 3, 1, 1), Rectangle(0, 0, 10, 10))
        self.assertEqual(rect, Rectangle(1, 1, 21, 31))


if __name__ == '__main__':
    unittest.main()
