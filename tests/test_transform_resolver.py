"""
Tests for matching content-stream placements to image occurrences.
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from helpers import make_image
from rulebook_images.rebuilder import ImageTransform, Rectangle, TransformResolver


class TestTransformResolver(unittest.TestCase):
    """Dimension and position matching plus clip and mask attachment."""

    def setUp(self):
        self.resolver = TransformResolver({})

    def test_exact_match(self):
        image = make_image(0, (10, 20, 110, 70), width=200, height=100)
        transform = ImageTransform((100, 0, 0, 50, 10, 20), name='Im0')

        self.assertEqual(self.resolver.resolve([image], {0: [transform]}), 1)
        self.assertEqual(image.area, Rectangle(10, 20, 110, 70))
        self.assertEqual(image.matrix, (100, 0, 0, 50, 10, 20))
        self.assertIsNone(image.crop_pixels)

    def test_dimension_mismatch_rejected(self):
        image = make_image(0, (10, 20, 110, 70))
        transform = ImageTransform((120, 0, 0, 50, 10, 20))
        self.assertIsNone(self.resolver.find_match(image, [transform]))

    def test_nearby_placement(self):
        image = make_image(0, (0, 0, 100, 100))
        # Same size, shifted 40 points on both axes
        transform = ImageTransform((100, 0, 0, 100, 40, 40))
        self.assertIsNotNone(self.resolver.find_match(image, [transform]))

    def test_far_placement_rejected(self):
        image = make_image(0, (0, 0, 100, 100))
        transform = ImageTransform((100, 0, 0, 100, 300, 300))
        self.assertIsNone(self.resolver.find_match(image, [transform]))

    def test_single_corner_match(self):
        """A placement reported correctly only at its left edge still matches."""
        image = make_image(0, (10, 500, 110, 600))
        transform = ImageTransform((100, 0, 0, 100, 12, 100))
        self.assertIsNotNone(self.resolver.find_match(image, [transform]))

    def test_transform_used_once(self):
        first = make_image(0, (10, 20, 110, 70))
        second = make_image(1, (10, 20, 110, 70))
        transform = ImageTransform((100, 0, 0, 50, 10, 20))

        self.assertEqual(self.resolver.resolve([second, first], {0: [transform]}), 1)
        self.assertIsNotNone(first.matrix)
        self.assertIsNone(second.matrix)

    def test_other_page_transforms_ignored(self):
        image = make_image(0, (10, 20, 110, 70), page_index=1)
        transform = ImageTransform((100, 0, 0, 50, 10, 20))
        self.assertEqual(self.resolver.resolve([image], {0: [transform]}), 0)

    def test_clip_narrows_area_and_crops(self):
        image = make_image(0, (0, 0, 100, 100), width=200, height=200)
        transform = ImageTransform((100, 0, 0, 100, 0, 0), clip=Rectangle(0, 50, 50, 100))

        self.resolver.resolve([image], {0: [transform]})
        self.assertEqual(image.area, Rectangle(0, 50, 50, 100))
        # Upper-left quarter of the pixels
        self.assertEqual(image.crop_pixels, (0, 0, 100, 100))

    def test_disjoint_clip_keeps_placement(self):
        image = make_image(0, (0, 0, 100, 100))
        transform = ImageTransform((100, 0, 0, 100, 0, 0), clip=Rectangle(300, 300, 400, 400))
        self.resolver.resolve([image], {0: [transform]})
        self.assertEqual(image.area, Rectangle(0, 0, 100, 100))
        self.assertIsNone(image.crop_pixels)

    def test_soft_mask_attached(self):
        image = make_image(0, (0, 0, 100, 100))
        transform = ImageTransform((100, 0, 0, 100, 0, 0))
        transform.smask = b'\x80' * 16
        transform.smask_width = transform.smask_height = 4

        self.resolver.resolve([image], {0: [transform]})
        self.assertTrue(image.has_smask)
        self.assertEqual((image.smask_width, image.smask_height), (4, 4))

    def test_off_page_transform_keeps_reported_area(self):
        image = make_image(0, (0, 0, 100, 100), page_size=(200, 300))
        transform = ImageTransform((100, 0, 0, 100, -40, 0))
        self.resolver.apply(image, transform)
        self.assertEqual(image.area, Rectangle(0, 0, 100, 100))
        self.assertEqual(image.matrix, (100, 0, 0, 100, -40, 0))

    def test_compute_crop(self):
        crop = TransformResolver.compute_crop(Rectangle(0, 0, 100, 100), Rectangle(25, 0, 75, 50),
                                              400, 400)
        self.assertEqual(crop, (100, 200, 200, 200))
        self.assertIsNone(TransformResolver.compute_crop(Rectangle(0, 0, 0, 10),
                                                         Rectangle(0, 0, 0, 10), 10, 10))


if __name__ == '__main__':
    unittest.main()
