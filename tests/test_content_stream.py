"""
Tests for the graphics-state content-stream interpreter.
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rulebook_images.parser.content_stream import (
    GraphicsStateParser, is_image_name, parse_content_stream, tokenize,
)
from rulebook_images.rebuilder.geometry import Rectangle


class TestTokenizer(unittest.TestCase):

    def test_kinds(self):
        tokens = list(tokenize(b"q 1 0 0 1 -2.5 .5 cm /Im0 Do Q"))
        self.assertEqual(tokens[0], ('operator', 'q'))
        self.assertEqual(tokens[5], ('number', -2.5))
        self.assertEqual(tokens[6], ('number', 0.5))
        self.assertEqual(tokens[8], ('name', '/Im0'))
        self.assertEqual(tokens[-1], ('operator', 'Q'))

    def test_strings_and_comments_are_opaque(self):
        tokens = list(tokenize(b"% 1 0 0 1 5 5 cm\n(a (nested) q \\) string) Tj <414243> Tj"))
        self.assertEqual(tokens, [('other', None), ('operator', 'Tj'),
                                  ('other', None), ('operator', 'Tj')])

    def test_inline_image_data_skipped(self):
        tokens = list(tokenize(b"BI /W 1 /H 1 ID \x00\xffcm EI /Im0 Do"))
        operators = [value for kind, value in tokens if kind == 'operator']
        self.assertEqual(operators, ['BI', 'ID', 'Do'])


class TestImageNames(unittest.TestCase):

    def test_conventions(self):
        self.assertTrue(is_image_name('Im0'))
        self.assertTrue(is_image_name('/Im12'))
        self.assertTrue(is_image_name('fzImg3'))
        self.assertTrue(is_image_name('X1'))
        self.assertFalse(is_image_name('Fm0'))
        self.assertFalse(is_image_name('Xi'))


class TestGraphicsStateParser(unittest.TestCase):
    """CTM and clip tracking at image draws."""

    def test_single_draw(self):
        transforms = parse_content_stream(b"q 100 0 0 50 10 20 cm /Im1 Do Q")
        self.assertEqual(len(transforms), 1)
        transform = transforms[0]
        self.assertEqual(transform.name, 'Im1')
        self.assertEqual(transform.bounds, Rectangle(10, 20, 110, 70))
        self.assertEqual((transform.expected_width, transform.expected_height), (100, 50))
        self.assertIsNone(transform.clip)

    def test_nested_state(self):
        stream = b"q 1 0 0 1 100 200 cm q 50 0 0 50 0 0 cm /Im0 Do Q /Im1 Do Q /Im2 Do"
        transforms = parse_content_stream(stream)
        self.assertEqual([t.name for t in transforms], ['Im0', 'Im1', 'Im2'])
        self.assertEqual(transforms[0].bounds, Rectangle(100, 200, 150, 250))
        self.assertEqual(transforms[1].bounds, Rectangle(100, 200, 101, 201))
        self.assertEqual(transforms[2].bounds, Rectangle(0, 0, 1, 1))

    def test_cm_maps_through_existing_ctm(self):
        """Later cm operands act in the coordinate system set up by earlier ones."""
        stream = b"1 0 0 1 100 100 cm 0 1 -1 0 0 0 cm 20 0 0 10 0 0 cm /Im0 Do"
        transform = parse_content_stream(stream)[0]
        self.assertEqual(transform.matrix, (0, 20, -10, 0, 100, 100))
        self.assertEqual(transform.bounds, Rectangle(90, 100, 100, 120))
        self.assertEqual((transform.expected_width, transform.expected_height), (20, 10))

    def test_base_matrix(self):
        transforms = parse_content_stream(b"10 0 0 10 0 0 cm /Im0 Do", base_matrix=(1, 0, 0, 1, 5, 5))
        self.assertEqual(transforms[0].bounds, Rectangle(5, 5, 15, 15))

    def test_clip_restored_by_Q(self):
        stream = b"q 10 10 50 50 re W n 100 0 0 100 0 0 cm /Im0 Do Q /Im1 Do"
        transforms = parse_content_stream(stream)
        self.assertEqual(transforms[0].clip, Rectangle(10, 10, 60, 60))
        self.assertIsNone(transforms[1].clip)

    def test_clip_mapped_through_ctm(self):
        transforms = parse_content_stream(b"2 0 0 2 0 0 cm 0 0 10 10 re W n /Im0 Do")
        self.assertEqual(transforms[0].clip, Rectangle(0, 0, 20, 20))

    def test_nested_clips_intersect(self):
        stream = b"0 0 100 100 re W n 50 50 100 100 re W n /Im0 Do"
        self.assertEqual(parse_content_stream(stream)[0].clip, Rectangle(50, 50, 100, 100))

    def test_disjoint_clips_collapse(self):
        stream = b"0 0 10 10 re W n 50 50 10 10 re W n /Im0 Do"
        clip = parse_content_stream(stream)[0].clip
        self.assertEqual(clip.area, 0)

    def test_painted_rectangle_does_not_clip(self):
        transforms = parse_content_stream(b"0 0 10 10 re f W n /Im0 Do")
        self.assertIsNone(transforms[0].clip)

    def test_non_image_names_ignored(self):
        self.assertEqual(parse_content_stream(b"/Fm0 Do /GS1 gs"), [])

    def test_custom_image_filter(self):
        parser = GraphicsStateParser(image_filter=lambda name: name == 'Pic')
        transforms = parser.parse(b"/Pic Do /Im0 Do")
        self.assertEqual([t.name for t in transforms], ['Pic'])

    def test_text_operands_do_not_leak(self):
        stream = b"BT /F1 12 Tf (q 1 0 0 1 5 5 cm) Tj ET /Im0 Do"
        self.assertEqual(parse_content_stream(stream)[0].bounds, Rectangle(0, 0, 1, 1))

    def test_unbalanced_Q_ignored(self):
        transforms = parse_content_stream(b"Q Q 2 0 0 2 0 0 cm /Im0 Do")
        self.assertEqual(transforms[0].bounds, Rectangle(0, 0, 2, 2))

    def test_short_cm_ignored(self):
        transforms = parse_content_stream(b"1 0 0 cm /Im0 Do")
        self.assertEqual(transforms[0].matrix, (1, 0, 0, 1, 0, 0))

    def test_str_input(self):
        self.assertEqual(len(parse_content_stream("q 1 0 0 1 0 0 cm /Im0 Do Q")), 1)

    def test_parser_is_reusable(self):
        parser = GraphicsStateParser()
        parser.parse(b"q 0 0 10 10 re W n")
        transforms = parser.parse(b"/Im0 Do")
        self.assertIsNone(transforms[0].clip)
        self.assertEqual(len(transforms), 1)


if __name__ == '__main__':
    unittest.main()
