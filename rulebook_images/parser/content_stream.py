"""
Content Stream - Minimal graphics-state interpreter for image placements

Only the operators that affect where an image lands are interpreted:
q/Q, cm, re, W/W*, the path-painting operators and Do.
"""

import logging
import re
from typing import Callable, List, Optional, Union

from ..rebuilder.geometry import (
    IDENTITY_MATRIX, Matrix, Rectangle, multiply_matrices, transform_rectangle,
)
from ..rebuilder.image_model import ImageTransform

logger = logging.getLogger(__name__)

# Operand tokens, delimiters and operators; strings and comments are consumed whole
TOKEN_PATTERN = re.compile(rb"""
    (?P<comment>%[^\r\n]*)
  | (?P<hexstring><[0-9A-Fa-f\s]*>)
  | (?P<dict><<|>>)
  | (?P<name>/[^\s/\[\]<>(){}%]*)
  | (?P<number>[+-]?(?:\d+\.?\d*|\.\d+))
  | (?P<delimiter>[\[\]{}])
  | (?P<word>[^\s/\[\]<>(){}%]+)
""", re.VERBOSE)

INLINE_IMAGE_END = re.compile(rb'\sEI(?=\s|$)')

PATH_END_OPERATORS = {'n', 'S', 's', 'f', 'F', 'f*', 'B', 'B*', 'b', 'b*'}

# XObject names producers give to images
IMAGE_NAME_PATTERN = re.compile(r'^(Im|fzImg|X\d)')

Operand = Union[float, str]


def is_image_name(name: str) -> bool:
    """Check whether an XObject resource name follows an image naming convention."""
    return bool(IMAGE_NAME_PATTERN.match(name.lstrip('/')))


def _skip_literal_string(data: bytes, pos: int) -> int:
    """Return the offset just past a balanced (...) string starting at `pos`."""
    depth = 0
    length = len(data)
    while pos < length:
        char = data[pos:pos + 1]
        if char == b'\\':
            pos += 2
            continue
        if char == b'(':
            depth += 1
        elif char == b')':
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1
    return length


def _skip_inline_image(data: bytes, pos: int) -> int:
    """Return the offset just past the EI that closes inline image data."""
    match = INLINE_IMAGE_END.search(data, pos)
    return match.end() if match else len(data)


def tokenize(data: bytes):
    """
    Yield (kind, value) tokens from raw content-stream bytes.

    Kinds are 'number', 'name', 'operator' and 'other'. Strings and
    array/dictionary delimiters come through as 'other' so operand
    windows stay aligned; comments and inline image data are dropped.
    """
    pos = 0
    length = len(data)
    while pos < length:
        if data[pos:pos + 1].isspace():
            pos += 1
            continue
        if data[pos:pos + 1] == b'(':
            pos = _skip_literal_string(data, pos)
            yield 'other', None
            continue

        match = TOKEN_PATTERN.match(data, pos)
        if match is None:
            pos += 1
            continue
        pos = match.end()
        kind = match.lastgroup
        text = match.group().decode('latin-1')

        if kind == 'number':
            yield 'number', float(text)
        elif kind == 'name':
            yield 'name', text
        elif kind == 'word':
            if text == 'ID':
                pos = _skip_inline_image(data, pos)
            yield 'operator', text
        elif kind in ('hexstring', 'delimiter', 'dict'):
            yield 'other', None


class GraphicsStateParser:
    """
    Walks a content stream and records the CTM and clip at every image draw.

    Clip rectangles are mapped through the CTM active when `re` was seen,
    so both the clip and the image bounds are in the same space.
    """

    def __init__(self, base_matrix: Matrix = IDENTITY_MATRIX,
                 image_filter: Optional[Callable[[str], bool]] = None):
        """
        Initialize the parser.

        Args:
            base_matrix: CTM in effect before the stream starts
            image_filter: Decides whether a `Do` name draws an image;
                defaults to the common image naming conventions
        """
        self.base_matrix = tuple(base_matrix)
        self.image_filter = image_filter or is_image_name
        self.reset()

    def reset(self):
        self.ctm: Matrix = self.base_matrix
        self.clip: Optional[Rectangle] = None
        self.pending_rect: Optional[Rectangle] = None
        self.stack: List[tuple] = []
        self.operands: List[Operand] = []
        self.transforms: List[ImageTransform] = []

    def parse(self, data: Union[bytes, str]) -> List[ImageTransform]:
        """
        Parse a decoded content stream.

        Args:
            data: Stream bytes (or text)

        Returns:
            One ImageTransform per image `Do`, in drawing order
        """
        if isinstance(data, str):
            data = data.encode('latin-1', errors='replace')

        self.reset()
        for kind, value in tokenize(data):
            if kind == 'operator':
                self._execute(value)
                self.operands = []
            else:
                self.operands.append(value)

        if self.stack:
            logger.debug(f"Content stream ended with {len(self.stack)} unbalanced q")
        return self.transforms

    def _numbers(self, count: int) -> Optional[List[float]]:
        if len(self.operands) < count:
            return None
        values = self.operands[-count:]
        if not all(isinstance(v, float) for v in values):
            return None
        return values

    def _execute(self, operator: str):
        if operator == 'q':
            self.stack.append((self.ctm, self.clip))
        elif operator == 'Q':
            if self.stack:
                self.ctm, self.clip = self.stack.pop()
        elif operator == 'cm':
            values = self._numbers(6)
            if values is not None:
                self.ctm = multiply_matrices(values, self.ctm)
        elif operator == 're':
            values = self._numbers(4)
            if values is not None:
                x, y, w, h = values
                self.pending_rect = transform_rectangle(self.ctm, Rectangle(x, y, x + w, y + h))
        elif operator in ('W', 'W*'):
            if self.pending_rect is not None:
                if self.clip is None:
                    self.clip = self.pending_rect
                else:
                    # Disjoint clips collapse to an empty box at the pending rect's corner
                    self.clip = self.clip.intersection(self.pending_rect) or Rectangle(
                        self.pending_rect.left, self.pending_rect.bottom,
                        self.pending_rect.left, self.pending_rect.bottom)
        elif operator in PATH_END_OPERATORS:
            self.pending_rect = None
        elif operator == 'Do':
            name = self.operands[-1] if self.operands else None
            if isinstance(name, str) and self.image_filter(name.lstrip('/')):
                self.transforms.append(
                    ImageTransform(self.ctm, name=name.lstrip('/'),
                                   clip=self.clip.copy() if self.clip else None))


def parse_content_stream(data: Union[bytes, str],
                         base_matrix: Matrix = IDENTITY_MATRIX) -> List[ImageTransform]:
    """Convenience wrapper returning the image transforms of one stream."""
    return GraphicsStateParser(base_matrix).parse(data)
