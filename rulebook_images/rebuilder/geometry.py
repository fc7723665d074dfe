"""
Geometry - Axis-aligned rectangles and 2D affine matrices in PDF page space
"""

import math
from typing import Iterable, Optional, Sequence, Tuple

# [a, b, c, d, e, f] as used by the PDF `cm` operator
Matrix = Tuple[float, float, float, float, float, float]

IDENTITY_MATRIX: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


class Rectangle:
    """
    Axis-aligned box in PDF points with y increasing upward.

    Corner values are stored as given; every set operation works on the
    normalized extent (left/bottom/right/top), so inverted boxes behave.
    """

    __slots__ = ('x1', 'y1', 'x2', 'y2')

    def __init__(self, x1: float, y1: float, x2: float, y2: float):
        self.x1 = float(x1)
        self.y1 = float(y1)
        self.x2 = float(x2)
        self.y2 = float(y2)

    @classmethod
    def bounding(cls, rects: Iterable['Rectangle']) -> Optional['Rectangle']:
        """Smallest rectangle containing every given rectangle, or None if empty."""
        result = None
        for rect in rects:
            result = rect.copy() if result is None else result.union(rect)
        return result

    @property
    def left(self) -> float:
        return min(self.x1, self.x2)

    @property
    def right(self) -> float:
        return max(self.x1, self.x2)

    @property
    def bottom(self) -> float:
        return min(self.y1, self.y2)

    @property
    def top(self) -> float:
        return max(self.y1, self.y2)

    @property
    def width(self) -> float:
        return abs(self.x2 - self.x1)

    @property
    def height(self) -> float:
        return abs(self.y2 - self.y1)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0)

    def copy(self) -> 'Rectangle':
        return Rectangle(self.x1, self.y1, self.x2, self.y2)

    def translated(self, dx: float, dy: float) -> 'Rectangle':
        return Rectangle(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def intersects(self, other: 'Rectangle') -> bool:
        """True if the rectangles share any point, touching edges included."""
        return not (self.right < other.left or other.right < self.left or
                    self.top < other.bottom or other.top < self.bottom)

    def intersection(self, other: 'Rectangle') -> Optional['Rectangle']:
        """
        Intersection of two rectangles.

        Returns:
            The overlapping rectangle, or None when the overlap has no area
        """
        x1 = max(self.left, other.left)
        y1 = max(self.bottom, other.bottom)
        x2 = min(self.right, other.right)
        y2 = min(self.top, other.top)
        if x1 < x2 and y1 < y2:
            return Rectangle(x1, y1, x2, y2)
        return None

    def union(self, other: 'Rectangle') -> 'Rectangle':
        return Rectangle(min(self.left, other.left), min(self.bottom, other.bottom),
                         max(self.right, other.right), max(self.top, other.top))

    def overlap_fraction(self, other: 'Rectangle') -> float:
        """
        Intersection area relative to the smaller of the two rectangles.

        Returns:
            A value in [0, 1]; 0 when either rectangle is degenerate
        """
        smaller_area = min(self.area, other.area)
        if smaller_area <= 0:
            return 0.0
        overlap = self.intersection(other)
        if overlap is None:
            return 0.0
        return min(1.0, overlap.area / smaller_area)

    def is_adjacent(self, other: 'Rectangle', tolerance: float = 1.0) -> bool:
        """
        Check whether two rectangles touch or nearly touch.

        The rectangles must come within `tolerance` of each other on both
        axes while their overlap depth on at least one axis stays within
        `tolerance`. Rectangles that genuinely overlap are not adjacent;
        overlap is judged by `overlap_fraction` instead.

        Args:
            other: Rectangle to compare against
            tolerance: Distance in points still counted as touching

        Returns:
            True if the rectangles share an edge within tolerance
        """
        depth_x = min(self.right, other.right) - max(self.left, other.left)
        depth_y = min(self.top, other.top) - max(self.bottom, other.bottom)
        if depth_x < -tolerance or depth_y < -tolerance:
            return False
        return depth_x <= tolerance or depth_y <= tolerance

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Rectangle):
            return NotImplemented
        return self.to_tuple() == other.to_tuple()

    def __hash__(self) -> int:
        return hash(self.to_tuple())

    def __repr__(self) -> str:
        return f"Rectangle({self.x1:.1f}, {self.y1:.1f}, {self.x2:.1f}, {self.y2:.1f})"


def page_rectangle(page_width: float, page_height: float) -> Rectangle:
    return Rectangle(0.0, 0.0, page_width, page_height)


def is_valid_bounds(bounds: Rectangle, page_width: float, page_height: float,
                    margin_fraction: float = 0.1) -> bool:
    """
    Check that a rectangle lies within the page plus a bleed margin.

    Args:
        bounds: Rectangle in page space
        page_width: Page width in points
        page_height: Page height in points
        margin_fraction: Margin as a fraction of the larger page side

    Returns:
        True if the rectangle is plausible for this page
    """
    margin = max(page_width, page_height) * margin_fraction
    return (bounds.left >= -margin and bounds.bottom >= -margin and
            bounds.right <= page_width + margin and bounds.top <= page_height + margin)


def multiply_matrices(m1: Sequence[float], m2: Sequence[float]) -> Matrix:
    """
    Compose two PDF matrices so that m1 is applied first, then m2.

    This is the row-vector product m1 x m2. The `cm` operator maps
    user space through its operand before the current CTM, so
    CTM' = multiply_matrices(operand, ctm).
    """
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + b1 * c2,
        a1 * b2 + b1 * d2,
        c1 * a2 + d1 * c2,
        c1 * b2 + d1 * d2,
        e1 * a2 + f1 * c2 + e2,
        e1 * b2 + f1 * d2 + f2,
    )


def transform_point(matrix: Sequence[float], x: float, y: float) -> Tuple[float, float]:
    a, b, c, d, e, f = matrix
    return (a * x + c * y + e, b * x + d * y + f)


def transform_rectangle(matrix: Sequence[float], rect: Rectangle) -> Rectangle:
    """Axis-aligned bounds of a rectangle's four corners mapped through a matrix."""
    corners = [transform_point(matrix, x, y)
               for x in (rect.x1, rect.x2) for y in (rect.y1, rect.y2)]
    xs = [p[0] for p in corners]
    ys = [p[1] for p in corners]
    return Rectangle(min(xs), min(ys), max(xs), max(ys))


def bounds_from_matrix(matrix: Sequence[float]) -> Rectangle:
    """Page-space bounds of the unit square an image is drawn into."""
    return transform_rectangle(matrix, Rectangle(0.0, 0.0, 1.0, 1.0))


def matrix_scale(matrix: Sequence[float]) -> Tuple[float, float]:
    """
    Lengths of the matrix's two basis vectors.

    For an image CTM these are the drawn width and height in points.
    """
    a, b, c, d = matrix[:4]
    return (math.hypot(a, b), math.hypot(c, d))


def needs_transformation(matrix: Sequence[float]) -> bool:
    """
    Check whether a placement matrix rotates or mirrors its image.

    Translation and positive scaling leave pixel orientation intact.
    """
    a, b, c, d = matrix[:4]
    has_rotation = abs(b) > 0.01 or abs(c) > 0.01
    has_mirroring = a < 0 or d < 0
    return has_rotation or has_mirroring


def normalize_matrix(matrix: Sequence[float]) -> Optional[Tuple[float, float, float, float]]:
    """
    Strip scale from the linear part of a matrix.

    Returns:
        (a, b, c, d) with unit-length basis vectors, or None if a basis
        vector is degenerate
    """
    a, b, c, d = matrix[:4]
    scale_x, scale_y = matrix_scale(matrix)
    if scale_x < 0.001 or scale_y < 0.001:
        return None
    return (a / scale_x, b / scale_x, c / scale_y, d / scale_y)
