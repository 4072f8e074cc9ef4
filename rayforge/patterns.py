"""
Pattern system for the ray tracer.

Implements:
- Solid colors
- Stripes, gradients, rings and 3D checkers
- Blends of two patterns
- Nesting: every two-tone pattern accepts sub-patterns as operands, each
  evaluated in its own pattern space

Patterns are pure functions of a point. Each owns a Transform mapping pattern
space to the space of whatever contains it (the shape, or an enclosing
pattern).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Union, TYPE_CHECKING
import math

from .vec3 import Color, Point3
from .transform import Transform

if TYPE_CHECKING:
    from .shapes import Shape


class Pattern(ABC):
    """Abstract base class for patterns."""

    def __init__(self, transform: Optional[Transform] = None):
        self.transform = transform if transform is not None else Transform.identity()

    @abstractmethod
    def pattern_at(self, point: Point3) -> Color:
        """Get the color at a point given in this pattern's own space."""
        pass

    def local_pattern_at(self, point: Point3) -> Color:
        """Get the color at a point given in the space containing the pattern."""
        return self.pattern_at(self.transform.inverse.transform_point(point))

    def pattern_at_shape(self, shape: Shape, world_point: Point3) -> Color:
        """Get the color at a world space point on `shape`.

        The point goes through every parent's inverse transform down to the
        shape, then through the pattern's inverse transform.
        """
        object_point = shape.world_to_object(world_point)
        return self.local_pattern_at(object_point)


PatternLike = Union[Pattern, Color]


def as_pattern(value: PatternLike) -> Pattern:
    """Wrap a bare color as a SolidPattern."""
    if isinstance(value, Pattern):
        return value
    return SolidPattern(value)


class SolidPattern(Pattern):
    """A single color everywhere."""

    def __init__(self, color: Color, transform: Optional[Transform] = None):
        super().__init__(transform)
        self.color = color

    def pattern_at(self, point: Point3) -> Color:
        return self.color


class TwoTonePattern(Pattern):
    """Base for patterns built from two operands.

    Operands may be colors or patterns. Sub-patterns are evaluated at the
    point mapped through their own transform.
    """

    def __init__(self, a: PatternLike, b: PatternLike, transform: Optional[Transform] = None):
        super().__init__(transform)
        self.a = as_pattern(a)
        self.b = as_pattern(b)


class AlternatingPattern(TwoTonePattern):
    """Selects one operand or the other depending on the point."""

    @abstractmethod
    def pick_first(self, point: Point3) -> bool:
        """True where operand `a` applies."""
        pass

    def pattern_at(self, point: Point3) -> Color:
        chosen = self.a if self.pick_first(point) else self.b
        return chosen.local_pattern_at(point)


class StripePattern(AlternatingPattern):
    """Alternates a and b with every unit step along x."""

    def pick_first(self, point: Point3) -> bool:
        return math.floor(point.x) % 2 == 0


class RingPattern(AlternatingPattern):
    """Concentric rings around the y axis."""

    def pick_first(self, point: Point3) -> bool:
        return math.floor(math.hypot(point.x, point.z)) % 2 == 0


class CheckersPattern(AlternatingPattern):
    """Alternating unit cubes in all three dimensions."""

    def pick_first(self, point: Point3) -> bool:
        return (math.floor(point.x) + math.floor(point.y) + math.floor(point.z)) % 2 == 0


class GradientPattern(TwoTonePattern):
    """Linear blend from a to b, repeating every unit along x."""

    def pattern_at(self, point: Point3) -> Color:
        fraction = point.x - math.floor(point.x)
        color_a = self.a.local_pattern_at(point)
        color_b = self.b.local_pattern_at(point)
        return color_a + (color_b - color_a) * fraction


class BlendedPattern(TwoTonePattern):
    """Weighted average of two patterns evaluated at the same point."""

    def __init__(
        self,
        a: PatternLike,
        b: PatternLike,
        weight: float = 0.5,
        transform: Optional[Transform] = None
    ):
        """Create a blended pattern.

        Args:
            a, b: The patterns (or colors) to blend
            weight: Share of `b` in the result, in [0, 1]
            transform: Pattern transform
        """
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"Blend weight must be in [0, 1], got {weight}")
        super().__init__(a, b, transform)
        self.weight = weight

    def pattern_at(self, point: Point3) -> Color:
        color_a = self.a.local_pattern_at(point)
        color_b = self.b.local_pattern_at(point)
        return color_a * (1.0 - self.weight) + color_b * self.weight
