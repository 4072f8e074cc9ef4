"""
Ray class for representing rays in 3D space.

Ray(t) = origin + t * direction
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .vec3 import Vec3, Point3

if TYPE_CHECKING:
    from .transform import Transform


class Ray:
    """A ray with origin and direction.

    Directions are not normalized when a ray is moved into object space, so
    t values stay comparable between spaces.
    """

    __slots__ = ('origin', 'direction')

    def __init__(self, origin: Point3, direction: Vec3):
        self.origin = origin
        self.direction = direction

    def at(self, t: float) -> Point3:
        """Get the point at origin + t * direction."""
        return self.origin + self.direction * t

    def transform(self, transform: Transform) -> Ray:
        """Return this ray with the transform applied to both components."""
        return Ray(
            transform.transform_point(self.origin),
            transform.transform_vector(self.direction)
        )

    def __repr__(self) -> str:
        return f"Ray(origin={self.origin}, direction={self.direction})"
