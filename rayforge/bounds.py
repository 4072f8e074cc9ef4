"""
Axis-aligned bounding boxes.

Groups keep one of these around their children so a ray that misses the box
never descends into the group. The slab test here is also the cube's
intersection routine.
"""

from __future__ import annotations
import math
from typing import Optional, Tuple
import itertools

from .vec3 import Point3, EPSILON
from .ray import Ray
from .transform import Transform


def check_axis(origin: float, direction: float, minimum: float = -1.0, maximum: float = 1.0) -> Tuple[float, float]:
    """Return the (near, far) t values where a ray crosses one slab.

    Rays parallel to the slab get infinite values whose signs say whether
    the origin lies between the two planes.
    """
    tmin_numerator = minimum - origin
    tmax_numerator = maximum - origin

    if abs(direction) >= EPSILON:
        tmin = tmin_numerator / direction
        tmax = tmax_numerator / direction
    else:
        tmin = math.copysign(math.inf, tmin_numerator)
        tmax = math.copysign(math.inf, tmax_numerator)

    if tmin > tmax:
        tmin, tmax = tmax, tmin
    return tmin, tmax


class BoundingBox:
    """Axis-Aligned Bounding Box.

    A freshly created box is empty (minimum at +inf, maximum at -inf) and
    grows as points and boxes are added.
    """

    __slots__ = ('minimum', 'maximum')

    def __init__(self, minimum: Optional[Point3] = None, maximum: Optional[Point3] = None):
        self.minimum = minimum if minimum is not None else Point3(math.inf, math.inf, math.inf)
        self.maximum = maximum if maximum is not None else Point3(-math.inf, -math.inf, -math.inf)

    @classmethod
    def infinite(cls) -> BoundingBox:
        return cls(Point3(-math.inf, -math.inf, -math.inf), Point3(math.inf, math.inf, math.inf))

    def is_empty(self) -> bool:
        return any(lo > hi for lo, hi in zip(self.minimum, self.maximum))

    def add_point(self, point: Point3) -> BoundingBox:
        """Return a box grown to include `point`."""
        return BoundingBox(
            Point3(min(self.minimum.x, point.x), min(self.minimum.y, point.y), min(self.minimum.z, point.z)),
            Point3(max(self.maximum.x, point.x), max(self.maximum.y, point.y), max(self.maximum.z, point.z))
        )

    def merge(self, other: BoundingBox) -> BoundingBox:
        """Return the box containing both boxes."""
        if other.is_empty():
            return self
        return self.add_point(other.minimum).add_point(other.maximum)

    def contains_point(self, point: Point3) -> bool:
        return all(lo <= p <= hi for lo, p, hi in zip(self.minimum, point, self.maximum))

    def contains_box(self, other: BoundingBox) -> bool:
        return self.contains_point(other.minimum) and self.contains_point(other.maximum)

    def transform(self, transform: Transform) -> BoundingBox:
        """Return the box enclosing this box's eight corners after `transform`.

        Unbounded boxes stay unbounded on every axis, since inf * 0 would
        poison the corner arithmetic.
        """
        if self.is_empty():
            return BoundingBox()
        if not (self.minimum.is_finite() and self.maximum.is_finite()):
            return BoundingBox.infinite()

        result = BoundingBox()
        for corner in itertools.product(*zip(self.minimum, self.maximum)):
            result = result.add_point(transform.transform_point(Point3(*corner)))
        return result

    def intersects(self, ray: Ray) -> bool:
        """Slab test: does the ray's line pass through the box?"""
        if self.is_empty():
            return False

        t_near = -math.inf
        t_far = math.inf
        for i in range(3):
            lo, hi = self.minimum[i], self.maximum[i]
            if math.isinf(lo) and math.isinf(hi):
                continue
            t0, t1 = check_axis(ray.origin[i], ray.direction[i], lo, hi)
            t_near = max(t_near, t0)
            t_far = min(t_far, t1)
            if t_near > t_far:
                return False
        return True

    def split(self) -> Tuple[BoundingBox, BoundingBox]:
        """Cut the box in half across its longest axis."""
        size = self.maximum - self.minimum
        axis = max(range(3), key=lambda i: size[i])

        mid = self.minimum[axis] + size[axis] / 2.0
        left_max = list(self.maximum)
        right_min = list(self.minimum)
        left_max[axis] = mid
        right_min[axis] = mid

        return (
            BoundingBox(self.minimum, Point3(*left_max)),
            BoundingBox(Point3(*right_min), self.maximum)
        )

    def __repr__(self) -> str:
        return f"BoundingBox(min={self.minimum}, max={self.maximum})"
