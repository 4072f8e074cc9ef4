"""
Geometric shapes for the ray tracer.

Every shape lives in its own object space. The public `intersect` and
`normal_at` methods convert between world and object space; subclasses only
implement `local_intersect` and `local_normal_at` against a canonical shape:

- Sphere: unit sphere at the origin
- Plane: the x-z plane
- Cube: axis-aligned, from -1 to 1 on every axis
- Cylinder, Cone: around the y axis, optionally truncated and capped
- Triangle, SmoothTriangle: three vertices, given directly in object space
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, TYPE_CHECKING
import math
import weakref

import numpy as np

from .vec3 import Vec3, Point3, EPSILON
from .ray import Ray
from .transform import Transform
from .bounds import BoundingBox, check_axis
from .materials import Material
from .intersection import Intersection

if TYPE_CHECKING:
    from .groups import Group


class DegenerateGeometryError(ValueError):
    """A shape is mathematically invalid, e.g. a zero-area triangle."""
    pass


class Shape(ABC):
    """Abstract base class for everything a ray can hit.

    Attributes:
        material: Surface material (primitives only; groups ignore it)
        casts_shadow: Whether the shape blocks shadow rays; False on a group
            or CSG node also disables it for everything inside
    """

    def __init__(self, transform: Optional[Transform] = None, material: Optional[Material] = None):
        """Create a shape.

        Args:
            transform: Object to parent space transform (identity if None)
            material: Material for shading (default material if None)
        """
        self._parent: Optional[weakref.ref] = None
        self._transform = Transform.identity()
        self.transform = transform if transform is not None else Transform.identity()
        self.material = material if material is not None else Material()
        self.casts_shadow = True

    @property
    def transform(self) -> Transform:
        return self._transform

    @transform.setter
    def transform(self, value) -> None:
        if not isinstance(value, Transform):
            value = Transform(np.asarray(value))
        self._transform = value
        parent = self.parent
        if parent is not None:
            parent.refresh_bounds()

    @property
    def parent(self) -> Optional[Group]:
        """The group or CSG node containing this shape, if any.

        Held as a weak reference: parents own children, never the reverse.
        """
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, value: Optional[Group]) -> None:
        self._parent = weakref.ref(value) if value is not None else None

    def intersect(self, ray: Ray) -> List[Intersection]:
        """Intersect a ray given in parent space with this shape."""
        local_ray = ray.transform(self._transform.inverse)
        return self.local_intersect(local_ray)

    def normal_at(self, world_point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        """Get the unit surface normal at a world space point.

        Args:
            world_point: A point on the surface
            hit: The intersection that produced the point (smooth triangles
                read u and v from it)
        """
        local_point = self.world_to_object(world_point)
        local_normal = self.local_normal_at(local_point, hit)
        return self.normal_to_world(local_normal)

    def world_to_object(self, point: Point3) -> Point3:
        """Convert a world space point into this shape's object space."""
        parent = self.parent
        if parent is not None:
            point = parent.world_to_object(point)
        return self._transform.inverse.transform_point(point)

    def normal_to_world(self, normal: Vec3) -> Vec3:
        """Convert an object space normal into a world space unit normal."""
        normal = self._transform.transform_normal(normal)
        parent = self.parent
        if parent is not None:
            normal = parent.normal_to_world(normal)
        return normal

    @abstractmethod
    def local_intersect(self, ray: Ray) -> List[Intersection]:
        """Intersect a ray given in object space. Result is sorted by t."""
        pass

    @abstractmethod
    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        """Get the (not necessarily unit) normal at an object space point."""
        pass

    @abstractmethod
    def bounds(self) -> BoundingBox:
        """Object space bounding box."""
        pass

    def parent_space_bounds(self) -> BoundingBox:
        return self.bounds().transform(self._transform)

    def includes(self, shape: Shape) -> bool:
        """True if `shape` is this shape or one of its descendants."""
        return self is shape

    def divide(self, threshold: int) -> None:
        """Subdivide into a bounding volume hierarchy (composites only)."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(transform={self._transform.matrix.tolist()})"


class Sphere(Shape):
    """A unit sphere at the origin."""

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        """Solve |O + tD|^2 = 1 with the quadratic formula.

        A tangent ray yields two equal roots.
        """
        sphere_to_ray = ray.origin
        a = ray.direction.length_squared()
        half_b = sphere_to_ray.dot(ray.direction)
        c = sphere_to_ray.length_squared() - 1.0

        discriminant = half_b * half_b - a * c
        if discriminant < 0:
            return []

        sqrtd = math.sqrt(discriminant)
        t1 = (-half_b - sqrtd) / a
        t2 = (-half_b + sqrtd) / a
        return [Intersection(t1, self), Intersection(t2, self)]

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        return Vec3(point.x, point.y, point.z)

    def bounds(self) -> BoundingBox:
        return BoundingBox(Point3(-1, -1, -1), Point3(1, 1, 1))


def glass_sphere(refractive_index: float = 1.5, transform: Optional[Transform] = None) -> Sphere:
    """A fully transparent sphere."""
    return Sphere(transform, Material(transparency=1.0, refractive_index=refractive_index))


class Plane(Shape):
    """The infinite x-z plane through the origin."""

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        # Parallel or coplanar rays never hit
        if abs(ray.direction.y) < EPSILON:
            return []
        t = -ray.origin.y / ray.direction.y
        return [Intersection(t, self)]

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        return Vec3(0, 1, 0)

    def bounds(self) -> BoundingBox:
        return BoundingBox(Point3(-math.inf, 0, -math.inf), Point3(math.inf, 0, math.inf))


class Cube(Shape):
    """An axis-aligned cube spanning -1 to 1 on every axis."""

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        """Slab method: the hit interval is where all three slabs overlap."""
        xtmin, xtmax = check_axis(ray.origin.x, ray.direction.x)
        ytmin, ytmax = check_axis(ray.origin.y, ray.direction.y)
        ztmin, ztmax = check_axis(ray.origin.z, ray.direction.z)

        tmin = max(xtmin, ytmin, ztmin)
        tmax = min(xtmax, ytmax, ztmax)

        if tmin > tmax:
            return []
        return [Intersection(tmin, self), Intersection(tmax, self)]

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        # The face is the axis with the largest absolute component
        maxc = max(abs(point.x), abs(point.y), abs(point.z))
        if maxc == abs(point.x):
            return Vec3(point.x, 0, 0)
        if maxc == abs(point.y):
            return Vec3(0, point.y, 0)
        return Vec3(0, 0, point.z)

    def bounds(self) -> BoundingBox:
        return BoundingBox(Point3(-1, -1, -1), Point3(1, 1, 1))


class _Quadric(Shape):
    """Shared truncation and end-cap handling for cylinders and cones."""

    def __init__(
        self,
        transform: Optional[Transform] = None,
        material: Optional[Material] = None,
        minimum: float = -math.inf,
        maximum: float = math.inf,
        closed: bool = False
    ):
        """Create a y-axis quadric.

        Args:
            transform: Object to parent space transform
            material: Material for shading
            minimum: Lower y bound (exclusive)
            maximum: Upper y bound (exclusive)
            closed: Whether to include the end caps
        """
        if minimum > maximum:
            raise ValueError(f"minimum ({minimum}) must not exceed maximum ({maximum})")
        super().__init__(transform, material)
        self.minimum = minimum
        self.maximum = maximum
        self.closed = closed

    @abstractmethod
    def cap_radius(self, y: float) -> float:
        pass

    def _side_hits(self, ray: Ray, a: float, b: float, c: float) -> List[Intersection]:
        """Roots of a t^2 + b t + c = 0 lying strictly between the y bounds."""
        discriminant = b * b - 4 * a * c
        if discriminant < 0:
            return []

        sqrt_d = math.sqrt(discriminant)
        t0 = (-b - sqrt_d) / (2 * a)
        t1 = (-b + sqrt_d) / (2 * a)
        if t0 > t1:
            t0, t1 = t1, t0

        xs = []
        for t in (t0, t1):
            y = ray.origin.y + t * ray.direction.y
            if self.minimum < y < self.maximum:
                xs.append(Intersection(t, self))
        return xs

    def _check_cap(self, ray: Ray, t: float, radius: float) -> bool:
        x = ray.origin.x + t * ray.direction.x
        z = ray.origin.z + t * ray.direction.z
        return x * x + z * z <= radius * radius

    def _cap_hits(self, ray: Ray) -> List[Intersection]:
        if not self.closed or abs(ray.direction.y) < EPSILON:
            return []

        xs = []
        for y in (self.minimum, self.maximum):
            if math.isinf(y):
                continue
            t = (y - ray.origin.y) / ray.direction.y
            if self._check_cap(ray, t, self.cap_radius(y)):
                xs.append(Intersection(t, self))
        return xs

    def _cap_normal(self, point: Point3) -> Optional[Vec3]:
        """Normal if the point lies on an end cap, otherwise None."""
        dist = point.x * point.x + point.z * point.z
        if point.y >= self.maximum - EPSILON and dist < self.cap_radius(self.maximum) ** 2:
            return Vec3(0, 1, 0)
        if point.y <= self.minimum + EPSILON and dist < self.cap_radius(self.minimum) ** 2:
            return Vec3(0, -1, 0)
        return None


class Cylinder(_Quadric):
    """A unit radius cylinder around the y axis."""

    def cap_radius(self, y: float) -> float:
        return 1.0

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        d, o = ray.direction, ray.origin
        a = d.x * d.x + d.z * d.z

        xs: List[Intersection] = []
        # a ~ 0 means the ray is parallel to the axis; only the caps can be hit
        if abs(a) >= EPSILON:
            b = 2 * o.x * d.x + 2 * o.z * d.z
            c = o.x * o.x + o.z * o.z - 1
            if b * b - 4 * a * c < 0:
                return []
            xs = self._side_hits(ray, a, b, c)

        xs.extend(self._cap_hits(ray))
        return sorted(xs, key=lambda i: i.t)

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        cap = self._cap_normal(point)
        if cap is not None:
            return cap
        return Vec3(point.x, 0, point.z)

    def bounds(self) -> BoundingBox:
        return BoundingBox(Point3(-1, self.minimum, -1), Point3(1, self.maximum, 1))


class Cone(_Quadric):
    """A double-napped cone around the y axis, apex at the origin.

    The radius at height y is |y|.
    """

    def cap_radius(self, y: float) -> float:
        return abs(y)

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        d, o = ray.direction, ray.origin
        a = d.x * d.x - d.y * d.y + d.z * d.z
        b = 2 * o.x * d.x - 2 * o.y * d.y + 2 * o.z * d.z
        c = o.x * o.x - o.y * o.y + o.z * o.z

        xs: List[Intersection] = []
        if abs(a) >= EPSILON:
            xs = self._side_hits(ray, a, b, c)
        elif abs(b) >= EPSILON:
            # Ray parallel to one of the cone's halves: a single crossing
            t = -c / (2 * b)
            y = o.y + t * d.y
            if self.minimum < y < self.maximum:
                xs.append(Intersection(t, self))

        xs.extend(self._cap_hits(ray))
        return sorted(xs, key=lambda i: i.t)

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        cap = self._cap_normal(point)
        if cap is not None:
            return cap

        y = math.sqrt(point.x * point.x + point.z * point.z)
        if point.y > 0:
            y = -y
        return Vec3(point.x, y, point.z)

    def bounds(self) -> BoundingBox:
        limit = max(abs(self.minimum), abs(self.maximum))
        return BoundingBox(Point3(-limit, self.minimum, -limit), Point3(limit, self.maximum, limit))


class Triangle(Shape):
    """A flat triangle defined by three vertices."""

    def __init__(
        self,
        p1: Point3,
        p2: Point3,
        p3: Point3,
        transform: Optional[Transform] = None,
        material: Optional[Material] = None
    ):
        """Create a triangle from three vertices.

        Raises:
            DegenerateGeometryError: If the vertices are collinear or coincide
        """
        super().__init__(transform, material)
        self.p1 = p1
        self.p2 = p2
        self.p3 = p3

        # Pre-compute edges and normal
        self.e1 = p2 - p1
        self.e2 = p3 - p1
        cross = self.e2.cross(self.e1)
        # |e1 x e2| = |e1| |e2| sin(angle); zero for coincident or collinear vertices
        if cross.length() <= EPSILON * self.e1.length() * self.e2.length():
            raise DegenerateGeometryError(f"Triangle has zero area: {p1}, {p2}, {p3}")
        self.normal = cross.normalize()

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        """Moller-Trumbore: solve for t, u, v with Cramer's rule."""
        dir_cross_e2 = ray.direction.cross(self.e2)
        det = self.e1.dot(dir_cross_e2)

        # Ray is parallel to the triangle
        if abs(det) < EPSILON:
            return []

        f = 1.0 / det
        p1_to_origin = ray.origin - self.p1
        u = f * p1_to_origin.dot(dir_cross_e2)
        if u < 0.0 or u > 1.0:
            return []

        origin_cross_e1 = p1_to_origin.cross(self.e1)
        v = f * ray.direction.dot(origin_cross_e1)
        if v < 0.0 or u + v > 1.0:
            return []

        t = f * self.e2.dot(origin_cross_e1)
        return [Intersection(t, self, u, v)]

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        return self.normal

    def bounds(self) -> BoundingBox:
        return BoundingBox().add_point(self.p1).add_point(self.p2).add_point(self.p3)


class SmoothTriangle(Triangle):
    """A triangle with per-vertex normals for smooth shading."""

    def __init__(
        self,
        p1: Point3,
        p2: Point3,
        p3: Point3,
        n1: Vec3,
        n2: Vec3,
        n3: Vec3,
        transform: Optional[Transform] = None,
        material: Optional[Material] = None
    ):
        """Create a smooth-shaded triangle.

        Args:
            p1, p2, p3: Vertex positions
            n1, n2, n3: Normals at each vertex
        """
        super().__init__(p1, p2, p3, transform, material)
        self.n1 = n1
        self.n2 = n2
        self.n3 = n3

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        """Interpolate the vertex normals with the hit's barycentric u, v."""
        if hit is None or hit.u is None or hit.v is None:
            return self.normal
        return self.n2 * hit.u + self.n3 * hit.v + self.n1 * (1 - hit.u - hit.v)
