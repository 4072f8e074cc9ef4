"""
The world: root shapes, lights and the settings the shader reads.
"""

from __future__ import annotations
from typing import Iterable, List, Optional

from .vec3 import Point3, Color, EPSILON, BLACK, WHITE
from .ray import Ray
from .transform import scaling
from .shapes import Shape, Sphere
from .lights import PointLight
from .materials import Material
from .intersection import Intersection
from . import shading

DEFAULT_MAX_DEPTH = 5


class World:
    """A scene ready for tracing.

    Attributes:
        objects: Root shapes of the shape forest
        lights: Point lights, evaluated additively
        background: Color returned for rays that hit nothing
        shadow_bias: Offset of over/under points from the surface
        max_depth: Default reflection/refraction budget for `color_at`
    """

    def __init__(
        self,
        objects: Optional[Iterable[Shape]] = None,
        lights: Optional[Iterable[PointLight]] = None,
        background: Color = BLACK,
        shadow_bias: float = EPSILON,
        max_depth: int = DEFAULT_MAX_DEPTH
    ):
        if shadow_bias <= 0:
            raise ValueError(f"shadow_bias must be positive, got {shadow_bias}")
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")
        self.objects: List[Shape] = []
        self.lights: List[PointLight] = list(lights) if lights is not None else []
        self.background = background
        self.shadow_bias = shadow_bias
        self.max_depth = max_depth
        for shape in objects or ():
            self.add(shape)

    def add(self, shape: Shape) -> None:
        """Add a root shape."""
        if shape.parent is not None:
            raise ValueError(f"{shape!r} belongs to a group; add the group instead")
        self.objects.append(shape)

    def add_light(self, light: PointLight) -> None:
        self.lights.append(light)

    def intersect(self, ray: Ray) -> List[Intersection]:
        """All intersections of the ray with every root shape, sorted by t."""
        xs: List[Intersection] = []
        for shape in self.objects:
            xs.extend(shape.intersect(ray))
        xs.sort(key=lambda i: i.t)
        return xs

    def is_shadowed(self, point: Point3, light: PointLight) -> bool:
        """True if a shadow-casting shape lies between `point` and the light.

        `point` should be the over-point of a hit; starting from the exact
        surface point lets the surface shadow itself.
        """
        v = light.position - point
        distance = v.length()
        ray = Ray(point, v.normalize())

        return any(
            0 < i.t < distance and _blocks_light(i.shape)
            for i in self.intersect(ray)
        )

    def color_at(self, ray: Ray, remaining: Optional[int] = None) -> Color:
        """Trace a ray, using `max_depth` bounces unless told otherwise."""
        return shading.color_at(self, ray, self.max_depth if remaining is None else remaining)

    def __len__(self) -> int:
        return len(self.objects)


def _blocks_light(shape: Optional[Shape]) -> bool:
    """A hit primitive blocks light only if it and every enclosing group do."""
    while shape is not None:
        if not shape.casts_shadow:
            return False
        shape = shape.parent
    return True


def default_world() -> World:
    """Two concentric spheres lit from the upper left front.

    The outer unit sphere is greenish; the inner one has radius 0.5.
    """
    outer = Sphere(material=Material(color=Color(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2))
    inner = Sphere(scaling(0.5, 0.5, 0.5))
    light = PointLight(Point3(-10, 10, -10), WHITE)
    return World([outer, inner], [light])
