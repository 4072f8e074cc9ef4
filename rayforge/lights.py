"""
Light sources for the ray tracer.

Only point lights are supported: they sit at a single position, emit
equally in all directions, do not fall off with distance and cast hard
shadows. A scene may hold any number of them; their contributions add up.
"""

from __future__ import annotations
from dataclasses import dataclass

from .vec3 import Vec3, Point3, Color


@dataclass
class PointLight:
    """A point light source.

    Attributes:
        position: Position of the light in world space
        intensity: Color and brightness of the light
    """
    position: Point3
    intensity: Color

    def direction_from(self, point: Point3) -> Vec3:
        """Unit vector from `point` towards the light."""
        return (self.position - point).normalize()

    def distance_from(self, point: Point3) -> float:
        return (self.position - point).length()
