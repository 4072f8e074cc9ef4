"""
Surface materials for the Phong shading model.

A material carries the local illumination coefficients plus the three
global terms the shader recurses on: reflection, transparency and the
refractive index used by Snell's law.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from .vec3 import Color, Point3, WHITE
from .patterns import Pattern

if TYPE_CHECKING:
    from .shapes import Shape

# Refractive indices of common media.
VACUUM = 1.0
AIR = 1.00029
WATER = 1.333
GLASS = 1.52
DIAMOND = 2.417


@dataclass
class Material:
    """Phong material.

    Attributes:
        color: Base surface color (ignored when a pattern is set)
        pattern: Optional pattern supplying the color per point
        ambient: Ambient coefficient
        diffuse: Diffuse coefficient
        specular: Specular coefficient
        shininess: Specular exponent
        reflective: Share of reflected light, 0 (matte) to 1 (mirror)
        transparency: Share of refracted light, 0 (opaque) to 1
        refractive_index: Index of the medium enclosed by the surface
    """
    color: Color = field(default_factory=lambda: WHITE)
    pattern: Optional[Pattern] = None
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0
    reflective: float = 0.0
    transparency: float = 0.0
    refractive_index: float = VACUUM

    def __post_init__(self):
        for name in ('ambient', 'diffuse', 'specular', 'shininess'):
            if getattr(self, name) < 0:
                raise ValueError(f"Material {name} must be non-negative, got {getattr(self, name)}")
        for name in ('reflective', 'transparency'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Material {name} must be in [0, 1], got {value}")
        if self.refractive_index <= 0:
            raise ValueError(f"Refractive index must be positive, got {self.refractive_index}")

    def color_at(self, shape: Shape, world_point: Point3) -> Color:
        """Resolve the surface color of `shape` at a world space point."""
        if self.pattern is not None:
            return self.pattern.pattern_at_shape(shape, world_point)
        return self.color
