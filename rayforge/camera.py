"""
Camera module for generating primary rays.

The camera sits at the origin of its own space looking down -z at a canvas
one unit away. Its transform (usually a view_transform) orients the world
relative to it; rays are produced by inverting that transform.
"""

from __future__ import annotations
import math
from typing import Optional

from .vec3 import Point3
from .ray import Ray
from .transform import Transform


class Camera:
    """A pinhole camera mapping pixels to world space rays."""

    def __init__(
        self,
        hsize: int,
        vsize: int,
        field_of_view: float,
        transform: Optional[Transform] = None
    ):
        """Create a camera.

        Args:
            hsize: Horizontal size of the canvas in pixels
            vsize: Vertical size of the canvas in pixels
            field_of_view: Angle (radians) covered by the wider canvas side
            transform: World to camera transform (identity if None)
        """
        if hsize <= 0 or vsize <= 0:
            raise ValueError(f"Canvas size must be positive, got {hsize}x{vsize}")
        if not 0 < field_of_view < math.pi:
            raise ValueError(f"Field of view must be in (0, pi), got {field_of_view}")

        self.hsize = hsize
        self.vsize = vsize
        self.field_of_view = field_of_view
        self.transform = transform if transform is not None else Transform.identity()

        half_view = math.tan(field_of_view / 2)
        aspect = hsize / vsize
        if aspect >= 1:
            self.half_width = half_view
            self.half_height = half_view / aspect
        else:
            self.half_width = half_view * aspect
            self.half_height = half_view

        self.pixel_size = (self.half_width * 2) / hsize

    def ray_for_pixel(self, px: float, py: float) -> Ray:
        """Ray from the camera through the center of pixel (px, py).

        Pixel (0, 0) is the top-left corner of the canvas.
        """
        xoffset = (px + 0.5) * self.pixel_size
        yoffset = (py + 0.5) * self.pixel_size

        # +x is to the left because the camera looks toward -z
        world_x = self.half_width - xoffset
        world_y = self.half_height - yoffset

        inverse = self.transform.inverse
        pixel = inverse.transform_point(Point3(world_x, world_y, -1))
        origin = inverse.transform_point(Point3(0, 0, 0))
        direction = (pixel - origin).normalize()

        return Ray(origin, direction)

    def __repr__(self) -> str:
        return f"Camera({self.hsize}x{self.vsize}, fov={self.field_of_view:.4f})"
