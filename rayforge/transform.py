"""
Affine transforms as invertible 4x4 matrices.

A Transform caches its inverse and inverse transpose when it is built, so
tracing never inverts a matrix. Builders compose right to left:

    compose(translation(5, 0, 0), scaling(2, 2, 2))

scales first and translates second.
"""

from __future__ import annotations
import math
from typing import Optional

import numpy as np

from .vec3 import Vec3, Point3

# Determinants smaller than this are treated as zero.
SINGULAR_TOLERANCE = 1e-12


class SingularMatrixError(ValueError):
    """A matrix has no inverse."""
    pass


class Transform:
    """An invertible affine transform.

    Attributes:
        matrix: The 4x4 matrix mapping object space to parent space
        inverse_matrix: Cached inverse of `matrix`
        inverse_transpose: Cached transpose of the inverse, used for normals
    """

    __slots__ = ('matrix', 'inverse_matrix', 'inverse_transpose')

    def __init__(self, matrix: Optional[np.ndarray] = None, _inverse: Optional[np.ndarray] = None):
        """Create a transform from a 4x4 matrix (identity if None).

        Raises:
            SingularMatrixError: If the matrix cannot be inverted
        """
        if matrix is None:
            matrix = np.identity(4)
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform needs a 4x4 matrix, got shape {matrix.shape}")

        if _inverse is None:
            if abs(np.linalg.det(matrix)) < SINGULAR_TOLERANCE:
                raise SingularMatrixError(f"Matrix is not invertible:\n{matrix}")
            _inverse = np.linalg.inv(matrix)

        self.matrix = matrix
        self.inverse_matrix = _inverse
        self.inverse_transpose = _inverse.T.copy()

    @classmethod
    def identity(cls) -> Transform:
        return cls(np.identity(4), np.identity(4))

    def invert(self) -> Transform:
        """Return the inverse transform (no matrix inversion needed)."""
        return Transform(self.inverse_matrix, self.matrix)

    @property
    def inverse(self) -> Transform:
        return self.invert()

    def transpose(self) -> np.ndarray:
        return self.matrix.T.copy()

    def __matmul__(self, other: Transform) -> Transform:
        # (A B)^-1 = B^-1 A^-1
        return Transform(self.matrix @ other.matrix, other.inverse_matrix @ self.inverse_matrix)

    def then(self, other: Transform) -> Transform:
        """Apply this transform first, then `other`."""
        return other @ self

    def transform_point(self, point: Point3) -> Point3:
        """Apply the full affine transform to a point (w = 1)."""
        m = self.matrix
        return Vec3.from_array(m[:3, :3] @ point._data + m[:3, 3])

    def transform_vector(self, vector: Vec3) -> Vec3:
        """Apply the linear part to a direction (w = 0, translation ignored)."""
        return Vec3.from_array(self.matrix[:3, :3] @ vector._data)

    def transform_normal(self, normal: Vec3) -> Vec3:
        """Map an object space normal out of this space, normalized.

        Normals go through the inverse transpose so they stay perpendicular
        to the surface under non-uniform scaling.
        """
        return Vec3.from_array(self.inverse_transpose[:3, :3] @ normal._data).normalize()

    def is_identity(self) -> bool:
        return bool(np.allclose(self.matrix, np.identity(4)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(np.allclose(self.matrix, other.matrix, rtol=0.0, atol=1e-5))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Transform({self.matrix.tolist()})"


def compose(*transforms: Transform) -> Transform:
    """Multiply transforms left to right; the rightmost is applied first."""
    result = Transform.identity()
    for t in transforms:
        result = result @ t
    return result


def translation(x: float, y: float, z: float) -> Transform:
    m = np.identity(4)
    m[:3, 3] = (x, y, z)
    inv = np.identity(4)
    inv[:3, 3] = (-x, -y, -z)
    return Transform(m, inv)


def scaling(x: float, y: float, z: float) -> Transform:
    """Scale along each axis. Any zero factor yields a SingularMatrixError."""
    if x == 0 or y == 0 or z == 0:
        raise SingularMatrixError(f"Scaling by ({x}, {y}, {z}) is not invertible")
    return Transform(np.diag([x, y, z, 1.0]), np.diag([1.0 / x, 1.0 / y, 1.0 / z, 1.0]))


def rotation_x(radians: float) -> Transform:
    c, s = math.cos(radians), math.sin(radians)
    m = np.array([
        [1, 0, 0, 0],
        [0, c, -s, 0],
        [0, s, c, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)
    return Transform(m, m.T.copy())


def rotation_y(radians: float) -> Transform:
    c, s = math.cos(radians), math.sin(radians)
    m = np.array([
        [c, 0, s, 0],
        [0, 1, 0, 0],
        [-s, 0, c, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)
    return Transform(m, m.T.copy())


def rotation_z(radians: float) -> Transform:
    c, s = math.cos(radians), math.sin(radians)
    m = np.array([
        [c, -s, 0, 0],
        [s, c, 0, 0],
        [0, 0, 1, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)
    return Transform(m, m.T.copy())


def shearing(xy: float, xz: float, yx: float, yz: float, zx: float, zy: float) -> Transform:
    """Move each component in proportion to the other two.

    Args:
        xy: x in proportion to y, and so on for the remaining factors
    """
    m = np.array([
        [1, xy, xz, 0],
        [yx, 1, yz, 0],
        [zx, zy, 1, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)
    return Transform(m)


def view_transform(from_point: Point3, to: Point3, up: Vec3) -> Transform:
    """Orient the world relative to an eye at `from_point` looking at `to`.

    Raises:
        SingularMatrixError: If `up` is parallel to the viewing direction
    """
    forward = (to - from_point).normalize()
    left = forward.cross(up.normalize())
    true_up = left.cross(forward)
    orientation = np.array([
        [left.x, left.y, left.z, 0],
        [true_up.x, true_up.y, true_up.z, 0],
        [-forward.x, -forward.y, -forward.z, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)
    return Transform(orientation) @ translation(-from_point.x, -from_point.y, -from_point.z)


IDENTITY = Transform.identity()
