"""Tests for transforms and rays."""

import pytest
import math
import numpy as np
from rayforge.vec3 import Vec3, Point3
from rayforge.ray import Ray
from rayforge.transform import (
    Transform, SingularMatrixError, compose, translation, scaling,
    rotation_x, rotation_y, rotation_z, shearing, view_transform
)


class TestTransform:
    """Test the Transform class."""

    def test_identity(self):
        t = Transform.identity()
        assert t.is_identity()
        assert t.transform_point(Point3(1, 2, 3)) == Point3(1, 2, 3)

    def test_inverse_is_cached(self):
        m = np.array([
            [-5, 2, 6, -8],
            [1, -5, 1, 8],
            [7, 7, -6, -7],
            [1, -3, 7, 4],
        ])
        t = Transform(m)
        assert t.inverse_matrix[0, 0] == pytest.approx(0.21805, abs=1e-5)
        assert t.inverse_matrix[3, 2] == pytest.approx(-160 / 532, abs=1e-5)
        assert np.allclose(t.inverse_transpose, t.inverse_matrix.T)

    def test_product_with_inverse_is_identity(self):
        t = compose(translation(1, 2, 3), rotation_y(0.7), scaling(2, 3, 4))
        assert (t @ t.inverse).is_identity()

    @pytest.mark.parametrize("t", [
        translation(5, -3, 2),
        scaling(2, -1, 0.5),
        rotation_x(math.pi / 3),
        shearing(1, 0, 0.5, 0, 0, 2),
        compose(rotation_z(0.4), scaling(1, 2, 3), translation(-1, 4, 7)),
        Transform(np.array([
            [2, 1, 0, 3],
            [0, 1, 4, -1],
            [1, 0, 1, 2],
            [0, 0, 0, 1],
        ])),
    ])
    def test_invert_round_trip(self, t):
        assert t.invert().invert() == t
        # Rebuilding from the inverse matrix inverts it from scratch
        assert Transform(t.invert().matrix).invert() == t

        p = Point3(1.5, -2, 3)
        assert t.transform_point(t.invert().transform_point(p)) == p
        assert t.invert().transform_point(t.transform_point(p)) == p

    def test_singular_matrix_raises(self):
        m = np.array([
            [-4, 2, -2, -3],
            [9, 6, 2, 6],
            [0, -5, 1, -5],
            [0, 0, 0, 0],
        ])
        with pytest.raises(SingularMatrixError):
            Transform(m)

    def test_zero_scaling_raises(self):
        with pytest.raises(SingularMatrixError):
            scaling(1, 0, 1)

    def test_wrong_shape_raises(self):
        with pytest.raises(ValueError):
            Transform(np.identity(3))

    def test_transpose(self):
        t = translation(1, 2, 3)
        assert t.transpose()[3, 0] == 1

    def test_equality(self):
        assert translation(1, 2, 3) == translation(1, 2, 3)
        assert translation(1, 2, 3) != translation(1, 2, 4)


class TestBuilders:
    """Test the transform builders."""

    def test_translation_moves_points(self):
        t = translation(5, -3, 2)
        assert t.transform_point(Point3(-3, 4, 5)) == Point3(2, 1, 7)
        assert t.inverse.transform_point(Point3(-3, 4, 5)) == Point3(-8, 7, 3)

    def test_translation_ignores_vectors(self):
        v = Vec3(-3, 4, 5)
        assert translation(5, -3, 2).transform_vector(v) == v

    def test_scaling(self):
        t = scaling(2, 3, 4)
        assert t.transform_point(Point3(-4, 6, 8)) == Point3(-8, 18, 32)
        assert t.transform_vector(Vec3(-4, 6, 8)) == Vec3(-8, 18, 32)
        assert t.inverse.transform_vector(Vec3(-4, 6, 8)) == Vec3(-2, 2, 2)

    def test_reflection_is_negative_scaling(self):
        assert scaling(-1, 1, 1).transform_point(Point3(2, 3, 4)) == Point3(-2, 3, 4)

    def test_rotation_x(self):
        p = Point3(0, 1, 0)
        assert rotation_x(math.pi / 4).transform_point(p) == Point3(0, math.sqrt(2) / 2, math.sqrt(2) / 2)
        assert rotation_x(math.pi / 2).transform_point(p) == Point3(0, 0, 1)
        assert rotation_x(math.pi / 4).inverse.transform_point(p) == Point3(0, math.sqrt(2) / 2, -math.sqrt(2) / 2)

    def test_rotation_y(self):
        p = Point3(0, 0, 1)
        assert rotation_y(math.pi / 4).transform_point(p) == Point3(math.sqrt(2) / 2, 0, math.sqrt(2) / 2)
        assert rotation_y(math.pi / 2).transform_point(p) == Point3(1, 0, 0)

    def test_rotation_z(self):
        p = Point3(0, 1, 0)
        assert rotation_z(math.pi / 4).transform_point(p) == Point3(-math.sqrt(2) / 2, math.sqrt(2) / 2, 0)
        assert rotation_z(math.pi / 2).transform_point(p) == Point3(-1, 0, 0)

    @pytest.mark.parametrize("factors,expected", [
        ((1, 0, 0, 0, 0, 0), Point3(5, 3, 4)),
        ((0, 1, 0, 0, 0, 0), Point3(6, 3, 4)),
        ((0, 0, 1, 0, 0, 0), Point3(2, 5, 4)),
        ((0, 0, 0, 1, 0, 0), Point3(2, 7, 4)),
        ((0, 0, 0, 0, 1, 0), Point3(2, 3, 6)),
        ((0, 0, 0, 0, 0, 1), Point3(2, 3, 7)),
    ])
    def test_shearing(self, factors, expected):
        assert shearing(*factors).transform_point(Point3(2, 3, 4)) == expected

    def test_sequence_versus_compose(self):
        p = Point3(1, 0, 1)
        a, b, c = rotation_x(math.pi / 2), scaling(5, 5, 5), translation(10, 5, 7)

        p2 = a.transform_point(p)
        assert p2 == Point3(1, -1, 0)
        p3 = b.transform_point(p2)
        assert p3 == Point3(5, -5, 0)
        assert c.transform_point(p3) == Point3(15, 0, 7)

        assert compose(c, b, a).transform_point(p) == Point3(15, 0, 7)
        assert a.then(b).then(c).transform_point(p) == Point3(15, 0, 7)

    def test_normals_use_inverse_transpose(self):
        n = scaling(2, 1, 1).transform_normal(Vec3(1, 1, 0))
        assert n == Vec3(0.44721, 0.89443, 0)


class TestViewTransform:
    """Test view_transform."""

    def test_default_orientation(self):
        t = view_transform(Point3(0, 0, 0), Point3(0, 0, -1), Vec3(0, 1, 0))
        assert t.is_identity()

    def test_looking_in_positive_z(self):
        t = view_transform(Point3(0, 0, 0), Point3(0, 0, 1), Vec3(0, 1, 0))
        assert t == scaling(-1, 1, -1)

    def test_moves_the_world(self):
        t = view_transform(Point3(0, 0, 8), Point3(0, 0, 0), Vec3(0, 1, 0))
        assert t == translation(0, 0, -8)

    def test_arbitrary_view(self):
        t = view_transform(Point3(1, 3, 2), Point3(4, -2, 8), Vec3(1, 1, 0))
        expected = np.array([
            [-0.50709, 0.50709, 0.67612, -2.36643],
            [0.76772, 0.60609, 0.12122, -2.82843],
            [-0.35857, 0.59761, -0.71714, 0.00000],
            [0.00000, 0.00000, 0.00000, 1.00000],
        ])
        assert np.allclose(t.matrix, expected, atol=1e-5)

    def test_up_parallel_to_view_raises(self):
        with pytest.raises(SingularMatrixError):
            view_transform(Point3(0, 0, 0), Point3(0, 1, 0), Vec3(0, 1, 0))


class TestRay:
    """Test Ray class."""

    def test_position(self):
        r = Ray(Point3(2, 3, 4), Vec3(1, 0, 0))
        assert r.at(0) == Point3(2, 3, 4)
        assert r.at(1) == Point3(3, 3, 4)
        assert r.at(-1) == Point3(1, 3, 4)
        assert r.at(2.5) == Point3(4.5, 3, 4)

    def test_translate(self):
        r = Ray(Point3(1, 2, 3), Vec3(0, 1, 0)).transform(translation(3, 4, 5))
        assert r.origin == Point3(4, 6, 8)
        assert r.direction == Vec3(0, 1, 0)

    def test_scale_keeps_direction_unnormalized(self):
        r = Ray(Point3(1, 2, 3), Vec3(0, 1, 0)).transform(scaling(2, 3, 4))
        assert r.origin == Point3(2, 6, 12)
        assert r.direction == Vec3(0, 3, 0)
