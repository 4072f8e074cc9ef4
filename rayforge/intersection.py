"""
Ray-shape intersections and the values precomputed from a hit.

Intersection lists are plain Python lists kept sorted by t.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING
import math

from .vec3 import Vec3, Point3, EPSILON
from .ray import Ray

if TYPE_CHECKING:
    from .shapes import Shape


@dataclass
class Intersection:
    """A single crossing of a ray with a shape surface.

    Attributes:
        t: The ray parameter at the crossing
        shape: The primitive that was hit
        u, v: Barycentric coordinates, set by triangles only
    """
    t: float
    shape: Shape
    u: Optional[float] = None
    v: Optional[float] = None


def intersections(*xs: Intersection) -> List[Intersection]:
    """Collect intersections into a list sorted by t."""
    return sorted(xs, key=lambda i: i.t)


def hit(xs: Iterable[Intersection]) -> Optional[Intersection]:
    """Return the visible intersection: the lowest non-negative t, if any."""
    return min((i for i in xs if i.t >= 0), key=lambda i: i.t, default=None)


@dataclass
class Computations:
    """Values derived from a hit, shared by every shading step.

    Attributes:
        t: Ray parameter of the hit
        shape: The shape that was hit
        point: World space hit point
        eyev: Unit vector back towards the eye
        normalv: World space surface normal, flipped to face the eye
        inside: True if the hit is on the inside of the surface
        over_point: Point nudged off the surface, origin for shadow and
            reflection rays
        under_point: Point nudged into the surface, origin for refracted rays
        reflectv: Ray direction reflected about the normal
        n1: Refractive index of the medium being exited
        n2: Refractive index of the medium being entered
    """
    t: float
    shape: Shape
    point: Point3
    eyev: Vec3
    normalv: Vec3
    inside: bool
    over_point: Point3
    under_point: Point3
    reflectv: Vec3
    n1: float = 1.0
    n2: float = 1.0


def _refractive_indices(the_hit: Intersection, xs: Sequence[Intersection]) -> Tuple[float, float]:
    """Walk the intersections up to the hit, tracking which shapes contain the ray.

    The containers list holds the shapes the ray is inside, in entry order;
    its last element is the medium at that point.
    """
    containers: List[Shape] = []
    n1 = n2 = 1.0

    for i in xs:
        if i is the_hit:
            n1 = containers[-1].material.refractive_index if containers else 1.0

        if any(c is i.shape for c in containers):
            containers = [c for c in containers if c is not i.shape]
        else:
            containers.append(i.shape)

        if i is the_hit:
            n2 = containers[-1].material.refractive_index if containers else 1.0
            break

    return n1, n2


def prepare_computations(
    the_hit: Intersection,
    ray: Ray,
    xs: Optional[Sequence[Intersection]] = None,
    bias: float = EPSILON
) -> Computations:
    """Precompute the shading state for an intersection.

    Args:
        the_hit: The intersection being shaded
        ray: The ray that produced it
        xs: All intersections along the ray, sorted; needed for n1 and n2
        bias: Distance the over and under points are moved off the surface

    Returns:
        Computations for the hit
    """
    if xs is None:
        xs = [the_hit]

    point = ray.at(the_hit.t)
    eyev = -ray.direction
    normalv = the_hit.shape.normal_at(point, the_hit)

    inside = normalv.dot(eyev) < 0
    if inside:
        normalv = -normalv

    n1, n2 = _refractive_indices(the_hit, xs)

    return Computations(
        t=the_hit.t,
        shape=the_hit.shape,
        point=point,
        eyev=eyev,
        normalv=normalv,
        inside=inside,
        over_point=point + normalv * bias,
        under_point=point - normalv * bias,
        reflectv=ray.direction.reflect(normalv),
        n1=n1,
        n2=n2
    )


def schlick(comps: Computations) -> float:
    """Schlick approximation of the Fresnel reflectance.

    Returns the fraction of light reflected at the surface, 1.0 under total
    internal reflection.
    """
    cos = comps.eyev.dot(comps.normalv)

    if comps.n1 > comps.n2:
        n = comps.n1 / comps.n2
        sin2_t = n * n * (1.0 - cos * cos)
        if sin2_t > 1.0:
            return 1.0
        cos = math.sqrt(1.0 - sin2_t)

    r0 = ((comps.n1 - comps.n2) / (comps.n1 + comps.n2)) ** 2
    return r0 + (1 - r0) * (1 - cos) ** 5
