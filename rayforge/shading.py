"""
Recursive Whitted-style shading.

Local color comes from the Phong model; reflection and refraction re-enter
`color_at` with one bounce fewer, so the recursion ends when the budget runs
out. Every function here is total: a miss or total internal reflection is an
ordinary black contribution, never an error.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING

from .vec3 import Vec3, Point3, Color, BLACK
from .ray import Ray
from .lights import PointLight
from .materials import Material
from .intersection import Computations, hit, prepare_computations, schlick

if TYPE_CHECKING:
    from .shapes import Shape
    from .world import World


def lighting(
    material: Material,
    shape: Shape,
    light: PointLight,
    point: Point3,
    eyev: Vec3,
    normalv: Vec3,
    in_shadow: bool = False
) -> Color:
    """Phong illumination of a surface point by one light.

    Args:
        material: Surface material
        shape: The shape being lit (resolves the material's pattern)
        light: The light source
        point: World space point being lit
        eyev: Unit vector towards the eye
        normalv: Unit surface normal
        in_shadow: If True only the ambient term is returned

    Returns:
        ambient + diffuse + specular
    """
    color = material.color_at(shape, point)
    effective_color = color * light.intensity
    ambient = effective_color * material.ambient

    if in_shadow:
        return ambient

    lightv = light.direction_from(point)
    light_dot_normal = lightv.dot(normalv)

    # Light on the other side of the surface
    if light_dot_normal < 0:
        return ambient

    diffuse = effective_color * (material.diffuse * light_dot_normal)

    reflectv = (-lightv).reflect(normalv)
    reflect_dot_eye = reflectv.dot(eyev)
    if reflect_dot_eye <= 0:
        specular = BLACK
    else:
        factor = reflect_dot_eye ** material.shininess
        specular = light.intensity * (material.specular * factor)

    return ambient + diffuse + specular


def shade_hit(world: World, comps: Computations, remaining: int) -> Color:
    """Color at a precomputed hit: direct light from every light plus the
    reflected and refracted contributions.

    Args:
        world: The scene
        comps: Precomputed hit state
        remaining: Bounces left for reflected and refracted rays
    """
    material = comps.shape.material

    surface = BLACK
    for light in world.lights:
        shadowed = world.is_shadowed(comps.over_point, light)
        surface = surface + lighting(
            material, comps.shape, light, comps.over_point, comps.eyev, comps.normalv, shadowed
        )

    reflected = reflected_color(world, comps, remaining)
    refracted = refracted_color(world, comps, remaining)

    if material.reflective > 0 and material.transparency > 0:
        reflectance = schlick(comps)
        return surface + reflected * reflectance + refracted * (1 - reflectance)

    return surface + reflected + refracted


def reflected_color(world: World, comps: Computations, remaining: int) -> Color:
    """Color seen in the mirror direction, scaled by the material's reflectivity."""
    reflective = comps.shape.material.reflective
    if remaining <= 0 or reflective == 0:
        return BLACK

    reflect_ray = Ray(comps.over_point, comps.reflectv)
    return color_at(world, reflect_ray, remaining - 1) * reflective


def refracted_color(world: World, comps: Computations, remaining: int) -> Color:
    """Color seen through the surface along the Snell's law direction.

    Black under total internal reflection.
    """
    transparency = comps.shape.material.transparency
    if remaining <= 0 or transparency == 0:
        return BLACK

    n_ratio = comps.n1 / comps.n2
    cos_i = comps.eyev.dot(comps.normalv)
    sin2_t = n_ratio * n_ratio * (1 - cos_i * cos_i)
    if sin2_t > 1:
        return BLACK

    cos_t = math.sqrt(1.0 - sin2_t)
    direction = comps.normalv * (n_ratio * cos_i - cos_t) - comps.eyev * n_ratio
    refract_ray = Ray(comps.under_point, direction)
    return color_at(world, refract_ray, remaining - 1) * transparency


def color_at(world: World, ray: Ray, remaining: int) -> Color:
    """Trace a ray into the world and return the color it sees.

    Args:
        world: The scene
        ray: World space ray
        remaining: Reflection/refraction bounces allowed below this ray

    Returns:
        The world's background color on a miss, the shaded hit otherwise
    """
    xs = world.intersect(ray)
    the_hit = hit(xs)
    if the_hit is None:
        return world.background

    comps = prepare_computations(the_hit, ray, xs, world.shadow_bias)
    return shade_hit(world, comps, remaining)
