"""
RayForge - A Whitted-style recursive ray tracer

Features:
- Affine transforms with cached inverses
- Spheres, planes, cubes, cylinders, cones, triangles and OBJ meshes
- Groups with bounding boxes and constructive solid geometry
- Phong shading with shadows, reflection and refraction (Fresnel via Schlick)
- Procedural patterns (stripes, gradients, rings, checkers, blends)
- Multi-threaded tile rendering to PPM/PNG
"""

__version__ = "0.1.0"

from .vec3 import Vec3, Point3, Color, EPSILON, BLACK, WHITE
from .ray import Ray
from .transform import (
    Transform, SingularMatrixError, IDENTITY, compose, translation, scaling,
    rotation_x, rotation_y, rotation_z, shearing, view_transform
)
from .bounds import BoundingBox
from .shapes import (
    Shape, Sphere, Plane, Cube, Cylinder, Cone, Triangle, SmoothTriangle,
    DegenerateGeometryError, glass_sphere
)
from .groups import Group, CSG, CSGOperation, intersection_allowed
from .intersection import Intersection, Computations, intersections, hit, prepare_computations, schlick
from .patterns import (
    Pattern, SolidPattern, StripePattern, GradientPattern, RingPattern,
    CheckersPattern, BlendedPattern
)
from .materials import Material
from .lights import PointLight
from .shading import lighting, shade_hit, reflected_color, refracted_color, color_at
from .world import World, default_world
from .camera import Camera
from .renderer import Renderer, RenderSettings
from .obj_loader import OBJLoader, ObjParseResult, load_obj
from .scene_parser import SceneParser, SceneParseError, load_scene, parse_scene
