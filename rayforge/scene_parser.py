"""
Scene description language parser.

Supports YAML (or JSON) scene files with:
- Camera configuration
- Render and world settings
- A materials library
- Objects: every shape kind, nested groups, CSG trees and OBJ meshes
- Point lights

Transforms are lists of operations applied in the order written.

Example scene file:
```yaml
camera:
  width: 400
  height: 200
  field_of_view: 1.0472
  from: [0, 1.5, -5]
  to: [0, 1, 0]
  up: [0, 1, 0]

render:
  max_depth: 5

materials:
  glass:
    color: [0.1, 0.1, 0.1]
    transparency: 0.9
    reflective: 0.9
    refractive_index: 1.5

  floor:
    pattern:
      type: checkers
      a: [1, 1, 1]
      b: [0, 0, 0]

objects:
  - type: plane
    material: floor

  - type: sphere
    material: glass
    transform:
      - [scale, 0.5, 0.5, 0.5]
      - [translate, 0, 1, 0]

  - type: csg
    operation: difference
    left: {type: cube}
    right: {type: sphere, transform: [[scale, 1.3, 1.3, 1.3]]}

lights:
  - position: [-10, 10, -10]
    intensity: [1, 1, 1]
```
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import logging
import math

import yaml

from .vec3 import Vec3, Color, EPSILON
from .transform import (
    Transform, translation, scaling, rotation_x, rotation_y, rotation_z, shearing, view_transform
)
from .camera import Camera
from .shapes import Shape, Sphere, Plane, Cube, Cylinder, Cone, Triangle, SmoothTriangle
from .groups import Group, CSG, CSGOperation
from .materials import Material
from .patterns import (
    Pattern, PatternLike, SolidPattern, StripePattern, GradientPattern, RingPattern,
    CheckersPattern, BlendedPattern
)
from .lights import PointLight
from .world import World
from .renderer import RenderSettings
from .obj_loader import load_obj

logger = logging.getLogger(__name__)

SceneTuple = Tuple[World, Camera, RenderSettings]

MATERIAL_FIELDS = (
    'ambient', 'diffuse', 'specular', 'shininess',
    'reflective', 'transparency', 'refractive_index'
)


class SceneParseError(Exception):
    """Error during scene parsing."""
    pass


class SceneParser:
    """Parser for scene description files."""

    TRANSFORM_BUILDERS = {
        'translate': (translation, 3),
        'scale': (scaling, 3),
        'rotate_x': (rotation_x, 1),
        'rotate_y': (rotation_y, 1),
        'rotate_z': (rotation_z, 1),
        'shear': (shearing, 6),
    }

    PATTERN_TYPES = {
        'stripes': StripePattern,
        'gradient': GradientPattern,
        'ring': RingPattern,
        'checkers': CheckersPattern,
    }

    def __init__(self, base_dir: Optional[Path] = None):
        """Create a parser.

        Args:
            base_dir: Directory OBJ file references are resolved against
        """
        self.base_dir = base_dir or Path('.')
        self.materials: Dict[str, Material] = {}

    def parse_file(self, filepath: Union[str, Path]) -> SceneTuple:
        """Parse a scene file (YAML or JSON).

        Returns:
            Tuple of (world, camera, settings)
        """
        path = Path(filepath)
        if not path.exists():
            raise SceneParseError(f"Scene file not found: {filepath}")

        self.base_dir = path.parent
        content = path.read_text()

        try:
            if path.suffix == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise SceneParseError(f"Cannot read {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise SceneParseError(f"Scene file must contain a mapping, got {type(data).__name__}")

        logger.info("Parsing scene %s", path)
        return self.parse_dict(data)

    def parse_dict(self, data: Dict[str, Any]) -> SceneTuple:
        """Parse a scene from a dictionary.

        Returns:
            Tuple of (world, camera, settings)
        """
        # Materials first: objects reference them by name
        self._parse_materials(data.get('materials', {}))

        settings = self._parse_settings(data.get('render', {}))

        world_data = data.get('world', {})
        world = World(
            background=self._parse_color(world_data.get('background', [0, 0, 0])),
            shadow_bias=self._parse_number(world_data, 'shadow_bias', EPSILON),
            max_depth=settings.max_depth
        )

        for obj_data in data.get('objects', []):
            world.add(self._parse_object(obj_data))

        for light_data in data.get('lights', []):
            world.add_light(self._parse_light(light_data))

        if not world.lights:
            logger.warning("Scene has no lights; only the background will show")

        camera = self._parse_camera(data.get('camera', {}))

        logger.info("Scene ready: %d root objects, %d lights", len(world.objects), len(world.lights))
        return world, camera, settings

    def _parse_number(self, data: Dict[str, Any], key: str, default: Any = None, kind: type = float) -> Any:
        value = data.get(key, default)
        try:
            return kind(value)
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"'{key}' must be a number, got: {value}") from e

    def _parse_vec3(self, data: Any) -> Vec3:
        if isinstance(data, (list, tuple)):
            if len(data) != 3:
                raise SceneParseError(f"Vec3 must have 3 components, got {len(data)}")
            try:
                return Vec3(*(float(v) for v in data))
            except (TypeError, ValueError) as e:
                raise SceneParseError(f"Cannot parse Vec3 from: {data}") from e
        if isinstance(data, dict):
            try:
                return Vec3(*(float(data.get(axis, 0)) for axis in ('x', 'y', 'z')))
            except (TypeError, ValueError) as e:
                raise SceneParseError(f"Cannot parse Vec3 from: {data}") from e
        raise SceneParseError(f"Cannot parse Vec3 from: {data}")

    def _parse_color(self, data: Any) -> Color:
        if isinstance(data, (int, float)):
            return Color(float(data), float(data), float(data))
        if isinstance(data, str) and data.startswith('#') and len(data) == 7:
            try:
                return Color(*(int(data[i:i + 2], 16) / 255.0 for i in (1, 3, 5)))
            except ValueError as e:
                raise SceneParseError(f"Cannot parse color from string: {data}") from e
        return self._parse_vec3(data)

    def _parse_transform(self, data: Any) -> Transform:
        """Build a transform from a list of [operation, args...] entries."""
        if data is None:
            return Transform.identity()
        if not isinstance(data, list):
            raise SceneParseError(f"Transform must be a list of operations, got: {data}")

        result = Transform.identity()
        for step in data:
            if not isinstance(step, list) or not step:
                raise SceneParseError(f"Invalid transform step: {step}")
            name, args = step[0], step[1:]
            if name not in self.TRANSFORM_BUILDERS:
                raise SceneParseError(f"Unknown transform: {name}")
            builder, arity = self.TRANSFORM_BUILDERS[name]
            if len(args) != arity:
                raise SceneParseError(f"{name} takes {arity} arguments, got {len(args)}")
            try:
                values = [float(a) for a in args]
            except (TypeError, ValueError) as e:
                raise SceneParseError(f"{name} arguments must be numbers, got {args}") from e
            # Later steps apply after earlier ones
            result = builder(*values) @ result
        return result

    def _parse_pattern(self, data: Any) -> PatternLike:
        """A pattern mapping, or a bare color (usable as a nested operand)."""
        if not isinstance(data, dict):
            return self._parse_color(data)

        pattern_type = data.get('type', 'solid')
        transform = self._parse_transform(data.get('transform'))

        if pattern_type == 'solid':
            return SolidPattern(self._parse_color(data.get('color', [1, 1, 1])), transform)

        try:
            a = self._parse_pattern(data['a'])
            b = self._parse_pattern(data['b'])
        except KeyError as e:
            raise SceneParseError(f"Pattern '{pattern_type}' needs operands 'a' and 'b'") from e

        if pattern_type == 'blended':
            return BlendedPattern(a, b, self._parse_number(data, 'weight', 0.5), transform)
        if pattern_type in self.PATTERN_TYPES:
            return self.PATTERN_TYPES[pattern_type](a, b, transform)
        raise SceneParseError(f"Unknown pattern type: {pattern_type}")

    def _parse_material_dict(self, data: Dict[str, Any]) -> Material:
        base = self.materials.get(data['extend']) if 'extend' in data else None
        if 'extend' in data and base is None:
            raise SceneParseError(f"Unknown material to extend: {data['extend']}")

        kwargs: Dict[str, Any] = {}
        if base is not None:
            kwargs = {name: getattr(base, name) for name in MATERIAL_FIELDS}
            kwargs['color'] = base.color
            kwargs['pattern'] = base.pattern

        if 'color' in data:
            kwargs['color'] = self._parse_color(data['color'])
        if 'pattern' in data:
            pattern = self._parse_pattern(data['pattern'])
            kwargs['pattern'] = pattern if isinstance(pattern, Pattern) else SolidPattern(pattern)
        for name in MATERIAL_FIELDS:
            if name in data:
                kwargs[name] = self._parse_number(data, name)

        try:
            return Material(**kwargs)
        except ValueError as e:
            raise SceneParseError(f"Invalid material: {e}") from e

    def _parse_materials(self, data: Dict[str, Any]) -> None:
        for name, mat_data in data.items():
            if not isinstance(mat_data, dict):
                raise SceneParseError(f"Material '{name}' must be a mapping")
            self.materials[name] = self._parse_material_dict(mat_data)

    def _get_material(self, mat_ref: Any) -> Optional[Material]:
        if mat_ref is None:
            return None
        if isinstance(mat_ref, str):
            if mat_ref not in self.materials:
                raise SceneParseError(f"Unknown material: {mat_ref}")
            return self.materials[mat_ref]
        if isinstance(mat_ref, dict):
            return self._parse_material_dict(mat_ref)
        raise SceneParseError(f"Invalid material reference: {mat_ref}")

    def _parse_object(self, data: Dict[str, Any]) -> Shape:
        if not isinstance(data, dict) or 'type' not in data:
            raise SceneParseError(f"Object needs a 'type': {data}")

        obj_type = data['type']
        transform = self._parse_transform(data.get('transform'))
        material = self._get_material(data.get('material'))

        if obj_type == 'sphere':
            shape: Shape = Sphere(transform, material)
        elif obj_type == 'plane':
            shape = Plane(transform, material)
        elif obj_type == 'cube':
            shape = Cube(transform, material)
        elif obj_type in ('cylinder', 'cone'):
            cls = Cylinder if obj_type == 'cylinder' else Cone
            shape = cls(
                transform, material,
                minimum=self._parse_number(data, 'min', -math.inf),
                maximum=self._parse_number(data, 'max', math.inf),
                closed=bool(data.get('closed', False))
            )
        elif obj_type == 'triangle':
            p1, p2, p3 = self._parse_points(data, 'points', 3)
            shape = Triangle(p1, p2, p3, transform, material)
        elif obj_type == 'smooth_triangle':
            p1, p2, p3 = self._parse_points(data, 'points', 3)
            n1, n2, n3 = self._parse_points(data, 'normals', 3)
            shape = SmoothTriangle(p1, p2, p3, n1, n2, n3, transform, material)
        elif obj_type == 'group':
            shape = Group(transform, [self._parse_object(child) for child in data.get('children', [])])
        elif obj_type == 'csg':
            try:
                operation = CSGOperation(data.get('operation', 'union'))
            except ValueError as e:
                raise SceneParseError(f"Unknown CSG operation: {data.get('operation')}") from e
            if 'left' not in data or 'right' not in data:
                raise SceneParseError("CSG needs 'left' and 'right' operands")
            shape = CSG(operation, self._parse_object(data['left']), self._parse_object(data['right']), transform)
        elif obj_type == 'obj':
            if 'file' not in data:
                raise SceneParseError("OBJ object needs a 'file'")
            shape = load_obj(self.base_dir / data['file'], material)
            shape.transform = transform
        else:
            raise SceneParseError(f"Unknown object type: {obj_type}")

        if 'shadow' in data:
            shape.casts_shadow = bool(data['shadow'])

        if 'divide' in data:
            shape.divide(self._parse_number(data, 'divide', kind=int))

        return shape

    def _parse_points(self, data: Dict[str, Any], key: str, count: int) -> List[Vec3]:
        points = data.get(key)
        if not isinstance(points, list) or len(points) != count:
            raise SceneParseError(f"'{key}' must list {count} points")
        return [self._parse_vec3(p) for p in points]

    def _parse_light(self, data: Dict[str, Any]) -> PointLight:
        light_type = data.get('type', 'point')
        if light_type != 'point':
            raise SceneParseError(f"Unknown light type: {light_type}")
        return PointLight(
            position=self._parse_vec3(data.get('position', [0, 10, 0])),
            intensity=self._parse_color(data.get('intensity', [1, 1, 1]))
        )

    def _parse_camera(self, data: Dict[str, Any]) -> Camera:
        transform = view_transform(
            self._parse_vec3(data.get('from', [0, 0, -5])),
            self._parse_vec3(data.get('to', [0, 0, 0])),
            self._parse_vec3(data.get('up', [0, 1, 0]))
        )
        try:
            return Camera(
                int(data.get('width', 100)),
                int(data.get('height', 100)),
                float(data.get('field_of_view', math.pi / 3)),
                transform
            )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid camera: {e}") from e

    def _parse_settings(self, data: Dict[str, Any]) -> RenderSettings:
        try:
            return RenderSettings(
                max_depth=int(data.get('max_depth', 5)),
                tile_size=int(data.get('tile_size', 16)),
                num_threads=int(data.get('threads', 0)),
                gamma=float(data.get('gamma', 1.0))
            )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid render settings: {e}") from e


def load_scene(filepath: Union[str, Path]) -> SceneTuple:
    """Load a scene file.

    Returns:
        Tuple of (world, camera, settings)
    """
    return SceneParser().parse_file(filepath)


def parse_scene(data: Dict[str, Any]) -> SceneTuple:
    """Parse a scene dictionary.

    Returns:
        Tuple of (world, camera, settings)
    """
    return SceneParser().parse_dict(data)
