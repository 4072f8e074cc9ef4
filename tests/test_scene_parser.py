"""Tests for the scene description parser."""

import pytest
import json
import math
from rayforge.vec3 import Vec3, Point3, Color
from rayforge.ray import Ray
from rayforge.transform import translation, scaling, rotation_y, view_transform
from rayforge.shapes import Sphere, Plane, Cube, Cylinder, Cone, Triangle, SmoothTriangle
from rayforge.groups import Group, CSG, CSGOperation
from rayforge.patterns import CheckersPattern, StripePattern, BlendedPattern, SolidPattern
from rayforge.scene_parser import SceneParser, SceneParseError, load_scene, parse_scene

SCENE_YAML = """
camera:
  width: 40
  height: 20
  field_of_view: 1.0472
  from: [0, 1.5, -5]
  to: [0, 1, 0]
  up: [0, 1, 0]

render:
  max_depth: 3
  threads: 2

world:
  background: [0.1, 0.2, 0.3]

materials:
  floor:
    pattern:
      type: checkers
      a: [1, 1, 1]
      b: [0, 0, 0]
    specular: 0
  glass:
    color: [0.1, 0.1, 0.1]
    transparency: 0.9
    reflective: 0.9
    refractive_index: 1.5

objects:
  - type: plane
    material: floor
  - type: sphere
    material: glass
    transform:
      - [scale, 0.5, 0.5, 0.5]
      - [translate, 0, 1, 0]

lights:
  - position: [-10, 10, -10]
    intensity: [1, 1, 1]
"""


class TestSceneFiles:
    """Test loading scene files."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "scene.yaml"
        path.write_text(SCENE_YAML)
        world, camera, settings = load_scene(path)

        assert len(world.objects) == 2
        assert len(world.lights) == 1
        assert world.background == Color(0.1, 0.2, 0.3)
        assert world.max_depth == 3
        assert settings.max_depth == 3
        assert settings.num_threads == 2
        assert camera.hsize == 40
        assert camera.vsize == 20
        assert camera.transform == view_transform(Point3(0, 1.5, -5), Point3(0, 1, 0), Vec3(0, 1, 0))

        floor, ball = world.objects
        assert isinstance(floor, Plane)
        assert isinstance(floor.material.pattern, CheckersPattern)
        assert ball.material.transparency == 0.9
        assert ball.transform == translation(0, 1, 0) @ scaling(0.5, 0.5, 0.5)

    def test_load_json(self, tmp_path):
        path = tmp_path / "scene.json"
        path.write_text(json.dumps({
            'objects': [{'type': 'cube'}],
            'lights': [{'position': [0, 5, -5]}],
        }))
        world, camera, settings = load_scene(path)
        assert isinstance(world.objects[0], Cube)
        assert world.lights[0].position == Point3(0, 5, -5)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SceneParseError):
            load_scene(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("objects: [\n")
        with pytest.raises(SceneParseError):
            load_scene(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(SceneParseError):
            load_scene(path)

    def test_obj_reference_is_relative_to_scene(self, tmp_path):
        (tmp_path / "tri.obj").write_text("v 0 1 0\nv -1 0 0\nv 1 0 0\nf 1 2 3\n")
        path = tmp_path / "scene.yaml"
        path.write_text("objects:\n  - type: obj\n    file: tri.obj\n    transform: [[translate, 0, 0, 2]]\n")
        world, _, _ = load_scene(path)
        mesh = world.objects[0]
        assert isinstance(mesh, Group)
        assert len(mesh) == 1
        assert mesh.transform == translation(0, 0, 2)


class TestSceneObjects:
    """Test object and material definitions."""

    def test_every_primitive(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'sphere'},
            {'type': 'plane'},
            {'type': 'cube'},
            {'type': 'cylinder', 'min': 0, 'max': 2, 'closed': True},
            {'type': 'cone', 'min': -1, 'max': 0},
            {'type': 'triangle', 'points': [[0, 1, 0], [-1, 0, 0], [1, 0, 0]]},
            {'type': 'smooth_triangle',
             'points': [[0, 1, 0], [-1, 0, 0], [1, 0, 0]],
             'normals': [[0, 1, 0], [-1, 0, 0], [1, 0, 0]]},
        ]})
        kinds = [type(o) for o in world.objects]
        assert kinds == [Sphere, Plane, Cube, Cylinder, Cone, Triangle, SmoothTriangle]

        cylinder = world.objects[3]
        assert cylinder.minimum == 0
        assert cylinder.maximum == 2
        assert cylinder.closed is True

    def test_group_with_children(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'group', 'transform': [['translate', 1, 0, 0]],
             'children': [{'type': 'sphere'}, {'type': 'group', 'children': [{'type': 'cube'}]}]},
        ]})
        g = world.objects[0]
        assert isinstance(g, Group)
        assert len(g) == 2
        assert g.children[0].parent is g

    def test_csg(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'csg', 'operation': 'difference',
             'left': {'type': 'cube'},
             'right': {'type': 'sphere', 'transform': [['scale', 1.3, 1.3, 1.3]]}},
        ]})
        c = world.objects[0]
        assert isinstance(c, CSG)
        assert c.operation is CSGOperation.DIFFERENCE
        assert isinstance(c.left, Cube)
        assert isinstance(c.right, Sphere)

    def test_transforms_apply_in_order(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'sphere', 'transform': [['translate', 1, 0, 0], ['rotate_y', math.pi / 2]]},
        ]})
        s = world.objects[0]
        assert s.transform == rotation_y(math.pi / 2) @ translation(1, 0, 0)
        assert s.transform.transform_point(Point3(0, 0, 0)) == Point3(0, 0, -1)

    def test_shear(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'sphere', 'transform': [['shear', 1, 0, 0, 0, 0, 0]]},
        ]})
        assert world.objects[0].transform.transform_point(Point3(2, 3, 4)) == Point3(5, 3, 4)

    def test_shadow_flag(self):
        world, _, _ = parse_scene({'objects': [{'type': 'sphere', 'shadow': False}]})
        assert world.objects[0].casts_shadow is False

    @pytest.mark.parametrize("blocker", [
        {'type': 'group', 'children': [{'type': 'sphere', 'transform': [['translate', 0, 5, 0]]}]},
        {'type': 'csg', 'operation': 'union',
         'left': {'type': 'sphere', 'transform': [['translate', 0, 5, 0]]},
         'right': {'type': 'cube', 'transform': [['translate', 0, 6, 0]]}},
    ])
    def test_shadow_flag_on_composites(self, blocker):
        world, _, _ = parse_scene({
            'objects': [dict(blocker, shadow=False)],
            'lights': [{'position': [0, 10, 0]}],
        })
        assert not world.is_shadowed(Point3(0, 0, 0), world.lights[0])

        world, _, _ = parse_scene({'objects': [blocker], 'lights': [{'position': [0, 10, 0]}]})
        assert world.is_shadowed(Point3(0, 0, 0), world.lights[0])

    def test_shadow_flag_on_obj_mesh(self, tmp_path):
        (tmp_path / "tri.obj").write_text("v -1 5 -1\nv 1 5 -1\nv 0 5 1\nf 1 2 3\n")
        path = tmp_path / "scene.yaml"
        path.write_text(
            "objects:\n  - type: obj\n    file: tri.obj\n    shadow: false\n"
            "lights:\n  - position: [0, 10, 0]\n"
        )
        world, _, _ = load_scene(path)
        assert not world.is_shadowed(Point3(0, 0, 0), world.lights[0])

    def test_inline_material(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'sphere', 'material': {'color': '#ff0000', 'ambient': 0.5}},
        ]})
        m = world.objects[0].material
        assert m.color == Color(1, 0, 0)
        assert m.ambient == 0.5

    def test_material_extends_another(self):
        world, _, _ = parse_scene({
            'materials': {
                'base': {'color': [0, 0, 1], 'reflective': 0.3},
                'shiny': {'extend': 'base', 'specular': 1.0},
            },
            'objects': [{'type': 'sphere', 'material': 'shiny'}],
        })
        m = world.objects[0].material
        assert m.color == Color(0, 0, 1)
        assert m.reflective == 0.3
        assert m.specular == 1.0

    def test_nested_patterns(self):
        world, _, _ = parse_scene({'objects': [
            {'type': 'plane', 'material': {'pattern': {
                'type': 'blended',
                'weight': 0.25,
                'a': {'type': 'stripes', 'a': [1, 1, 1], 'b': [0, 0, 0]},
                'b': {'type': 'stripes', 'a': [1, 0, 0], 'b': [0, 1, 0],
                      'transform': [['rotate_y', math.pi / 2]]},
            }}},
        ]})
        pattern = world.objects[0].material.pattern
        assert isinstance(pattern, BlendedPattern)
        assert pattern.weight == 0.25
        assert isinstance(pattern.a, StripePattern)
        assert isinstance(pattern.a.a, SolidPattern)


class TestSceneErrors:
    """Test malformed scene descriptions."""

    @pytest.mark.parametrize("obj", [
        {'type': 'torus'},
        {'shape': 'sphere'},
        {'type': 'sphere', 'material': 'missing'},
        {'type': 'sphere', 'transform': [['twist', 1]]},
        {'type': 'sphere', 'transform': [['translate', 1, 2]]},
        {'type': 'sphere', 'transform': 'scale 2'},
        {'type': 'csg', 'operation': 'xor', 'left': {'type': 'cube'}, 'right': {'type': 'sphere'}},
        {'type': 'csg', 'left': {'type': 'cube'}},
        {'type': 'triangle', 'points': [[0, 0, 0], [1, 0, 0]]},
        {'type': 'plane', 'material': {'pattern': {'type': 'plaid', 'a': [1, 1, 1], 'b': [0, 0, 0]}}},
        {'type': 'plane', 'material': {'pattern': {'type': 'stripes', 'a': [1, 1, 1]}}},
        {'type': 'sphere', 'material': {'reflective': 2}},
        {'type': 'obj'},
        {'type': 'sphere', 'transform': [['translate', 'a', 0, 0]]},
        {'type': 'sphere', 'transform': [['rotate_y', None]]},
        {'type': 'cylinder', 'min': 'low'},
        {'type': 'sphere', 'material': {'ambient': 'bright'}},
        {'type': 'plane', 'material': {'pattern': {'type': 'blended', 'weight': 'half',
                                                   'a': [1, 1, 1], 'b': [0, 0, 0]}}},
        {'type': 'group', 'divide': 'many', 'children': [{'type': 'sphere'}]},
    ])
    def test_invalid_object(self, obj):
        with pytest.raises(SceneParseError):
            parse_scene({'objects': [obj]})

    def test_invalid_vector(self):
        with pytest.raises(SceneParseError):
            parse_scene({'lights': [{'position': [1, 2]}]})

    @pytest.mark.parametrize("position", [
        {'x': 'left', 'y': 0, 'z': 0},
        [1, 'up', 3],
    ])
    def test_non_numeric_vector(self, position):
        with pytest.raises(SceneParseError):
            parse_scene({'lights': [{'position': position}]})

    def test_invalid_camera(self):
        with pytest.raises(SceneParseError):
            parse_scene({'camera': {'width': 0}})

    def test_unknown_light_type(self):
        with pytest.raises(SceneParseError):
            parse_scene({'lights': [{'type': 'area'}]})

    def test_singular_transform_propagates(self):
        from rayforge.transform import SingularMatrixError
        with pytest.raises(SingularMatrixError):
            parse_scene({'objects': [{'type': 'sphere', 'transform': [['scale', 0, 1, 1]]}]})

    def test_degenerate_triangle_propagates(self):
        from rayforge.shapes import DegenerateGeometryError
        with pytest.raises(DegenerateGeometryError):
            parse_scene({'objects': [{'type': 'triangle', 'points': [[0, 0, 0], [1, 1, 1], [2, 2, 2]]}]})


class TestRenderingParsedScene:
    """A parsed scene renders like a hand-built one."""

    def test_parsed_default_world(self):
        world, _, _ = parse_scene({
            'objects': [
                {'type': 'sphere', 'material': {'color': [0.8, 1.0, 0.6], 'diffuse': 0.7, 'specular': 0.2}},
                {'type': 'sphere', 'transform': [['scale', 0.5, 0.5, 0.5]]},
            ],
            'lights': [{'position': [-10, 10, -10], 'intensity': [1, 1, 1]}],
        })
        c = world.color_at(Ray(Point3(0, 0, -5), Vec3(0, 0, 1)))
        assert c == Color(0.38066, 0.47583, 0.2855)
