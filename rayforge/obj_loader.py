"""
Wavefront OBJ loader.

Builds triangle groups from the geometry statements of an OBJ file:
- `v` vertex positions
- `vn` vertex normals
- `f` faces (polygons are fan-triangulated)
- `g` / `o` named groups

Everything else (texture coordinates, materials, smoothing groups) is
counted as ignored. A face that fails to parse is skipped with a warning
rather than aborting the load.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Union
import io
import logging

from .vec3 import Vec3, Point3
from .shapes import Triangle, SmoothTriangle, Shape, DegenerateGeometryError
from .groups import Group
from .materials import Material

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 'default'


@dataclass
class OBJVertex:
    """Indices (0-based) referenced by one corner of a face."""
    position_idx: int
    normal_idx: Optional[int] = None


@dataclass
class ObjParseResult:
    """Everything read from an OBJ file.

    Attributes:
        vertices: Vertex positions in file order
        normals: Vertex normals in file order
        groups: Triangles per group name, in order of first appearance
        ignored: Number of lines that were not understood
    """
    vertices: List[Point3] = field(default_factory=list)
    normals: List[Vec3] = field(default_factory=list)
    groups: Dict[str, List[Shape]] = field(default_factory=dict)
    ignored: int = 0

    def vertex(self, index: int) -> Point3:
        """Vertex by its 1-based OBJ index."""
        return self.vertices[index - 1]

    def normal(self, index: int) -> Vec3:
        """Normal by its 1-based OBJ index."""
        return self.normals[index - 1]

    def triangles(self, name: str = DEFAULT_GROUP) -> List[Shape]:
        return self.groups.get(name, [])

    def to_group(self) -> Group:
        """One Group holding a sub-group per named group.

        Triangles outside any named group are added directly.
        """
        root = Group()
        for name, shapes in self.groups.items():
            if not shapes:
                continue
            if name == DEFAULT_GROUP:
                for shape in shapes:
                    root.add_child(shape)
            else:
                root.add_child(Group(children=shapes))
        return root


class OBJLoader:
    """Loader for Wavefront OBJ files."""

    def __init__(self, material: Optional[Material] = None):
        """Create a loader.

        Args:
            material: Material given to every triangle (default material if None)
        """
        self.material = material

    def load(self, filename: Union[str, Path]) -> ObjParseResult:
        """Parse an OBJ file from disk."""
        path = Path(filename)
        if not path.exists():
            raise FileNotFoundError(f"OBJ file not found: {filename}")

        with open(path, 'r') as f:
            result = self.parse(f)

        logger.info("Loaded %s: %d vertices, %d triangles, %d lines ignored",
                    path, len(result.vertices),
                    sum(len(shapes) for shapes in result.groups.values()), result.ignored)
        return result

    def parse_string(self, text: str) -> ObjParseResult:
        return self.parse(io.StringIO(text))

    def parse(self, stream: TextIO) -> ObjParseResult:
        """Parse OBJ statements from any text stream."""
        result = ObjParseResult()
        current = result.groups.setdefault(DEFAULT_GROUP, [])

        for line_num, line in enumerate(stream, 1):
            parts = line.split()
            if not parts or parts[0].startswith('#'):
                continue

            cmd = parts[0]

            try:
                if cmd == 'v':
                    x, y, z = (float(p) for p in parts[1:4])
                    result.vertices.append(Point3(x, y, z))

                elif cmd == 'vn':
                    x, y, z = (float(p) for p in parts[1:4])
                    result.normals.append(Vec3(x, y, z))

                elif cmd == 'f':
                    corners = self._parse_face(parts[1:], result)
                    current.extend(self._triangulate_face(corners, result))

                elif cmd in ('g', 'o') and len(parts) > 1:
                    current = result.groups.setdefault(parts[1], [])

                else:
                    result.ignored += 1

            except DegenerateGeometryError:
                raise
            except (ValueError, IndexError) as e:
                logger.warning("Skipping malformed OBJ line %d: %r (%s)", line_num, line.strip(), e)
                result.ignored += 1

        return result

    def _parse_face(self, face_parts: List[str], result: ObjParseResult) -> List[OBJVertex]:
        """Parse face corners (handles v, v/vt, v/vt/vn, v//vn formats)."""
        if len(face_parts) < 3:
            raise ValueError("a face needs at least three vertices")

        corners = []
        for part in face_parts:
            indices = part.split('/')

            pos_idx = self._resolve(int(indices[0]), len(result.vertices))

            norm_idx = None
            if len(indices) > 2 and indices[2]:
                norm_idx = self._resolve(int(indices[2]), len(result.normals))

            corners.append(OBJVertex(pos_idx, norm_idx))

        return corners

    @staticmethod
    def _resolve(index: int, count: int) -> int:
        """Convert a 1-based (or negative, relative) OBJ index to 0-based."""
        if index < 0:
            index = count + index + 1
        if not 1 <= index <= count:
            raise IndexError(f"index {index} out of range (1..{count})")
        return index - 1

    def _triangulate_face(self, corners: List[OBJVertex], result: ObjParseResult) -> List[Shape]:
        """Fan triangulation: (c0, c1, c2), (c0, c2, c3), ..."""
        triangles: List[Shape] = []
        c0 = corners[0]

        for i in range(1, len(corners) - 1):
            c1, c2 = corners[i], corners[i + 1]
            p1 = result.vertices[c0.position_idx]
            p2 = result.vertices[c1.position_idx]
            p3 = result.vertices[c2.position_idx]

            if all(c.normal_idx is not None for c in (c0, c1, c2)):
                tri = SmoothTriangle(
                    p1, p2, p3,
                    result.normals[c0.normal_idx],
                    result.normals[c1.normal_idx],
                    result.normals[c2.normal_idx],
                    material=self.material
                )
            else:
                tri = Triangle(p1, p2, p3, material=self.material)

            triangles.append(tri)

        return triangles


def load_obj(filename: Union[str, Path], material: Optional[Material] = None) -> Group:
    """Convenience function: load an OBJ file straight into a Group."""
    return OBJLoader(material).load(filename).to_group()
