"""
Composite shapes: groups and constructive solid geometry.

Both own their children exclusively. A child points back to its parent only
through a weak reference, which is what lets `world_to_object` and
`normal_to_world` walk up the tree.
"""

from __future__ import annotations
from enum import Enum
from heapq import merge
from typing import Iterable, List, Optional, Tuple
import logging

from .vec3 import Vec3, Point3
from .ray import Ray
from .transform import Transform
from .bounds import BoundingBox
from .intersection import Intersection
from .shapes import Shape

logger = logging.getLogger(__name__)


def _adopt(parent: Shape, child: Shape) -> None:
    if child.parent is not None and child.parent is not parent:
        raise ValueError(f"{child!r} already belongs to {child.parent!r}")
    if child.includes(parent):
        raise ValueError("A shape cannot contain one of its ancestors")
    child.parent = parent


class Group(Shape):
    """An ordered collection of child shapes sharing one transform.

    The group keeps a bounding box around its children (in group space) so
    rays that miss the box skip every child.
    """

    def __init__(self, transform: Optional[Transform] = None, children: Optional[Iterable[Shape]] = None):
        self.children: List[Shape] = []
        self._bounds = BoundingBox()
        super().__init__(transform)
        for child in children or ():
            self.add_child(child)

    def add_child(self, child: Shape) -> Group:
        """Append a child and grow the bounding box to enclose it."""
        _adopt(self, child)
        self.children.append(child)
        self._bounds = self._bounds.merge(child.parent_space_bounds())
        parent = self.parent
        if parent is not None:
            parent.refresh_bounds()
        return self

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self):
        return iter(self.children)

    def refresh_bounds(self) -> None:
        """Recompute the box after a child changed, then tell our own parent."""
        box = BoundingBox()
        for child in self.children:
            box = box.merge(child.parent_space_bounds())
        self._bounds = box
        parent = self.parent
        if parent is not None:
            parent.refresh_bounds()

    def bounds(self) -> BoundingBox:
        return self._bounds

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        if not self._bounds.intersects(ray):
            return []

        xs: List[Intersection] = []
        for child in self.children:
            xs.extend(child.intersect(ray))
        xs.sort(key=lambda i: i.t)
        return xs

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        raise TypeError("Groups have no surface; normals come from their children")

    def includes(self, shape: Shape) -> bool:
        return self is shape or any(child.includes(shape) for child in self.children)

    def partition_children(self) -> Tuple[List[Shape], List[Shape]]:
        """Remove and return the children fitting wholly in each half of the box.

        Children straddling the split stay in this group.
        """
        left_box, right_box = self._bounds.split()
        left: List[Shape] = []
        right: List[Shape] = []
        remaining: List[Shape] = []

        for child in self.children:
            box = child.parent_space_bounds()
            if left_box.contains_box(box):
                left.append(child)
            elif right_box.contains_box(box):
                right.append(child)
            else:
                remaining.append(child)

        for child in left + right:
            child.parent = None
        self.children = remaining
        self.refresh_bounds()
        return left, right

    def make_subgroup(self, shapes: List[Shape]) -> None:
        """Move `shapes` into a new child group."""
        self.add_child(Group(children=shapes))

    def divide(self, threshold: int) -> None:
        """Build a bounding volume hierarchy below this group.

        Args:
            threshold: Groups with at least this many children are split
        """
        if threshold <= len(self.children):
            left, right = self.partition_children()
            if left:
                self.make_subgroup(left)
            if right:
                self.make_subgroup(right)
            logger.debug("Divided group: %d shapes left, %d right", len(left), len(right))

        for child in self.children:
            child.divide(threshold)

    def __repr__(self) -> str:
        return f"Group(children={len(self.children)})"


class CSGOperation(Enum):
    """Boolean operations combining two solids."""
    UNION = 'union'
    INTERSECTION = 'intersection'
    DIFFERENCE = 'difference'


def intersection_allowed(op: CSGOperation, left_hit: bool, inside_left: bool, inside_right: bool) -> bool:
    """Decide whether a crossing belongs to the combined surface.

    Args:
        op: The CSG operation
        left_hit: True if the crossing is on the left operand
        inside_left: True if the ray is currently inside the left operand
        inside_right: True if the ray is currently inside the right operand
    """
    if op is CSGOperation.UNION:
        return (left_hit and not inside_right) or (not left_hit and not inside_left)
    if op is CSGOperation.INTERSECTION:
        return (left_hit and inside_right) or (not left_hit and inside_left)
    if op is CSGOperation.DIFFERENCE:
        return (left_hit and not inside_right) or (not left_hit and inside_left)
    raise ValueError(f"Unknown CSG operation: {op}")


class CSG(Shape):
    """Constructive solid geometry: two solids combined by a boolean operation.

    Nothing is meshed; the combined surface is whichever crossings of the two
    operands survive `intersection_allowed`.
    """

    def __init__(
        self,
        operation: CSGOperation,
        left: Shape,
        right: Shape,
        transform: Optional[Transform] = None
    ):
        if left is right:
            raise ValueError("CSG operands must be two distinct shapes")
        self.operation = CSGOperation(operation)
        self.left = left
        self.right = right
        self._bounds = BoundingBox()
        super().__init__(transform)
        _adopt(self, left)
        _adopt(self, right)
        self.refresh_bounds()

    @classmethod
    def union(cls, left: Shape, right: Shape, transform: Optional[Transform] = None) -> CSG:
        return cls(CSGOperation.UNION, left, right, transform)

    @classmethod
    def intersection(cls, left: Shape, right: Shape, transform: Optional[Transform] = None) -> CSG:
        return cls(CSGOperation.INTERSECTION, left, right, transform)

    @classmethod
    def difference(cls, left: Shape, right: Shape, transform: Optional[Transform] = None) -> CSG:
        return cls(CSGOperation.DIFFERENCE, left, right, transform)

    def refresh_bounds(self) -> None:
        self._bounds = self.left.parent_space_bounds().merge(self.right.parent_space_bounds())
        parent = self.parent
        if parent is not None:
            parent.refresh_bounds()

    def bounds(self) -> BoundingBox:
        return self._bounds

    def _combine(self, tagged: Iterable[Tuple[bool, Intersection]]) -> List[Intersection]:
        """Scan origin-tagged crossings in t order, keeping the allowed ones."""
        inside_left = False
        inside_right = False
        result: List[Intersection] = []

        for left_hit, i in tagged:
            if intersection_allowed(self.operation, left_hit, inside_left, inside_right):
                result.append(i)
            if left_hit:
                inside_left = not inside_left
            else:
                inside_right = not inside_right

        return result

    def filter_intersections(self, xs: Iterable[Intersection]) -> List[Intersection]:
        """Filter an already merged, sorted list of operand intersections."""
        return self._combine((self.left.includes(i.shape), i) for i in xs)

    def local_intersect(self, ray: Ray) -> List[Intersection]:
        if not self._bounds.intersects(ray):
            return []

        left_xs = ((True, i) for i in self.left.intersect(ray))
        right_xs = ((False, i) for i in self.right.intersect(ray))
        # heapq.merge is stable: on equal t, left crossings come first
        return self._combine(merge(left_xs, right_xs, key=lambda tagged: tagged[1].t))

    def local_normal_at(self, point: Point3, hit: Optional[Intersection] = None) -> Vec3:
        raise TypeError("CSG nodes have no surface; normals come from their operands")

    def includes(self, shape: Shape) -> bool:
        return self is shape or self.left.includes(shape) or self.right.includes(shape)

    def divide(self, threshold: int) -> None:
        self.left.divide(threshold)
        self.right.divide(threshold)

    def __repr__(self) -> str:
        return f"CSG({self.operation.value}, {self.left!r}, {self.right!r})"
