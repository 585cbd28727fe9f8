"""Geometric primitives used when cutting textured triangle meshes."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum


@dataclass(frozen=True)
class Vertex2:
    """A texture coordinate."""

    x: float = 0.0
    y: float = 0.0

    def distance(self, other: Vertex2) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def cut_edge_perc(self, other: Vertex2, perc: float) -> Vertex2:
        """Point at fraction ``perc`` of the way from this vertex to ``other``."""
        return Vertex2(
            (other.x - self.x) * perc + self.x,
            (other.y - self.y) * perc + self.y,
        )


@dataclass(frozen=True)
class Vertex3:
    """A point in model space."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def distance(self, other: Vertex3) -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )

    def cross(self, other: Vertex3) -> Vertex3:
        return Vertex3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def __sub__(self, other: Vertex3) -> Vertex3:
        return Vertex3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> Vertex3:
        return Vertex3(self.x * factor, self.y * factor, self.z * factor)

    def __truediv__(self, divisor: float) -> Vertex3:
        return Vertex3(self.x / divisor, self.y / divisor, self.z / divisor)


class Axis(Enum):
    X = 0
    Y = 1
    Z = 2


class VertexUtils(ABC):
    """Projection onto, and cutting along, one coordinate axis."""

    axis: Axis

    @abstractmethod
    def get_dim(self, v: Vertex3) -> float:
        """Coordinate of ``v`` along this axis."""

    @abstractmethod
    def cut_edge(self, a: Vertex3, b: Vertex3, q: float) -> Vertex3:
        """Point where the line through ``a`` and ``b`` meets the plane at ``q``."""


class VertexUtilsX(VertexUtils):
    axis = Axis.X

    def get_dim(self, v: Vertex3) -> float:
        return v.x

    def cut_edge(self, a: Vertex3, b: Vertex3, q: float) -> Vertex3:
        dx = a.x - b.x
        my = (a.y - b.y) / dx
        mz = (a.z - b.z) / dx
        return Vertex3(q, my * (q - a.x) + a.y, mz * (q - a.x) + a.z)


class VertexUtilsY(VertexUtils):
    axis = Axis.Y

    def get_dim(self, v: Vertex3) -> float:
        return v.y

    def cut_edge(self, a: Vertex3, b: Vertex3, q: float) -> Vertex3:
        dy = a.y - b.y
        mx = (a.x - b.x) / dy
        mz = (a.z - b.z) / dy
        return Vertex3(mx * (q - a.y) + a.x, q, mz * (q - a.y) + a.z)


class VertexUtilsZ(VertexUtils):
    axis = Axis.Z

    def get_dim(self, v: Vertex3) -> float:
        return v.z

    def cut_edge(self, a: Vertex3, b: Vertex3, q: float) -> Vertex3:
        dz = a.z - b.z
        mx = (a.x - b.x) / dz
        my = (a.y - b.y) / dz
        return Vertex3(mx * (q - a.z) + a.x, my * (q - a.z) + a.y, q)


@dataclass(frozen=True)
class Box3:
    """Axis-aligned bounding box."""

    min: Vertex3 = field(default_factory=Vertex3)
    max: Vertex3 = field(default_factory=Vertex3)

    @staticmethod
    def from_coords(minx, miny, minz, maxx, maxy, maxz) -> Box3:
        return Box3(Vertex3(minx, miny, minz), Vertex3(maxx, maxy, maxz))

    def width(self) -> float:
        return self.max.x - self.min.x

    def height(self) -> float:
        return self.max.y - self.min.y

    def depth(self) -> float:
        return self.max.z - self.min.z

    def center(self) -> Vertex3:
        return Vertex3(
            (self.min.x + self.max.x) / 2.0,
            (self.min.y + self.max.y) / 2.0,
            (self.min.z + self.max.z) / 2.0,
        )

    def split(self, axis: Axis, position: float) -> tuple[Box3, Box3]:
        """Split into two boxes at ``position`` along ``axis``."""
        if axis is Axis.X:
            return (
                Box3(self.min, replace(self.max, x=position)),
                Box3(replace(self.min, x=position), self.max),
            )
        if axis is Axis.Y:
            return (
                Box3(self.min, replace(self.max, y=position)),
                Box3(replace(self.min, y=position), self.max),
            )
        return (
            Box3(self.min, replace(self.max, z=position)),
            Box3(replace(self.min, z=position), self.max),
        )

    def split_box(self, axis: Axis) -> tuple[Box3, Box3]:
        """Split into two halves along ``axis``."""
        if axis is Axis.X:
            middle = self.min.x + self.width() / 2
        elif axis is Axis.Y:
            middle = self.min.y + self.height() / 2
        else:
            middle = self.min.z + self.depth() / 2
        return self.split(axis, middle)


@dataclass
class FaceT:
    """A textured triangle: vertex, texture-vertex and material indices."""

    index_a: int = 0
    index_b: int = 0
    index_c: int = 0
    texture_index_a: int = 0
    texture_index_b: int = 0
    texture_index_c: int = 0
    material_index: int = 0


@dataclass
class Material:
    texture_file: str = ""
    texture_file_full_path: str = ""