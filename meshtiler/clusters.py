"""Grouping of faces into texture-connected clusters and texture rectangles."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import NamedTuple

from .mesh import MAX_VALUE, MIN_VALUE, Mesh

MAX_FACES_PER_EDGE = 100


@dataclass(frozen=True)
class Edge:
    """An undirected edge between two texture vertices, stored in ascending order."""

    v1_index: int
    v2_index: int

    def __post_init__(self) -> None:
        if self.v1_index > self.v2_index:
            low, high = self.v2_index, self.v1_index
            object.__setattr__(self, "v1_index", low)
            object.__setattr__(self, "v2_index", high)


@dataclass
class Rectangle:
    x: float
    y: float
    width: float
    height: float


class AreaStats(NamedTuple):
    max_width: float
    max_height: float
    texture_area: float


@dataclass
class TextureImage:
    """A raw image buffer with ``channels`` bytes per pixel, rows top to bottom."""

    width: int
    height: int
    pixels: bytearray = field(default=None)  # type: ignore[assignment]
    channels: int = 4

    def __post_init__(self) -> None:
        size = self.width * self.height * self.channels
        if self.pixels is None:
            self.pixels = bytearray(size)
        else:
            self.pixels = bytearray(self.pixels)
            if len(self.pixels) != size:
                raise ValueError("pixel buffer does not match width*height*channels")

    def _check_rect(self, x: int, y: int, width: int, height: int) -> None:
        if x < 0 or y < 0 or width < 0 or height < 0 \
                or x + width > self.width or y + height > self.height:
            raise ValueError(
                f"rectangle ({x}, {y}, {width}, {height}) lies outside "
                f"a {self.width}x{self.height} image"
            )

    def copy_rect(self, dest: TextureImage, source_x: int, source_y: int,
                  width: int, height: int, dest_x: int, dest_y: int) -> None:
        """Copy a ``width`` x ``height`` block of this image into ``dest``."""
        if dest.channels != self.channels:
            raise ValueError("images have different channel counts")
        self._check_rect(source_x, source_y, width, height)
        dest._check_rect(dest_x, dest_y, width, height)

        src_stride = self.width * self.channels
        dst_stride = dest.width * dest.channels
        row_bytes = width * self.channels
        for row in range(height):
            src = (source_y + row) * src_stride + source_x * self.channels
            dst = (dest_y + row) * dst_stride + dest_x * dest.channels
            dest.pixels[dst:dst + row_bytes] = self.pixels[src:src + row_bytes]


def edges_mapper(mesh: Mesh, face_indexes) -> dict[Edge, list[int]]:
    """Map each texture edge of the given faces to the faces that use it.

    At most ``MAX_FACES_PER_EDGE`` faces are recorded per edge, which keeps
    degenerate meshes (many faces on one texture coordinate) in bounds.
    """
    mapper: dict[Edge, list[int]] = {}
    for face_index in face_indexes:
        f = mesh.faces[face_index]
        e1 = Edge(f.texture_index_a, f.texture_index_b)
        e2 = Edge(f.texture_index_b, f.texture_index_c)
        e3 = Edge(f.texture_index_a, f.texture_index_c)
        for edge in (e1, e2, e3):
            mapper.setdefault(edge, [])

        if len(mapper[e1]) < MAX_FACES_PER_EDGE:
            mapper[e1].append(face_index)
        # The second edge is limited by the size of the third.
        if len(mapper[e3]) < MAX_FACES_PER_EDGE:
            mapper[e2].append(face_index)
        if len(mapper[e3]) < MAX_FACES_PER_EDGE:
            mapper[e3].append(face_index)
    return mapper


def faces_mapper(edges_mapper: dict[Edge, list[int]]) -> dict[int, list[int]]:
    """Map each face to itself followed by the faces sharing a texture edge with it."""
    mapper: dict[int, list[int]] = {}
    for faces in edges_mapper.values():
        for face_index in faces:
            connected = mapper.setdefault(face_index, [face_index])
            connected.extend(f for f in faces if f != face_index)
    return mapper


def faces_clusters(face_indexes, faces_mapper: dict[int, list[int]]) -> list[list[int]]:
    """Split faces into clusters that are connected through shared texture edges."""
    remaining = dict.fromkeys(face_indexes)
    if not remaining:
        raise ValueError("no faces to cluster")

    def take_first() -> int:
        first = next(iter(remaining))
        del remaining[first]
        return first

    clusters: list[list[int]] = []
    start = take_first()
    current = [start]
    seen = {start}
    last_remaining = len(remaining)

    while remaining:
        count = len(current)
        # ``current`` grows while it is walked, so new faces are expanded too.
        for face_index in current:
            for connected in faces_mapper.get(face_index, ()):
                if connected in seen:
                    continue
                current.append(connected)
                seen.add(connected)
                remaining.pop(connected, None)

        if count == len(current):
            clusters.append(current)
            if not remaining:
                break
            start = take_first()
            current = [start]
            seen = {start}

        if last_remaining == len(remaining):
            break
        last_remaining = len(remaining)

    clusters.append(current)
    return clusters


def cluster_rect(mesh: Mesh, cluster) -> Rectangle:
    """Bounding rectangle, in texture space, of the faces in ``cluster``."""
    min_x = min_y = MAX_VALUE
    max_x = max_y = MIN_VALUE
    for face_index in cluster:
        face = mesh.faces[face_index]
        for ti in (face.texture_index_a, face.texture_index_b, face.texture_index_c):
            vt = mesh.texture_vertices[ti]
            min_x, max_x = min(min_x, vt.x), max(max_x, vt.x)
            min_y, max_y = min(min_y, vt.y), max(max_y, vt.y)
    return Rectangle(min_x, min_y, max_x - min_x, max_y - min_y)


def max_min_area_rect(rects, texture_width: int, texture_height: int) -> AreaStats:
    """Largest rectangle width and height in pixels, and their total pixel area."""
    max_width = max_height = 0.0
    area = 0.0
    for rect in rects:
        area += (max(math.ceil(rect.width * texture_width), 1.0)
                 * max(math.ceil(rect.height * texture_height), 1.0))
        max_width = max(max_width, rect.width)
        max_height = max(max_height, rect.height)
    return AreaStats(
        float(math.ceil(max_width * texture_width)),
        float(math.ceil(max_height * texture_height)),
        area,
    )


def next_power_of_two(x: int) -> int:
    """Smallest power of two not below ``x``; zero for ``x <= 0``."""
    if x <= 0:
        return 0
    return 1 << (x - 1).bit_length()


def clamp(value: float, low: float, high: float) -> float:
    """Limit ``value`` to the range between ``low`` and ``high`` (in either order)."""
    if low > high:
        low, high = high, low
    return min(max(value, low), high)