"""Textured triangle meshes and cutting them along an axis-aligned plane."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import NamedTuple, TypeVar

from .geometry import Box3, FaceT, Material, Vertex2, Vertex3, VertexUtils

EPSILON = 4.9406564584124654e-324 * 10.0
MIN_VALUE = -1.7976931348623157e308
MAX_VALUE = 1.7976931348623157e308

_T = TypeVar("_T")


def _add_index(table: dict[_T, int], item: _T) -> int:
    """Index of ``item`` in ``table``, adding it with the next index if new."""
    return table.setdefault(item, len(table))


def _intersect_percent(a: Vertex3, b: Vertex3, p: Vertex3) -> float:
    return a.distance(p) / a.distance(b)


@dataclass
class _Side:
    vertices: dict[Vertex3, int] = field(default_factory=dict)
    texture_vertices: dict[Vertex2, int] = field(default_factory=dict)
    faces: list[FaceT] = field(default_factory=list)

    def add_face(self, va: Vertex3, vb: Vertex3, vc: Vertex3,
                 ta: Vertex2, tb: Vertex2, tc: Vertex2, material: int) -> None:
        self.faces.append(FaceT(
            _add_index(self.vertices, va),
            _add_index(self.vertices, vb),
            _add_index(self.vertices, vc),
            _add_index(self.texture_vertices, ta),
            _add_index(self.texture_vertices, tb),
            _add_index(self.texture_vertices, tc),
            material,
        ))


class SplitResult(NamedTuple):
    left: Mesh
    right: Mesh
    cut_count: int


@dataclass
class Mesh:
    """Vertices, texture vertices, faces and materials of a textured mesh."""

    vertices: list[Vertex3] = field(default_factory=list)
    texture_vertices: list[Vertex2] = field(default_factory=list)
    faces: list[FaceT] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)
    mesh_file: str = ""
    bounds: Box3 = field(default_factory=Box3)

    def num_faces(self) -> int:
        return len(self.faces)

    def _corner(self, face: FaceT, which: int) -> tuple[Vertex3, Vertex2]:
        vi = (face.index_a, face.index_b, face.index_c)[which]
        ti = (face.texture_index_a, face.texture_index_b, face.texture_index_c)[which]
        return self.vertices[vi], self.texture_vertices[ti]

    def split_mesh(self, utils: VertexUtils, q: float) -> SplitResult:
        """Cut the mesh at ``q`` along the axis of ``utils``.

        Faces entirely below ``q`` go left, those entirely at or above go
        right, and faces that straddle the plane are cut in two. Returns the
        two halves and the number of faces that were cut.
        """
        left, right = _Side(), _Side()
        count = 0

        for face in self.faces:
            corners = [self._corner(face, i) for i in range(3)]
            sides = [utils.get_dim(v) < q for v, _ in corners]
            material = face.material_index

            if all(sides):
                left.add_face(*(v for v, _ in corners), *(t for _, t in corners), material)
                continue
            if not any(sides):
                right.add_face(*(v for v, _ in corners), *(t for _, t in corners), material)
                continue

            # The lone vertex is the one whose side differs from the other two;
            # the remaining two follow it in winding order.
            lone_left = sides.count(True) == 1
            lone = sides.index(lone_left)
            order = [corners[(lone + k) % 3] for k in range(3)]
            self._cut_triangle(utils, q, order, lone_left, material, left, right)
            count += 1

        def build(side: _Side) -> Mesh:
            return Mesh(
                vertices=list(side.vertices),
                texture_vertices=list(side.texture_vertices),
                faces=side.faces,
                materials=[replace(m) for m in self.materials],
            )

        return SplitResult(build(left), build(right), count)

    @staticmethod
    def _cut_triangle(utils: VertexUtils, q: float,
                      corners: list[tuple[Vertex3, Vertex2]], lone_left: bool,
                      material: int, left: _Side, right: _Side) -> None:
        (v, t), (v1, t1), (v2, t2) = corners
        near, far = (left, right) if lone_left else (right, left)

        iv_near = _add_index(near.vertices, v)
        it_near = _add_index(near.texture_vertices, t)

        if abs(utils.get_dim(v1) - q) < EPSILON and abs(utils.get_dim(v2) - q) < EPSILON:
            # The other two vertices lie on the cutting plane.
            near.faces.append(FaceT(
                iv_near,
                _add_index(near.vertices, v1),
                _add_index(near.vertices, v2),
                it_near,
                _add_index(near.texture_vertices, t1),
                _add_index(near.texture_vertices, t2),
                material,
            ))
            return

        iv1_far = _add_index(far.vertices, v1)
        iv2_far = _add_index(far.vertices, v2)

        c1 = utils.cut_edge(v, v1, q)
        c1_idx = (_add_index(left.vertices, c1), _add_index(right.vertices, c1))
        c2 = utils.cut_edge(v, v2, q)
        c2_idx = (_add_index(left.vertices, c2), _add_index(right.vertices, c2))

        it1_far = _add_index(far.texture_vertices, t1)
        it2_far = _add_index(far.texture_vertices, t2)

        ct1 = t.cut_edge_perc(t1, _intersect_percent(v, v1, c1))
        ct1_idx = (_add_index(left.texture_vertices, ct1),
                   _add_index(right.texture_vertices, ct1))
        ct2 = t.cut_edge_perc(t2, _intersect_percent(v, v2, c2))
        ct2_idx = (_add_index(left.texture_vertices, ct2),
                   _add_index(right.texture_vertices, ct2))

        near_i, far_i = (0, 1) if lone_left else (1, 0)
        near.faces.append(FaceT(iv_near, c1_idx[near_i], c2_idx[near_i],
                                it_near, ct1_idx[near_i], ct2_idx[near_i], material))
        if lone_left:
            far.faces.append(FaceT(c1_idx[far_i], iv1_far, iv2_far,
                                   ct1_idx[far_i], it1_far, it2_far, material))
            far.faces.append(FaceT(c1_idx[far_i], iv2_far, c2_idx[far_i],
                                   ct1_idx[far_i], it2_far, ct2_idx[far_i], material))
        else:
            far.faces.append(FaceT(c2_idx[far_i], iv1_far, iv2_far,
                                   ct2_idx[far_i], it1_far, it2_far, material))
            far.faces.append(FaceT(c2_idx[far_i], c1_idx[far_i], iv1_far,
                                   ct2_idx[far_i], ct1_idx[far_i], it1_far, material))

    def calc_bounds(self) -> Box3:
        """Compute, store and return the bounding box of the vertices."""
        if self.vertices:
            xs = [v.x for v in self.vertices]
            ys = [v.y for v in self.vertices]
            zs = [v.z for v in self.vertices]
            self.bounds = Box3.from_coords(min(xs), min(ys), min(zs),
                                           max(xs), max(ys), max(zs))
        else:
            self.bounds = Box3.from_coords(MAX_VALUE, MAX_VALUE, MAX_VALUE,
                                           MIN_VALUE, MIN_VALUE, MIN_VALUE)
        return self.bounds

    def baricenter(self) -> Vertex3:
        """Mean of all vertices."""
        if not self.vertices:
            raise ValueError("mesh has no vertices")
        n = len(self.vertices)
        return Vertex3(
            sum(v.x for v in self.vertices) / n,
            sum(v.y for v in self.vertices) / n,
            sum(v.z for v in self.vertices) / n,
        )

    def remove_unused(self) -> None:
        """Drop vertices and texture vertices no face refers to, reindexing faces."""
        new_vertices: dict[Vertex3, int] = {}
        new_uvs: dict[Vertex2, int] = {}
        for face in self.faces:
            va = self.vertices[face.index_a]
            vb = self.vertices[face.index_b]
            vc = self.vertices[face.index_c]
            face.index_a = _add_index(new_vertices, va)
            face.index_b = _add_index(new_vertices, vb)
            face.index_c = _add_index(new_vertices, vc)

            ua = self.texture_vertices[face.texture_index_a]
            ub = self.texture_vertices[face.texture_index_b]
            uc = self.texture_vertices[face.texture_index_c]
            face.texture_index_a = _add_index(new_uvs, ua)
            face.texture_index_b = _add_index(new_uvs, ub)
            face.texture_index_c = _add_index(new_uvs, uc)

        self.vertices = list(new_vertices)
        self.texture_vertices = list(new_uvs)

    def faces_by_material(self) -> list[list[int]]:
        """Face indices grouped per material; all faces share the first one."""
        return [list(range(len(self.faces)))]