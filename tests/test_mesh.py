import pytest

from meshtiler.geometry import (
    FaceT,
    Material,
    Vertex2,
    Vertex3,
    VertexUtilsX,
    VertexUtilsY,
)
from meshtiler.mesh import MAX_VALUE, MIN_VALUE, Mesh


def _triangle_mesh(points):
    verts = [Vertex3(*p) for p in points]
    uvs = [Vertex2(v.x / 4.0, v.y / 4.0) for v in verts]
    face = FaceT(0, 1, 2, 0, 1, 2, 0)
    return Mesh(verts, uvs, [face], [Material("tex.png", "/tmp/tex.png")])


def _area_xy(mesh):
    total = 0.0
    for f in mesh.faces:
        a, b, c = (mesh.vertices[i] for i in (f.index_a, f.index_b, f.index_c))
        total += abs((b.x - a.x) * (c.y - a.y) - (c.x - a.x) * (b.y - a.y)) / 2
    return total


def _faces_in_range(mesh):
    for f in mesh.faces:
        for i in (f.index_a, f.index_b, f.index_c):
            assert 0 <= i < len(mesh.vertices)
        for i in (f.texture_index_a, f.texture_index_b, f.texture_index_c):
            assert 0 <= i < len(mesh.texture_vertices)


def test_all_left_when_plane_beyond_mesh():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    left, right, count = mesh.split_mesh(VertexUtilsX(), 10.0)
    assert count == 0
    assert left.num_faces() == 1
    assert right.num_faces() == 0
    assert left.vertices == mesh.vertices


def test_all_right_when_plane_before_mesh():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    left, right, count = mesh.split_mesh(VertexUtilsX(), -1.0)
    assert count == 0
    assert left.num_faces() == 0
    assert right.num_faces() == 1


@pytest.mark.parametrize(
    "points",
    [
        [(0, 0, 0), (2, 0, 0), (0, 2, 0)],
        [(2, 0, 0), (0, 0, 0), (0, 2, 0)],
        [(0, 0, 0), (0, 2, 0), (2, 1, 0)],
        [(2, 0, 0), (2, 2, 0), (0, 1, 0)],
    ],
)
def test_cut_triangle_keeps_area_and_sides(points):
    mesh = _triangle_mesh(points)
    left, right, count = mesh.split_mesh(VertexUtilsX(), 1.0)
    assert count == 1
    assert left.num_faces() + right.num_faces() == 3
    assert _area_xy(left) + _area_xy(right) == pytest.approx(_area_xy(mesh))
    assert all(v.x <= 1.0 for v in left.vertices)
    assert all(v.x >= 1.0 for v in right.vertices)
    _faces_in_range(left)
    _faces_in_range(right)


def test_cut_texture_coordinates_follow_positions():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    left, right, _ = mesh.split_mesh(VertexUtilsY(), 1.0)
    for half in (left, right):
        for f in half.faces:
            for vi, ti in ((f.index_a, f.texture_index_a),
                           (f.index_b, f.texture_index_b),
                           (f.index_c, f.texture_index_c)):
                v = half.vertices[vi]
                t = half.texture_vertices[ti]
                assert t.x == pytest.approx(v.x / 4.0)
                assert t.y == pytest.approx(v.y / 4.0)


def test_other_vertices_on_plane_stay_with_lone_side():
    mesh = _triangle_mesh([(0, 0, 0), (1, 0, 0), (1, 2, 0)])
    left, right, count = mesh.split_mesh(VertexUtilsX(), 1.0)
    assert count == 1
    assert left.num_faces() == 1
    assert right.num_faces() == 0
    assert set(left.vertices) == set(mesh.vertices)


def test_split_copies_materials():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    left, right, _ = mesh.split_mesh(VertexUtilsX(), 1.0)
    assert left.materials == mesh.materials
    assert right.materials == mesh.materials
    left.materials[0].texture_file = "other.png"
    assert mesh.materials[0].texture_file == "tex.png"
    assert right.materials[0].texture_file == "tex.png"


def test_split_preserves_material_index():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    mesh.faces[0].material_index = 3
    left, right, _ = mesh.split_mesh(VertexUtilsX(), 1.0)
    assert {f.material_index for f in left.faces + right.faces} == {3}


def test_calc_bounds():
    mesh = _triangle_mesh([(-1, 5, 2), (4, -3, 7), (0, 0, -6)])
    box = mesh.calc_bounds()
    assert box.min == Vertex3(-1, -3, -6)
    assert box.max == Vertex3(4, 5, 7)
    assert mesh.bounds == box


def test_calc_bounds_empty_is_inverted():
    box = Mesh().calc_bounds()
    assert box.min == Vertex3(MAX_VALUE, MAX_VALUE, MAX_VALUE)
    assert box.max == Vertex3(MIN_VALUE, MIN_VALUE, MIN_VALUE)


def test_baricenter():
    mesh = _triangle_mesh([(0, 0, 0), (3, 0, 0), (0, 3, 6)])
    assert mesh.baricenter() == Vertex3(1.0, 1.0, 2.0)


def test_baricenter_empty_raises():
    with pytest.raises(ValueError):
        Mesh().baricenter()


def test_remove_unused_drops_and_reindexes():
    verts = [Vertex3(9, 9, 9), Vertex3(0, 0, 0), Vertex3(1, 0, 0), Vertex3(0, 1, 0)]
    uvs = [Vertex2(0.5, 0.5), Vertex2(0, 0), Vertex2(1, 0), Vertex2(0, 1)]
    mesh = Mesh(verts, uvs, [FaceT(1, 2, 3, 1, 2, 3, 0)], [Material()])
    mesh.remove_unused()
    assert mesh.vertices == verts[1:]
    assert mesh.texture_vertices == uvs[1:]
    f = mesh.faces[0]
    assert (f.index_a, f.index_b, f.index_c) == (0, 1, 2)
    assert (f.texture_index_a, f.texture_index_b, f.texture_index_c) == (0, 1, 2)


def test_remove_unused_merges_duplicates():
    verts = [Vertex3(0, 0, 0), Vertex3(1, 0, 0), Vertex3(0, 1, 0), Vertex3(0, 0, 0)]
    uvs = [Vertex2(0, 0), Vertex2(1, 0), Vertex2(0, 1)]
    mesh = Mesh(verts, uvs, [FaceT(3, 1, 2, 0, 1, 2, 0)], [Material()])
    mesh.remove_unused()
    assert len(mesh.vertices) == 3
    assert mesh.vertices[mesh.faces[0].index_a] == Vertex3(0, 0, 0)


def test_faces_by_material():
    mesh = _triangle_mesh([(0, 0, 0), (2, 0, 0), (0, 2, 0)])
    left, right, _ = mesh.split_mesh(VertexUtilsX(), 1.0)
    assert left.faces_by_material() == [list(range(left.num_faces()))]
    assert Mesh().faces_by_material() == [[]]