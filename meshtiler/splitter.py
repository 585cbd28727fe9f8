"""Cutting a textured mesh into a grid of tiles written as PLY files."""

from __future__ import annotations

import argparse
import logging
import math
import re
import shutil
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import NamedTuple

from PIL import Image

from .clusters import (
    TextureImage,
    cluster_rect,
    clamp,
    edges_mapper,
    faces_clusters,
    faces_mapper,
    max_min_area_rect,
    next_power_of_two,
)
from .geometry import Axis, Box3, FaceT, Vertex2, VertexUtilsX, VertexUtilsY
from .mesh import Mesh, _add_index
from .meshio import read_obj, read_ply, regenerate_textures_copy, write_ply
from .project_files import SPLIT_NAME_PREFIX, SPLIT_SEARCH

log = logging.getLogger(__name__)

MAX_THREADS = 4
MIN_ATLAS_SIZE = 32

_SPLIT_PATTERN = re.compile(SPLIT_NAME_PREFIX + SPLIT_SEARCH)
_X_UTILS = VertexUtilsX()
_Y_UTILS = VertexUtilsY()


class SplitTiles(NamedTuple):
    meshes: list[Mesh]
    cut_count: int


def recursive_split_xy(mesh: Mesh, depth: int, bounds: Box3) -> SplitTiles:
    """Cut ``mesh`` into quadrants ``depth`` times over, within ``bounds``.

    Returns the non-empty tiles and the number of faces that were cut.
    """
    tiles: list[Mesh] = []

    def split(current: Mesh, level: int, box: Box3) -> int:
        if level == 0:
            if current.num_faces() > 0:
                tiles.append(current)
            return 0

        center = box.center()
        left, right, count = current.split_mesh(_X_UTILS, center.x)
        top_left, top_right, cut = left.split_mesh(_Y_UTILS, center.y)
        count += cut
        bottom_left, bottom_right, cut = right.split_mesh(_Y_UTILS, center.y)
        count += cut

        x_low, x_high = box.split_box(Axis.X)
        y_bounds1 = x_low.split_box(Axis.Y)
        y_bounds2 = x_high.split_box(Axis.Y)

        for part, part_box in (
            (top_left, y_bounds1[0]),
            (bottom_left, y_bounds2[0]),
            (top_right, y_bounds1[1]),
            (bottom_right, y_bounds2[1]),
        ):
            if part.num_faces() > 0:
                count += split(part, level - 1, part_box)
        return count

    total = split(mesh, depth, bounds)
    return SplitTiles(tiles, total)


def _read_mesh(path: Path) -> Mesh:
    suffix = path.suffix.lower()
    if suffix == ".obj":
        return read_obj(path)
    if suffix == ".ply":
        return read_ply(path)
    raise ValueError(f"unsupported mesh format: {path.suffix!r}")


# ------------------------------------------------------------ atlas packing


def _intersects(a, b) -> bool:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return not (bx >= ax + aw or bx + bw <= ax or by >= ay + ah or by + bh <= ay)


def _contains(outer, inner) -> bool:
    ox, oy, ow, oh = outer
    ix, iy, iw, ih = inner
    return ox <= ix and oy <= iy and ix + iw <= ox + ow and iy + ih <= oy + oh


def _split_free(free, node):
    if not _intersects(free, node):
        return [free]
    fx, fy, fw, fh = free
    nx, ny, nw, nh = node
    pieces = []
    if nx > fx:
        pieces.append((fx, fy, nx - fx, fh))
    if nx + nw < fx + fw:
        pieces.append((nx + nw, fy, fx + fw - nx - nw, fh))
    if ny > fy:
        pieces.append((fx, fy, fw, ny - fy))
    if ny + nh < fy + fh:
        pieces.append((fx, ny + nh, fw, fy + fh - ny - nh))
    return pieces


class _MaxRectsPacker:
    """Rectangle packer choosing the free area that fits most tightly."""

    def __init__(self, width: int, height: int) -> None:
        self.free = [(0, 0, width, height)]

    def insert(self, width: int, height: int) -> tuple[int, int] | None:
        best = None
        best_key = None
        for fx, fy, fw, fh in self.free:
            if fw >= width and fh >= height:
                key = (fw * fh - width * height, min(fw - width, fh - height))
                if best_key is None or key < best_key:
                    best, best_key = (fx, fy), key
        if best is None:
            return None

        node = (best[0], best[1], width, height)
        pieces = [piece for free in self.free for piece in _split_free(free, node)]
        self.free = [
            r for i, r in enumerate(pieces)
            if not any(j != i and _contains(o, r) and (o != r or j < i)
                       for j, o in enumerate(pieces))
        ]
        return best


def _copy_clipped(src: TextureImage, dest: TextureImage, sx: int, sy: int,
                  width: int, height: int, dx: int, dy: int) -> None:
    width = min(width, src.width - sx, dest.width - dx)
    height = min(height, src.height - sy, dest.height - dy)
    if sx < 0 or sy < 0 or dx < 0 or dy < 0 or width <= 0 or height <= 0:
        return
    src.copy_rect(dest, sx, sy, width, height, dx, dy)


def _try_pack(mesh: Mesh, texture: TextureImage, clusters, rects, edge: int,
              material_index: int):
    packer = _MaxRectsPacker(edge, edge)
    atlas = TextureImage(edge, edge)
    new_uvs: dict[Vertex2, int] = {}
    faces: list[FaceT] = [replace(f) for f in mesh.faces]
    tw, th = texture.width, texture.height
    scale_x = tw / edge
    scale_y = th / edge

    for cluster, bounds in zip(clusters, rects):
        cluster_x = math.floor(bounds.x * (tw - 1))
        cluster_y = math.floor(bounds.y * (th - 1))
        cluster_w = int(max(math.ceil(bounds.width * tw), 1))
        cluster_h = int(max(math.ceil(bounds.height * th), 1))

        placed = packer.insert(cluster_w, cluster_h)
        if placed is None:
            return None
        px, py = placed

        source_y = max(th - (cluster_y + cluster_h), 1)
        dest_y = max(edge - (py + cluster_h), 0)
        _copy_clipped(texture, atlas, cluster_x, source_y, cluster_w, cluster_h,
                      px, dest_y)

        rel_x = px / edge
        rel_y = py / edge
        for face_index in cluster:
            face = faces[face_index]
            indices = []
            for ti in (face.texture_index_a, face.texture_index_b,
                       face.texture_index_c):
                vt = mesh.texture_vertices[ti]
                dx = max(0.0, vt.x - bounds.x) * scale_x
                dy = max(0.0, vt.y - bounds.y) * scale_y
                uv = Vertex2(clamp(rel_x + dx, 0.0, 1.0), clamp(rel_y + dy, 0.0, 1.0))
                indices.append(_add_index(new_uvs, uv))
            face.texture_index_a, face.texture_index_b, face.texture_index_c = indices
            face.material_index = material_index

    return faces, list(new_uvs), atlas


def _bin_pack_textures(mesh: Mesh, target_folder: Path, material_index: int,
                       clusters, obj_filename) -> Path | None:
    material = mesh.materials[material_index]
    source = Path(material.texture_file_full_path)
    if not source.is_file():
        return None

    with Image.open(source) as img:
        rgba = img.convert("RGBA")
        texture = TextureImage(rgba.width, rgba.height, rgba.tobytes())

    rects = [cluster_rect(mesh, cluster) for cluster in clusters]
    stats = max_min_area_rect(rects, texture.width, texture.height)

    edge = max(next_power_of_two(int(math.sqrt(stats.texture_area))), MIN_ATLAS_SIZE)
    if edge < stats.max_width:
        edge = next_power_of_two(int(stats.max_width))
    if edge < stats.max_height:
        edge = next_power_of_two(int(stats.max_height))

    while True:
        packed = _try_pack(mesh, texture, clusters, rects, edge, material_index)
        if packed is not None:
            break
        log.info("Texture restarted")
        edge *= 2

    faces, uvs, atlas = packed
    mesh.faces = faces
    mesh.texture_vertices = uvs

    target = Path(target_folder) / (Path(obj_filename).stem + ".png")
    Image.frombytes("RGBA", (atlas.width, atlas.height), bytes(atlas.pixels)).save(
        target, "PNG")

    mesh.materials[0].texture_file_full_path = str(target)
    mesh.materials[0].texture_file = target.name
    return target


def _regenerate_textures(mesh: Mesh, target_folder: Path, obj_filename) -> Path | None:
    """Pack the texture regions a tile uses into a new, smaller atlas."""
    result = None
    if not mesh.materials:
        return None
    for material_index, face_indexes in enumerate(mesh.faces_by_material()):
        if not face_indexes:
            continue
        mapper = faces_mapper(edges_mapper(mesh, face_indexes))
        clusters = faces_clusters(face_indexes, mapper)
        clusters.sort(key=len, reverse=True)
        result = _bin_pack_textures(mesh, target_folder, material_index,
                                    clusters, obj_filename)
    return result


# ------------------------------------------------------------ splitting


def split_up_mesh(ifname, out_folder, split_div: int, force_square: bool,
                  lod: int) -> list[Path]:
    """Split a mesh file into ``4 ** split_div`` tiles written as PLY files.

    Each tile ``Split_<n>.ply`` in ``out_folder`` gets its own texture
    ``Split_<n>.png``: a repacked atlas at level 0, a (possibly reduced)
    copy of the whole texture at lower levels. Returns the PLY files.
    """
    source = Path(ifname)
    out_folder = Path(out_folder)
    mesh = _read_mesh(source)

    bounds = mesh.calc_bounds()
    if force_square:
        if bounds.width() > bounds.height():
            bounds = Box3(bounds.min, replace(bounds.max, y=bounds.min.y + bounds.width()))
        elif bounds.width() < bounds.height():
            bounds = Box3(bounds.min, replace(bounds.max, x=bounds.min.x + bounds.height()))

    tiles = recursive_split_xy(mesh, split_div, bounds).meshes

    for number, tile in enumerate(tiles, start=1):
        tile.mesh_file = str(out_folder / f"{SPLIT_NAME_PREFIX}{number}.ply")

    if split_div == 0 and len(tiles) == 1:
        tile = tiles[0]
        ply = write_ply(tile, tile.mesh_file)
        original_texture = source.with_suffix(".png")
        if original_texture.is_file():
            shutil.copyfile(original_texture, Path(tile.mesh_file).with_suffix(".png"))
        return [ply]

    def process(tile: Mesh) -> Path:
        if lod > 0:
            regenerate_textures_copy(tile, out_folder, tile.mesh_file)
        else:
            _regenerate_textures(tile, out_folder, tile.mesh_file)
        return write_ply(tile, tile.mesh_file)

    if not tiles:
        return []
    with ThreadPoolExecutor(max_workers=min(MAX_THREADS, len(tiles))) as pool:
        return list(pool.map(process, tiles))


def find_split_files(folder) -> list[Path]:
    """Files directly in ``folder`` whose names match the split file pattern."""
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return sorted(
        (p for p in folder.iterdir() if p.is_file() and _SPLIT_PATTERN.fullmatch(p.name)),
        key=lambda p: p.name,
    )


def do_obj_split_on_obj(obj_file, split_div: int, force_square: bool,
                        lod: int) -> list[Path]:
    """Split a mesh into tiles beside it, reusing tiles that already exist."""
    folder = Path(obj_file).parent
    found = find_split_files(folder)
    if not found:
        split_up_mesh(obj_file, folder, split_div, force_square, lod)
        found = find_split_files(folder)
        if not found:
            raise RuntimeError(f"splitting {obj_file} produced no tiles")
    return found


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="meshtiler-split",
        description="Split a textured mesh into a grid of PLY tiles beside it.",
    )
    parser.add_argument("mesh", help="input OBJ or PLY mesh")
    parser.add_argument("--divisions", type=int, default=2,
                        help="split levels: 1 gives 4 tiles, 2 gives 16 (default 2)")
    parser.add_argument("--no-square", action="store_true",
                        help="do not force square tiles")
    parser.add_argument("--lod", type=int, default=0,
                        help="level of detail of the mesh (default 0)")
    args = parser.parse_args(argv)

    try:
        files = do_obj_split_on_obj(args.mesh, args.divisions,
                                    not args.no_square, args.lod)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for path in files:
        print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())