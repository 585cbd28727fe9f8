"""Reading and writing textured meshes as OBJ and PLY files.

Meshes are written the way the tiling pipeline expects them: texture
coordinates are stored per face corner, the texture image is named in an
OBJ material library or a ``TextureFile`` comment in the PLY header, and
coordinates pass through single precision on their way out.
"""

from __future__ import annotations

import shutil
import struct
from pathlib import Path

from .geometry import FaceT, Material, Vertex2, Vertex3
from .mesh import Mesh
from .texture import build_downsampled_textures, read_png, write_png

MATERIAL_FILE_EXTENSION = ".obj.mtl"
TEXTURE_COMMENT = "TextureFile"
MAX_COPY_TEXTURE_SIZE = 512
MIN_TEXTURE_SIZE = 256

_PLY_TYPES = {
    "char": "b", "int8": "b",
    "uchar": "B", "uint8": "B",
    "short": "h", "int16": "h",
    "ushort": "H", "uint16": "H",
    "int": "i", "int32": "i",
    "uint": "I", "uint32": "I",
    "float": "f", "float32": "f",
    "double": "d", "float64": "d",
}

_Corner = tuple[int, Vertex2]


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _build_mesh(vertices: list[Vertex3], polygons: list[list[_Corner]],
                texture_file: str | None, directory: Path) -> Mesh:
    """Assemble a mesh from polygons given as (vertex index, uv) corners.

    Polygons are fan-triangulated. Texture vertices are the distinct corner
    coordinates in ascending order.
    """
    triangles: list[tuple[_Corner, _Corner, _Corner]] = []
    for polygon in polygons:
        if len(polygon) < 3:
            raise ValueError("a face needs at least three corners")
        first = polygon[0]
        triangles.extend((first, b, c) for b, c in zip(polygon[1:], polygon[2:]))

    uvs = sorted({uv for tri in triangles for _, uv in tri},
                 key=lambda uv: (uv.x, uv.y))
    uv_index = {uv: i for i, uv in enumerate(uvs)}

    faces = []
    for (va, ta), (vb, tb), (vc, tc) in triangles:
        for vi in (va, vb, vc):
            if not 0 <= vi < len(vertices):
                raise ValueError(f"vertex index {vi} out of range")
        faces.append(FaceT(va, vb, vc, uv_index[ta], uv_index[tb], uv_index[tc], 0))

    materials = []
    if texture_file is not None:
        materials.append(Material(texture_file, str(directory / texture_file)))
    return Mesh(vertices=vertices, texture_vertices=uvs, faces=faces,
                materials=materials)


def _writable_faces(mesh: Mesh) -> list[FaceT]:
    """Compact the mesh and return the faces that form proper triangles."""
    mesh.remove_unused()
    return [f for f in mesh.faces
            if len({f.index_a, f.index_b, f.index_c}) == 3]


# ---------------------------------------------------------------- OBJ


def _read_texture_from_mtl(mtl_path: Path) -> str | None:
    try:
        text = mtl_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    for line in text.splitlines():
        parts = line.split()
        if parts and parts[0] == "map_Kd" and len(parts) > 1:
            return parts[-1]
    return None


def _obj_index(token: str, count: int) -> int:
    value = int(token)
    return value - 1 if value > 0 else count + value


def read_obj(path) -> Mesh:
    """Read a Wavefront OBJ file with its material library's texture."""
    path = Path(path)
    vertices: list[Vertex3] = []
    uvs: list[Vertex2] = []
    polygons: list[list[_Corner]] = []
    texture_file: str | None = None

    with open(path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            parts = line.split()
            if not parts or parts[0].startswith("#"):
                continue
            keyword, args = parts[0], parts[1:]
            try:
                if keyword == "v":
                    vertices.append(Vertex3(*(float(a) for a in args[:3])))
                elif keyword == "vt":
                    coords = [float(a) for a in args[:2]] + [0.0, 0.0]
                    uvs.append(Vertex2(coords[0], coords[1]))
                elif keyword == "f":
                    polygon = []
                    for corner in args:
                        fields = corner.split("/")
                        vi = _obj_index(fields[0], len(vertices))
                        if len(fields) > 1 and fields[1]:
                            uv = uvs[_obj_index(fields[1], len(uvs))]
                        else:
                            uv = Vertex2()
                        polygon.append((vi, uv))
                    polygons.append(polygon)
                elif keyword == "mtllib" and texture_file is None:
                    mtl_name = line.strip()[len("mtllib"):].strip()
                    texture_file = _read_texture_from_mtl(path.parent / mtl_name)
            except (ValueError, IndexError, TypeError) as exc:
                raise ValueError(f"malformed OBJ line: {line.strip()!r}") from exc

    return _build_mesh(vertices, polygons, texture_file, path.parent)


def write_obj(mesh: Mesh, path) -> Path:
    """Write the mesh as OBJ, plus a ``.obj.mtl`` library naming its texture.

    Unused vertices are removed from ``mesh`` first.
    """
    path = Path(path)
    faces = _writable_faces(mesh)
    lines: list[str] = []

    if mesh.materials:
        mtl_path = path.with_name(path.stem + MATERIAL_FILE_EXTENSION)
        mtl_path.write_text(
            "newmtl mat0\nKa 1 1 1\nKd 1 1 1\n"
            f"map_Kd {mesh.materials[0].texture_file}\n",
            encoding="utf-8",
        )
        lines.append(f"mtllib {mtl_path.name}")

    lines.extend(f"v {_f32(v.x)!r} {_f32(v.y)!r} {_f32(v.z)!r}" for v in mesh.vertices)
    lines.extend(f"vt {_f32(t.x)!r} {_f32(t.y)!r}" for t in mesh.texture_vertices)
    if mesh.materials:
        lines.append("usemtl mat0")
    lines.extend(
        f"f {f.index_a + 1}/{f.texture_index_a + 1} "
        f"{f.index_b + 1}/{f.texture_index_b + 1} "
        f"{f.index_c + 1}/{f.texture_index_c + 1}"
        for f in faces
    )
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------- PLY


def write_ply(mesh: Mesh, path) -> Path:
    """Write the mesh as a binary PLY with per-face texture coordinates.

    The file takes the path with a ``.ply`` extension; its header names the
    texture ``<stem>.png``. Unused vertices are removed from ``mesh`` first.
    """
    ply_path = Path(path).with_suffix(".ply")
    faces = _writable_faces(mesh)

    header = "\n".join([
        "ply",
        "format binary_little_endian 1.0",
        f"comment {TEXTURE_COMMENT} {Path(path).stem}.png",
        f"element vertex {len(mesh.vertices)}",
        "property double x",
        "property double y",
        "property double z",
        f"element face {len(faces)}",
        "property list uchar uint vertex_indices",
        "property list uchar float texcoord",
        "end_header",
        "",
    ])

    body = bytearray()
    for v in mesh.vertices:
        body += struct.pack("<ddd", _f32(v.x), _f32(v.y), _f32(v.z))
    for f in faces:
        body += struct.pack("<B3I", 3, f.index_a, f.index_b, f.index_c)
        coords = []
        for ti in (f.texture_index_a, f.texture_index_b, f.texture_index_c):
            uv = mesh.texture_vertices[ti]
            coords += [uv.x, uv.y]
        body += struct.pack("<B6f", 6, *coords)

    ply_path.write_bytes(header.encode("ascii") + bytes(body))
    return ply_path


def _parse_ply_header(raw: bytes):
    marker = raw.find(b"end_header")
    if not raw.startswith(b"ply") or marker < 0:
        raise ValueError("not a PLY file")
    newline = raw.find(b"\n", marker)
    body_start = len(raw) if newline < 0 else newline + 1
    header_lines = raw[:marker].decode("ascii", errors="replace").splitlines()

    fmt = None
    comments: list[str] = []
    elements: list[tuple[str, int, list[tuple[str, str, str | None]]]] = []
    for line in header_lines[1:]:
        parts = line.split()
        if not parts:
            continue
        if parts[0] == "format":
            fmt = parts[1] if len(parts) > 1 else None
        elif parts[0] in ("comment", "obj_info"):
            comments.append(line.strip()[len(parts[0]):].strip())
        elif parts[0] == "element":
            if len(parts) != 3:
                raise ValueError(f"bad element line: {line!r}")
            elements.append((parts[1], int(parts[2]), []))
        elif parts[0] == "property":
            if not elements:
                raise ValueError("property before any element")
            if parts[1] == "list":
                if len(parts) != 5 or parts[2] not in _PLY_TYPES \
                        or parts[3] not in _PLY_TYPES:
                    raise ValueError(f"bad list property: {line!r}")
                elements[-1][2].append((parts[4], parts[3], parts[2]))
            else:
                if len(parts) != 3 or parts[1] not in _PLY_TYPES:
                    raise ValueError(f"bad property: {line!r}")
                elements[-1][2].append((parts[2], parts[1], None))
    if fmt not in ("ascii", "binary_little_endian", "binary_big_endian"):
        raise ValueError(f"unsupported PLY format: {fmt}")
    return fmt, comments, elements, raw[body_start:]


def _read_ply_elements(fmt, elements, body: bytes) -> dict[str, list[dict]]:
    result: dict[str, list[dict]] = {}
    if fmt == "ascii":
        tokens = iter(body.decode("ascii", errors="replace").split())

        def scalar(type_name: str):
            token = next(tokens)
            return float(token) if _PLY_TYPES[type_name] in "fd" else int(token)
    else:
        order = "<" if fmt == "binary_little_endian" else ">"
        offset = 0

        def scalar(type_name: str):
            nonlocal offset
            code = order + _PLY_TYPES[type_name]
            (value,) = struct.unpack_from(code, body, offset)
            offset += struct.calcsize(code)
            return value

    try:
        for name, count, props in elements:
            rows = []
            for _ in range(count):
                row = {}
                for prop_name, type_name, count_type in props:
                    if count_type is None:
                        row[prop_name] = scalar(type_name)
                    else:
                        n = int(scalar(count_type))
                        row[prop_name] = [scalar(type_name) for _ in range(n)]
                rows.append(row)
            result[name] = rows
    except (StopIteration, struct.error, ValueError) as exc:
        raise ValueError("PLY body is truncated or malformed") from exc
    return result


def read_ply(path) -> Mesh:
    """Read a PLY mesh with per-face ``texcoord`` lists and a texture comment."""
    path = Path(path)
    fmt, comments, elements, body = _parse_ply_header(path.read_bytes())
    data = _read_ply_elements(fmt, elements, body)

    try:
        vertices = [Vertex3(float(r["x"]), float(r["y"]), float(r["z"]))
                    for r in data.get("vertex", [])]
    except KeyError as exc:
        raise ValueError("vertex element lacks x, y or z") from exc

    polygons: list[list[_Corner]] = []
    for row in data.get("face", []):
        indices = row.get("vertex_indices", row.get("vertex_index"))
        if indices is None:
            raise ValueError("face element lacks vertex indices")
        coords = row.get("texcoord", [])
        polygon = []
        for k, vi in enumerate(indices):
            if len(coords) >= 2 * k + 2:
                uv = Vertex2(float(coords[2 * k]), float(coords[2 * k + 1]))
            else:
                uv = Vertex2()
            polygon.append((int(vi), uv))
        polygons.append(polygon)

    texture_file = None
    for comment in comments:
        parts = comment.split(maxsplit=1)
        if len(parts) == 2 and parts[0] == TEXTURE_COMMENT:
            texture_file = parts[1].strip()
            break

    return _build_mesh(vertices, polygons, texture_file, path.parent)


# ---------------------------------------------------------------- textures


def regenerate_textures_copy(mesh: Mesh, target_folder, obj_filename) -> Path | None:
    """Give a split mesh its own copy of the shared texture.

    The copy is ``<stem of obj_filename>.png`` in ``target_folder``. Textures
    up to 512 pixels wide are copied unchanged; larger ones are written at a
    quarter of their size (or the smallest level above 256 pixels). Returns
    the new file, or None if the mesh's texture does not exist.
    """
    if not mesh.materials:
        raise ValueError("mesh has no material")
    source = Path(mesh.materials[0].texture_file_full_path)
    if not source.is_file():
        return None

    target = Path(target_folder) / (Path(obj_filename).stem + ".png")
    image = read_png(source)

    if image.width <= MAX_COPY_TEXTURE_SIZE:
        shutil.copyfile(source, target)
        return target

    textures, sizes = build_downsampled_textures(image.width, image.data,
                                                 MIN_TEXTURE_SIZE)
    depth = 1
    texture = textures[depth] if depth < len(textures) else textures[-1]
    size = sizes[depth] if depth < len(sizes) else sizes[-1]
    write_png(target, size, size, texture)
    return target