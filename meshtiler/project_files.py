"""Project side files: box offsets, projection text and split folder names."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

SPLIT_FOLDER = "SplitMesh"
SPLIT_NAME_PREFIX = "Split_"
LOD_NAME_PREFIX = "LOD_"
LOD_NAME = "LOD"
TILES_3D_NAME = "3DTiles"
SPLIT_SEARCH = r".*\.obj|.*\.ply"

Triple = tuple[float, float, float]


@dataclass(frozen=True)
class BoxData:
    """Contents of a box file: the mesh offset and its bounds."""

    offset: Triple = (0.0, 0.0, 0.0)
    minimum: Triple = (0.0, 0.0, 0.0)
    maximum: Triple = (0.0, 0.0, 0.0)


class CopiedFiles(NamedTuple):
    box_file: Path
    projection_file: Path


def _parse_box_line(line: str) -> Triple:
    """Read up to three numbers following a leading label; missing ones are 0."""
    values = [0.0, 0.0, 0.0]
    tokens = line.split()[1:4]
    for i, token in enumerate(tokens):
        try:
            values[i] = float(token)
        except ValueError:
            break
    return values[0], values[1], values[2]


def read_box_file(path) -> BoxData:
    """Parse a box file: lines with minimum, maximum and offset, each ``label x y z``.

    Raises OSError if the file cannot be opened.
    """
    with open(path, encoding="utf-8", errors="replace") as fh:
        lines = fh.read().splitlines()
    lines += [""] * (3 - len(lines))
    minimum, maximum, offset = (_parse_box_line(line) for line in lines[:3])
    return BoxData(offset=offset, minimum=minimum, maximum=maximum)


def read_projection_wkt(path) -> str:
    """Whole text of a projection file, or an empty string if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def copy_box_and_proj(ifname) -> CopiedFiles:
    """Copy a mesh's box and projection files into its split folder.

    The box file is the mesh path with a ``.box`` extension and the
    projection file is the mesh path with ``.prj`` appended; they become
    ``offset.box`` and ``mesh.prj`` in the ``SplitMesh`` folder next to the
    mesh. Source files that do not exist are skipped.
    """
    mesh_path = Path(ifname)
    out_folder = mesh_path.parent / SPLIT_FOLDER
    out_folder.mkdir(parents=True, exist_ok=True)

    box_in = mesh_path.with_suffix(".box")
    box_out = out_folder / "offset.box"
    prj_in = mesh_path.with_name(mesh_path.name + ".prj")
    prj_out = out_folder / "mesh.prj"

    for src, dst in ((box_in, box_out), (prj_in, prj_out)):
        if src.is_file():
            shutil.copyfile(src, dst)

    return CopiedFiles(box_out, prj_out)