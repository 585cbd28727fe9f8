# meshtiler

meshtiler cuts a textured triangle mesh into a grid of smaller tiles.
Triangles that cross a cut are split in two, and texture coordinates are
interpolated along the cut. Every tile gets its own texture. At level of
detail 0 this is a packed atlas that holds only the texture regions the tile
uses. At coarser levels it is a copy of the whole image, reduced in size if
the image is wider than 512 pixels.

## Installation

```
pip install .
```

The only runtime dependency is Pillow, which reads and writes the PNG
textures.

## Command line

```
meshtiler path/to/model.obj --divisions 2 --lod 0
```

The input may be an OBJ file (its texture is taken from the `map_Kd` entry
of its material library) or a PLY file (its texture is taken from a
`TextureFile` header comment). The mesh is split recursively in X and Y:

| `--divisions` | tiles (at most) |
|---------------|-----------------|
| 1             | 4               |
| 2             | 16              |
| 3             | 64              |

Empty tiles are dropped. The mesh bounds are made square unless you pass
`--no-square`. The tiles are written next to the input as binary
`Split_<n>.ply` files, each with a matching `Split_<n>.png`. If files named
`Split_*.obj` or `Split_*.ply` already exist in that folder, they are listed
and nothing is split again. The command prints the paths of the tile files.
Run `meshtiler --help` to see all options.

## Library use

```python
from meshtiler.geometry import VertexUtilsX
from meshtiler.meshio import read_obj, write_ply
from meshtiler.splitter import recursive_split_xy, split_up_mesh

mesh = read_obj("model.obj")
bounds = mesh.calc_bounds()

left, right, cut_count = mesh.split_mesh(VertexUtilsX(), bounds.center().x)
tiles = recursive_split_xy(mesh, 2, bounds).meshes
write_ply(tiles[0], "tile.ply")

split_up_mesh("model.obj", "out", 2, True, 0)   # returns the written PLY paths
```

The modules are:

- `meshtiler.geometry`: `Vertex2`, `Vertex3`, `Box3`, `FaceT`, `Material`,
  and the per-axis helpers `VertexUtilsX`, `VertexUtilsY` and `VertexUtilsZ`,
  which find where an edge crosses a cutting plane.
- `meshtiler.mesh`: the `Mesh` class. `split_mesh` cuts a mesh along a plane,
  `calc_bounds` and `baricenter` measure it, and `remove_unused` drops vertices
  that no face uses.
- `meshtiler.clusters`: groups faces into texture islands that share an edge
  (`edges_mapper`, `faces_mapper`, `faces_clusters`). It also has the helpers
  used to pack those islands into an atlas (`cluster_rect`,
  `max_min_area_rect`, `next_power_of_two`, `clamp`, `TextureImage`).
- `meshtiler.texture`: reads and writes PNG files (`read_png`, `write_png`,
  `write_png_rgba`). It builds chains of textures, each reduced by 2×2
  averaging (`build_downsampled_textures`, `generate_all_textures`).
- `meshtiler.project_files`: reads `.box` offset files (`read_box_file`) and
  `.prj` projection text (`read_projection_wkt`). `copy_box_and_proj` copies
  both into the `SplitMesh` folder.
- `meshtiler.meshio`: reads and writes OBJ files, and reads and writes PLY
  files with per-face texture coordinates. `regenerate_textures_copy` gives a
  tile its own copy of the texture.
- `meshtiler.splitter`: recursive tiling, writing the tiles to disk, and the
  command line entry point.

## What it does not do

meshtiler only produces tiles and their textures. It does not:

- decimate meshes to build coarser levels of detail;
- convert coordinates between projections. The projection text is read but
  not interpreted;
- write scene layer packages or 3D Tiles.

## Tests

```
pip install .[test]
pytest
```