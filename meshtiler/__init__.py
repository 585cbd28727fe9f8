"""Split textured triangle meshes into tiles with their own textures."""

__version__ = "0.1.0"

__all__ = ["clusters", "geometry", "mesh", "meshio", "project_files", "splitter", "texture"]