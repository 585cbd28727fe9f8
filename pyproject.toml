[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "meshtiler"
version = "0.1.0"
description = "Split textured triangle meshes into square tiles with repacked texture atlases and reduced textures."
requires-python = ">=3.10"
keywords = ["mesh", "tiling", "obj", "ply", "texture atlas", "level of detail", "3d"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Modeling",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
meshtiler = "meshtiler.splitter:main"

[tool.hatch.build.targets.wheel]
packages = ["meshtiler"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
