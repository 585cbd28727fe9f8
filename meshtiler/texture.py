"""Texture image helpers: PNG reading/writing and box-filtered downsampling.

Pixel buffers are raw bytes, rows ordered top to bottom, three bytes (RGB)
per pixel unless stated otherwise. Textures are assumed to be square.
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple

from PIL import Image


class PngImage(NamedTuple):
    data: bytes
    width: int
    height: int


class TexturePyramid(NamedTuple):
    textures: list[bytes]
    sizes: list[int]
    source_file: Path


def avg4(c1: int, c2: int, c3: int, c4: int) -> int:
    """Rounded average of four 8-bit values."""
    return ((c1 + c2 + c3 + c4 + 2) // 4) & 0xFF


def _halve(size: int, data: bytes) -> bytes:
    s = size // 2
    stride = size * 3
    out = bytearray(s * s * 3)
    row_len = s * 3
    for y in range(s):
        top = data[2 * y * stride : (2 * y + 1) * stride]
        bottom = data[(2 * y + 1) * stride : (2 * y + 2) * stride]
        row = bytearray(row_len)
        for c in range(3):
            row[c::3] = bytes(
                avg4(p0, p1, p2, p3)
                for p0, p1, p2, p3 in zip(
                    top[c::6], top[c + 3 :: 6], bottom[c::6], bottom[c + 3 :: 6]
                )
            )
        out[y * row_len : (y + 1) * row_len] = row
    return bytes(out)


def build_downsampled_textures(
    size: int, data: bytes, min_size: int
) -> tuple[list[bytes], list[int]]:
    """Halve an RGB texture repeatedly while it is larger than ``min_size``.

    Returns the downsampled textures and their edge sizes, largest first;
    the input texture itself is not included.
    """
    if len(data) < size * size * 3:
        raise ValueError("texture data is shorter than size*size*3 bytes")
    textures: list[bytes] = []
    sizes: list[int] = []
    while size > min_size:
        if size % 2:
            raise ValueError(f"texture size {size} is not divisible by two")
        data = _halve(size, data)
        size //= 2
        textures.append(data)
        sizes.append(size)
    return textures, sizes


def remove_alpha_channel(data: bytes) -> bytes:
    """Convert RGBA bytes to RGB bytes."""
    if len(data) % 4:
        raise ValueError("RGBA data length must be a multiple of 4")
    out = bytearray(len(data) // 4 * 3)
    for c in range(3):
        out[c::3] = data[c::4]
    return bytes(out)


def read_png(path) -> PngImage:
    """Read a PNG file as RGB bytes. Raises OSError if it cannot be read."""
    with Image.open(path) as img:
        rgb = img.convert("RGB")
        return PngImage(rgb.tobytes(), rgb.width, rgb.height)


def write_png(path, width: int, height: int, data: bytes) -> None:
    """Write RGB bytes as an opaque RGBA PNG."""
    if len(data) != width * height * 3:
        raise ValueError("RGB data length does not match width*height*3")
    Image.frombytes("RGB", (width, height), bytes(data)).convert("RGBA").save(
        path, "PNG"
    )


def write_png_rgba(path, width: int, height: int, data: bytes) -> None:
    """Write RGBA bytes as a PNG."""
    if len(data) != width * height * 4:
        raise ValueError("RGBA data length does not match width*height*4")
    Image.frombytes("RGBA", (width, height), bytes(data)).save(path, "PNG")


def _with_name_suffix(path: Path, suffix: str) -> Path:
    return path.with_name(path.stem + suffix + path.suffix)


def generate_all_textures(ifname, min_size: int = 256) -> TexturePyramid:
    """Load the texture next to a mesh file and build its downsampled levels.

    The texture is the mesh path with a ``.png`` extension, or failing that
    the same name with ``0`` appended before the extension.
    """
    tex_file = Path(ifname).with_suffix(".png")
    if not tex_file.exists():
        tex_file = _with_name_suffix(tex_file, "0")
    image = read_png(tex_file)
    textures, sizes = build_downsampled_textures(image.width, image.data, min_size)
    return TexturePyramid([image.data, *textures], [image.width, *sizes], tex_file)