import pytest
from PIL import Image

from meshtiler.texture import (
    avg4,
    build_downsampled_textures,
    generate_all_textures,
    read_png,
    remove_alpha_channel,
    write_png,
    write_png_rgba,
)


def _uniform(size, rgb):
    return bytes(rgb) * (size * size)


def _gradient(size):
    return bytes((x * 16 + y * 3 + c) % 256 for y in range(size) for x in range(size) for c in range(3))


@pytest.mark.parametrize("value", [0, 17, 128, 255])
def test_avg4_of_equal_values(value):
    assert avg4(value, value, value, value) == value


def test_avg4_rounds():
    assert avg4(1, 2, 3, 4) == 3


def test_avg4_is_symmetric():
    assert avg4(10, 20, 30, 41) == avg4(41, 30, 20, 10)


def test_downsample_uniform_texture_keeps_colour():
    textures, sizes = build_downsampled_textures(8, _uniform(8, (10, 200, 33)), 2)
    assert sizes == [4, 2]
    assert textures[0] == _uniform(4, (10, 200, 33))
    assert textures[1] == _uniform(2, (10, 200, 33))


def test_downsample_lengths_match_sizes():
    textures, sizes = build_downsampled_textures(16, _gradient(16), 1)
    assert sizes[-1] == 1
    for tex, s in zip(textures, sizes):
        assert len(tex) == s * s * 3
    assert all(a == 2 * b for a, b in zip(sizes, sizes[1:]))


def test_downsample_two_by_two_block():
    px = [(0, 10, 20), (4, 14, 24), (8, 18, 28), (12, 22, 32)]
    data = bytes(c for p in px for c in p)
    textures, sizes = build_downsampled_textures(2, data, 1)
    assert sizes == [1]
    expected = bytes(avg4(*(p[c] for p in px)) for c in range(3))
    assert textures == [expected]


def test_downsample_nothing_when_at_min_size():
    assert build_downsampled_textures(4, _uniform(4, (1, 2, 3)), 4) == ([], [])


def test_downsample_odd_size_raises():
    with pytest.raises(ValueError):
        build_downsampled_textures(6, _uniform(6, (1, 2, 3)), 1)


def test_downsample_short_data_raises():
    with pytest.raises(ValueError):
        build_downsampled_textures(4, b"\x00" * 10, 1)


def test_remove_alpha_channel():
    data = bytes([1, 2, 3, 255, 4, 5, 6, 255])
    assert remove_alpha_channel(data) == bytes([1, 2, 3, 4, 5, 6])


def test_remove_alpha_channel_bad_length():
    with pytest.raises(ValueError):
        remove_alpha_channel(bytes(7))


def test_png_round_trip(tmp_path):
    path = tmp_path / "tex.png"
    data = _gradient(4)
    write_png(path, 4, 4, data)
    image = read_png(path)
    assert (image.width, image.height) == (4, 4)
    assert image.data == data


def test_write_png_stores_opaque_rgba_top_row_first(tmp_path):
    path = tmp_path / "tex.png"
    data = _gradient(2)
    write_png(path, 2, 2, data)
    with Image.open(path) as img:
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0)) == (data[0], data[1], data[2], 255)


def test_write_png_rejects_wrong_length(tmp_path):
    with pytest.raises(ValueError):
        write_png(tmp_path / "x.png", 2, 2, bytes(5))


def test_write_png_rgba_round_trip(tmp_path):
    path = tmp_path / "tex.png"
    rgba = bytes([9, 8, 7, 255, 1, 2, 3, 255, 4, 5, 6, 255, 0, 0, 0, 255])
    write_png_rgba(path, 2, 2, rgba)
    assert read_png(path).data == remove_alpha_channel(rgba)


def test_write_png_rgba_rejects_wrong_length(tmp_path):
    with pytest.raises(ValueError):
        write_png_rgba(tmp_path / "x.png", 2, 2, bytes(12))


def test_read_png_missing_file(tmp_path):
    with pytest.raises(OSError):
        read_png(tmp_path / "missing.png")


def test_generate_all_textures(tmp_path):
    data = _gradient(8)
    write_png(tmp_path / "mesh.png", 8, 8, data)
    pyramid = generate_all_textures(tmp_path / "mesh.obj", 2)
    assert pyramid.source_file == tmp_path / "mesh.png"
    assert pyramid.textures[0] == data
    assert pyramid.sizes == [8, 4, 2]
    assert pyramid.textures[1:] == build_downsampled_textures(8, data, 2)[0]


def test_generate_all_textures_falls_back_to_zero_suffix(tmp_path):
    write_png(tmp_path / "mesh0.png", 4, 4, _uniform(4, (5, 6, 7)))
    pyramid = generate_all_textures(tmp_path / "mesh.obj", 4)
    assert pyramid.source_file == tmp_path / "mesh0.png"
    assert pyramid.sizes == [4]


def test_generate_all_textures_missing(tmp_path):
    with pytest.raises(OSError):
        generate_all_textures(tmp_path / "mesh.obj", 4)