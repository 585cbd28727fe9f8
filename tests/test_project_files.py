import pytest

from meshtiler.project_files import (
    SPLIT_FOLDER,
    BoxData,
    copy_box_and_proj,
    read_box_file,
    read_projection_wkt,
)


def test_read_box_file(tmp_path):
    box = tmp_path / "mesh.box"
    box.write_text("min 1 2 3\nmax 4 5 6\noffset 7.5 8 -9\n")
    data = read_box_file(box)
    assert data.minimum == (1.0, 2.0, 3.0)
    assert data.maximum == (4.0, 5.0, 6.0)
    assert data.offset == (7.5, 8.0, -9.0)


def test_read_box_file_missing_lines_default_to_zero(tmp_path):
    box = tmp_path / "short.box"
    box.write_text("min 1 2 3\nmax 4 5\n")
    data = read_box_file(box)
    assert data.minimum == (1.0, 2.0, 3.0)
    assert data.maximum == (4.0, 5.0, 0.0)
    assert data.offset == BoxData().offset


def test_read_box_file_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_box_file(tmp_path / "absent.box")


def test_read_projection_wkt_round_trip(tmp_path):
    prj = tmp_path / "mesh.prj"
    text = 'GEOGCS["WGS 84",DATUM["WGS_1984"]]'
    prj.write_text(text)
    assert read_projection_wkt(prj) == text


def test_read_projection_wkt_missing_is_empty(tmp_path):
    assert read_projection_wkt(tmp_path / "absent.prj") == ""


def test_copy_box_and_proj(tmp_path):
    mesh = tmp_path / "model.obj"
    mesh.write_text("")
    (tmp_path / "model.box").write_text("min 0 0 0\n")
    (tmp_path / "model.obj.prj").write_text("PROJCS")

    copied = copy_box_and_proj(mesh)

    assert copied.box_file == tmp_path / SPLIT_FOLDER / "offset.box"
    assert copied.projection_file == tmp_path / SPLIT_FOLDER / "mesh.prj"
    assert copied.box_file.read_text() == "min 0 0 0\n"
    assert copied.projection_file.read_text() == "PROJCS"


def test_copy_box_and_proj_skips_missing_sources(tmp_path):
    mesh = tmp_path / "lonely.obj"
    mesh.write_text("")
    copied = copy_box_and_proj(mesh)
    assert (tmp_path / SPLIT_FOLDER).is_dir()
    assert not copied.box_file.exists()
    assert not copied.projection_file.exists()