import numpy as np
import pytest

from main import expand_inputs, main
from models.image import Image
from services.image_service import ImageService


@pytest.fixture
def inputs(rgba_pixels, tmp_path):
    folder = tmp_path / "in"
    svc = ImageService()
    svc.save(Image(rgba_pixels, folder / "one.png"))
    svc.save(Image(rgba_pixels, folder / "two.png"))
    svc.save(Image(rgba_pixels, folder / "deep" / "three.png"))
    (folder / "readme.txt").write_text("skip me")
    return folder


def test_expand_inputs(inputs):
    svc = ImageService()
    assert [p.name for p in expand_inputs([str(inputs)], svc)] == ["one.png", "two.png"]
    assert sorted(p.name for p in expand_inputs([str(inputs)], svc, recursive=True)) == [
        "one.png", "three.png", "two.png"]
    assert expand_inputs([str(inputs / "one.png")], svc) == [inputs / "one.png"]


def test_main_converts_directory(inputs, rgba_pixels, tmp_path):
    out_dir = tmp_path / "out"
    code = main([str(inputs), "-o", str(out_dir), "--workers", "2", "--tile-rows", "3", "--mode", "pixel"])

    assert code == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["one_gray.png", "two_gray.png"]
    gray = ImageService().load(out_dir / "one_gray.png").pixels
    np.testing.assert_array_equal(gray[..., 3], rgba_pixels[..., 3])
    np.testing.assert_array_equal(gray[..., 0], gray[..., 2])


def test_main_rounding_flag(tmp_path):
    src = tmp_path / "green.png"
    ImageService().save(Image(np.array([[[0, 255, 0, 128]]], dtype=np.uint8), src))

    assert main([str(src), "-o", str(tmp_path / "t")]) == 0
    assert main([str(src), "-o", str(tmp_path / "n"), "--rounding", "nearest"]) == 0

    svc = ImageService()
    assert svc.load(tmp_path / "t" / "green_gray.png").pixels[0, 0].tolist() == [149, 149, 149, 128]
    assert svc.load(tmp_path / "n" / "green_gray.png").pixels[0, 0].tolist() == [150, 150, 150, 128]


def test_main_reports_missing_input(inputs, tmp_path):
    code = main([str(inputs / "one.png"), str(inputs / "missing.png"), "-o", str(tmp_path / "out")])
    assert code == 1
    assert (tmp_path / "out" / "one_gray.png").exists()


def test_main_no_images(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert main([str(empty), "-o", str(tmp_path / "out")]) == 1


@pytest.mark.parametrize("flags", [["--workers", "0"], ["--tile-rows", "0"], ["--rounding", "up"]])
def test_main_usage_errors(inputs, flags):
    with pytest.raises(SystemExit) as exc:
        main([str(inputs)] + flags)
    assert exc.value.code == 2


def test_main_keeps_going_when_an_output_cannot_be_written(inputs, tmp_path):
    out_dir = tmp_path / "out"
    (out_dir / "one_gray.png").mkdir(parents=True)

    code = main([str(inputs), "-o", str(out_dir)])

    assert code == 1
    assert (out_dir / "two_gray.png").is_file()


def test_main_recursive_same_stem_writes_both(tmp_path):
    folder = tmp_path / "in"
    red = np.zeros((2, 2, 4), dtype=np.uint8)
    red[..., 0], red[..., 3] = 255, 255
    blue = np.zeros((2, 2, 4), dtype=np.uint8)
    blue[..., 2], blue[..., 3] = 255, 255
    svc = ImageService()
    svc.save(Image(red, folder / "a.png"))
    svc.save(Image(blue, folder / "deep" / "a.png"))
    out_dir = tmp_path / "out"

    assert main([str(folder), "--recursive", "-o", str(out_dir)]) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["a_gray.png", "a_gray_2.png"]
    values = {int(svc.load(p).pixels[0, 0, 0]) for p in out_dir.iterdir()}
    assert values == {76, 29}


@pytest.mark.parametrize("var, value", [
    ("GRAYSCALE_WORKERS", "abc"),
    ("GRAYSCALE_TILE_ROWS", "0"),
    ("GRAYSCALE_ROUNDING", "sideways"),
    ("GRAYSCALE_DISPATCH_MODE", "gpu"),
    ("IMAGE_LOAD_TIMEOUT", "soon"),
])
def test_main_bad_env_config_is_usage_error(monkeypatch, inputs, tmp_path, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit) as exc:
        main([str(inputs), "-o", str(tmp_path / "out")])
    assert exc.value.code == 2
