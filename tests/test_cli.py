import logging

import numpy as np
import pytest

from blurflip.cli import main
from blurflip.kernels import reference_blur, reference_flip


def cli_args(tmp_path, *extra):
    return ["-b", "host", "-W", "12", "-H", "9", "-k", "3",
            "-i", str(tmp_path / "in.raw"),
            "--flip-output", str(tmp_path / "flip.raw"),
            "--blur-output", str(tmp_path / "blur.raw"), *extra]


@pytest.fixture
def image(tmp_path, rng):
    data = rng.integers(0, 256, size=(9, 12), dtype=np.uint8)
    (tmp_path / "in.raw").write_bytes(data.tobytes())
    return data


def test_run_writes_both_outputs(tmp_path, image, capsys):
    assert main(cli_args(tmp_path, "--verify")) == 0

    flip = np.frombuffer((tmp_path / "flip.raw").read_bytes(), dtype=np.uint8).reshape(9, 12)
    blur = np.frombuffer((tmp_path / "blur.raw").read_bytes(), dtype=np.uint8).reshape(9, 12)
    assert np.array_equal(flip, reference_flip(image))
    assert np.array_equal(blur, reference_blur(flip, 3))

    out = capsys.readouterr().out
    assert "Flip + Box Blur" in out
    assert "PASSED" in out


def test_preview(tmp_path, image):
    assert main(cli_args(tmp_path, "--preview", str(tmp_path / "preview.png"))) == 0
    assert (tmp_path / "preview.png").stat().st_size > 0


def test_missing_input_fails_without_outputs(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert main(cli_args(tmp_path)) == 1
    assert "Failed to read image" in caplog.text
    assert not (tmp_path / "flip.raw").exists()
    assert not (tmp_path / "blur.raw").exists()


def test_short_input_fails(tmp_path, caplog):
    (tmp_path / "in.raw").write_bytes(bytes(100))
    with caplog.at_level(logging.ERROR):
        assert main(cli_args(tmp_path)) == 1
    assert "expected 108 bytes" in caplog.text


def test_even_window_is_usage_error(tmp_path, image):
    with pytest.raises(SystemExit) as info:
        main(cli_args(tmp_path, "-k", "4"))
    assert info.value.code == 2
