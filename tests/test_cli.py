import logging
from pathlib import Path

import pytest
from PIL import Image

import main
from pixelextrude.core.logging_utils import format_exception_message, setup_logging
from pixelextrude.core.stl_writer import decode_binary_stl


@pytest.fixture
def isolated_logging(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path / "state"))
    root = logging.getLogger()
    before = list(root.handlers)
    yield tmp_path
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()


def _write_png(path, size=(8, 6)):
    img = Image.new("RGBA", size, (255, 255, 255, 255))
    for x in range(2, 5):
        img.putpixel((x, 3), (0, 0, 0, 255))
    img.save(path)
    return path


def test_cli_writes_stl(isolated_logging, capsys):
    src = _write_png(isolated_logging / "bar.png")
    out = isolated_logging / "out" / "bar.stl"

    code = main.run_cli([str(src), "-o", str(out), "--width-mm", "16", "--name", "bar", "--verify"])

    assert code == 0
    name, _normals, tris = decode_binary_stl(out.read_bytes())
    assert name == "bar"
    # 3 cells in a row: 12 caps + 8 sides * 2
    assert len(tris) == 28
    captured = capsys.readouterr()
    assert "Watertight: True" in captured.out
    assert "16.00 x 12.00" in captured.out


def test_cli_width_wins_when_both_sizes_given(isolated_logging, capsys):
    src = _write_png(isolated_logging / "both.png")
    out = isolated_logging / "both.stl"

    code = main.run_cli([str(src), "-o", str(out), "--width-mm", "16", "--height-mm", "4"])

    assert code == 0
    assert out.exists()
    assert "16.00 x 12.00" in capsys.readouterr().out


def test_cli_info_undecodable_file_exits_nonzero(isolated_logging, capsys):
    src = isolated_logging / "garbage.png"
    src.write_bytes(b"not an image at all")

    assert main.run_cli([str(src), "--info"]) == 1
    assert "Cannot decode image" in capsys.readouterr().err


def test_cli_default_output_path(isolated_logging):
    src = _write_png(isolated_logging / "logo.png")
    assert main.run_cli([str(src)]) == 0
    assert (isolated_logging / "logo.stl").exists()


def test_cli_empty_result_exits_nonzero(isolated_logging, capsys):
    src = _write_png(isolated_logging / "blank.png")
    out = isolated_logging / "blank.stl"

    code = main.run_cli([str(src), "-o", str(out), "--threshold", "0"])

    assert code == 1
    assert not out.exists()
    assert "No foreground region detected" in capsys.readouterr().err


def test_cli_info_writes_nothing(isolated_logging, capsys):
    src = _write_png(isolated_logging / "info.png")

    assert main.run_cli([str(src), "--info", "--max-px", "4"]) == 0

    out = capsys.readouterr().out
    assert "mask: 4 x 3" in out
    assert not (isolated_logging / "info.stl").exists()


def test_cli_rejects_invalid_options(isolated_logging):
    src = _write_png(isolated_logging / "bad.png")
    with pytest.raises(SystemExit):
        main.run_cli([str(src), "--thickness-mm", "-1"])


def test_setup_logging_is_idempotent(isolated_logging):
    first = setup_logging(log_dir=isolated_logging / "logs")
    second = setup_logging(log_dir=isolated_logging / "other")
    assert first is not None
    assert first == second
    assert first.exists()


def test_format_exception_message():
    assert format_exception_message("Error", "boom", log_path=None) == "Error: boom"
    assert "log file" in format_exception_message("Error", "boom", log_path=Path("x.log"))
