import importlib.util
from pathlib import Path

import pytest

_SCRIPT = Path(__file__).resolve().parent.parent / "motion_scripts" / "salience_track.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("salience_track", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_flags_override_profile(cli):
    args = cli.build_parser().parse_args(
        ["--input", "x.mp4", "--profile", "variance", "--cell-size", "24", "--no-aspect-filter"])
    cfg = cli.config_from_args(args)
    assert cfg.score.rule == "variance"
    assert cfg.grid.cell_size == 24
    assert cfg.blob.use_aspect_filter is False
    assert cfg.track.smoothing == 0.1


def test_unset_flags_keep_profile_values(cli):
    args = cli.build_parser().parse_args(["--webcam", "0", "--profile", "classic"])
    cfg = cli.config_from_args(args)
    assert cfg.blob.strategy == "seed_flood"
    assert cfg.blob.use_aspect_filter is False
    assert cfg.track.hold_on_not_ready is False


def test_input_and_webcam_are_exclusive(cli):
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--input", "x.mp4", "--webcam", "0"])


def test_missing_input_file(cli, tmp_path, capsys):
    assert cli.main(["--input", str(tmp_path / "none.mp4")]) == 1
    assert "File not found" in capsys.readouterr().out


def test_bad_extension(cli, tmp_path, capsys):
    path = tmp_path / "clip.txt"
    path.write_text("")
    assert cli.main(["--input", str(path)]) == 1
    assert "Unsupported extension" in capsys.readouterr().out


def test_invalid_tuning_value(cli, tmp_path, capsys):
    assert cli.main(["--input", str(tmp_path / "a.mp4"), "--smoothing", "2.0"]) == 1
    assert "Smoothing factor" in capsys.readouterr().out
