import json

import pytest
import SimpleITK as sitk
import yaml

from speckqc import cli
from speckqc.config import DEFAULT_HALF_WINDOW, DEFAULT_NOISE, load_config, merge_cli_into_config
from tests.helpers.phantom import PIXEL_MM, THICKNESS_MM


def test_config_defaults_and_overrides(tmp_path):
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text(yaml.safe_dump({"input": "a.nrrd", "noise": 125, "do_qc": False}))
    args = cli.build_parser().parse_args(["--config", str(cfg_path), "--half-window", "2"])
    cfg = merge_cli_into_config(load_config(args.config), args)
    assert cfg["input"] == "a.nrrd"
    assert cfg["noise"] == 125
    assert cfg["half_window"] == 2
    assert cfg["do_qc"] is False
    assert cfg["verbose"] is True


def test_cli_flags_beat_config_file(tmp_path):
    cfg_path = tmp_path / "run.json"
    cfg_path.write_text(json.dumps({"input": "a.nrrd", "noise": 125}))
    args = cli.build_parser().parse_args(["b.nrrd", "--config", str(cfg_path), "--noise", "175", "--quiet"])
    cfg = merge_cli_into_config(load_config(args.config), args)
    assert cfg["input"] == "b.nrrd"
    assert cfg["noise"] == 175.0
    assert cfg["half_window"] == DEFAULT_HALF_WINDOW
    assert cfg["verbose"] is False


def test_defaults_without_config():
    args = cli.build_parser().parse_args(["x.nrrd"])
    cfg = merge_cli_into_config({}, args)
    assert cfg["noise"] == DEFAULT_NOISE


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_cli_without_input_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
    assert "input volume" in capsys.readouterr().err


def test_cli_runs_pipeline(tmp_path, phantom_volume):
    vol_path = tmp_path / "phantom.nrrd"
    sitk.WriteImage(sitk.GetImageFromArray(phantom_volume), str(vol_path))
    out = tmp_path / "res.csv"
    cli.main([
        str(vol_path),
        "-o", str(out),
        "--pixel-spacing", str(PIXEL_MM), str(PIXEL_MM),
        "--slice-thickness", str(THICKNESS_MM),
        "--no-qc",
        "--quiet",
    ])
    assert out.exists()


def test_cli_reports_failing_stage(tmp_path, phantom_volume, capsys):
    vol_path = tmp_path / "phantom.nrrd"
    sitk.WriteImage(sitk.GetImageFromArray(phantom_volume), str(vol_path))
    with pytest.raises(SystemExit) as exc:
        cli.main([str(vol_path), "--no-qc", "--quiet"])
    assert exc.value.code == 1
    assert "ERROR: [metadata]" in capsys.readouterr().err
