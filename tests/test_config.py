import json
from pathlib import Path

import pytest

from stickpose.config import AppConfig, load_config


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.json")
    assert isinstance(cfg, AppConfig)
    assert cfg.log_path == Path("logs/stickpose.log")
    assert cfg.drag_sensitivity == 0.01
    assert cfg.export_filename == "stick-figure-pose.json"
    assert cfg.fov_deg == 75.0
    assert cfg.show_grid is True

    assert load_config(None) == cfg


def test_overrides_are_cast(tmp_path):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"drag_sensitivity": 1, "log_path": "x/y.log", "show_grid": False, "extra": 3}), encoding="utf-8")

    cfg = load_config(p)
    assert cfg.drag_sensitivity == 1.0
    assert isinstance(cfg.drag_sensitivity, float)
    assert cfg.log_path == Path("x/y.log")
    assert cfg.show_grid is False


def test_non_object_config_rejected(tmp_path):
    p = tmp_path / "config.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)


def test_repo_config_loads():
    root = Path(__file__).resolve().parent.parent
    cfg = load_config(root / "config.json")
    assert cfg.drag_sensitivity == 0.01


@pytest.mark.parametrize("raw, expected", [(False, False), ("false", False), (" No ", False), (0, False), ("TRUE", True), ("on", True), (1, True)])
def test_show_grid_parses_booleans(tmp_path, raw, expected):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"show_grid": raw}), encoding="utf-8")
    assert load_config(p).show_grid is expected


@pytest.mark.parametrize("raw", ["maybe", 2, [], {"x": 1}])
def test_show_grid_rejects_non_booleans(tmp_path, raw):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"show_grid": raw}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)
