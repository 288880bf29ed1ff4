from pathlib import Path

import yaml

from flyerstamp.config import DEFAULT_CONFIG, font_dirs, load_config, write_default_config
from flyerstamp.editor import EditorLimits


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg["preview_scale_policy"] == "fit_width_capped"
    assert cfg["preview_max_height"] == 600
    assert cfg["editor_scale_policy"] == "fit_width"
    assert cfg["pixel_ratio"] == 2
    assert cfg["jobs"] >= 1
    cfg["font_dirs"].append("mutated")
    assert DEFAULT_CONFIG["font_dirs"] == []


def test_user_values_override_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump({"preview_max_height": 400, "max_text_placeholders": 5, "font_dirs": "/fonts"}),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg["preview_max_height"] == 400
    assert cfg["output_format"] == "png"
    assert font_dirs(cfg) == ("/fonts",)
    limits = EditorLimits.from_config(cfg)
    assert limits.max_text_placeholders == 5
    assert limits.max_image_placeholders == 1


def test_non_mapping_config_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    assert load_config(path)["quality"] == 92


def test_write_default_config_respects_force(tmp_path: Path) -> None:
    path = tmp_path / "Config" / "config.yaml"
    write_default_config(path)
    assert yaml.safe_load(path.read_text(encoding="utf-8"))["name_template"] == "{template}__{date}.{ext}"

    path.write_text("quality: 50\n", encoding="utf-8")
    write_default_config(path)
    assert load_config(path)["quality"] == 50

    write_default_config(path, force=True)
    assert load_config(path)["quality"] == 92
