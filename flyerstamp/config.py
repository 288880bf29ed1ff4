from __future__ import annotations

import copy
import os
import platform
import sys
from pathlib import Path
from typing import Any

import yaml

from flyerstamp.constants import (
    MIN_DISPLAY_SIZE,
    SCALE_POLICY_FIT_WIDTH,
    SCALE_POLICY_FIT_WIDTH_CAPPED,
)


def default_jobs() -> int:
    cpu_count = os.cpu_count() or 2
    return max(1, cpu_count - 1)


DEFAULT_CONFIG: dict[str, Any] = {
    # 填充预览：宽度铺满容器，同时高度不超过 preview_max_height
    "preview_container_width": 800,
    "preview_max_height": 600,
    "preview_scale_policy": SCALE_POLICY_FIT_WIDTH_CAPPED,
    # 模板编辑：只按宽度缩放
    "editor_container_width": 800,
    "editor_scale_policy": SCALE_POLICY_FIT_WIDTH,
    "pixel_ratio": 2,
    "output_format": "png",
    "quality": 92,
    "name_template": "{template}__{date}.{ext}",
    "max_text_placeholders": 3,
    "max_image_placeholders": 1,
    "min_display_size": MIN_DISPLAY_SIZE,
    "font_dirs": [],
    "jobs": default_jobs(),
}


def get_app_dir() -> Path:
    """Return the application root directory.

    - Frozen (PyInstaller): directory containing the executable.
    - Development: project root (two levels up from this file).
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    # flyerstamp/config.py → flyerstamp/ → project_root/
    return Path(__file__).resolve().parent.parent


def get_user_data_dir() -> Path:
    """返回用户可写的数据目录，打包后避免写入 app bundle 内部。"""
    if not getattr(sys, "frozen", False):
        return get_app_dir()

    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "FlyerStamp"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "FlyerStamp"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "FlyerStamp"
    return Path.home() / ".config" / "FlyerStamp"


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        cfg = copy.deepcopy(DEFAULT_CONFIG)
        cfg["jobs"] = default_jobs()
        return cfg

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    cfg = _deep_merge(DEFAULT_CONFIG, loaded)
    if not cfg.get("jobs"):
        cfg["jobs"] = default_jobs()
    return cfg


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["jobs"] = default_jobs()
    cfg_path.write_text(yaml.safe_dump(cfg, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path


def font_dirs(cfg: dict[str, Any]) -> tuple[str, ...]:
    raw = cfg.get("font_dirs") or []
    if isinstance(raw, str):
        raw = [raw]
    return tuple(str(item) for item in raw if str(item).strip())
