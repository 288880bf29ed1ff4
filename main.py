from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path

_log = logging.getLogger("flyerstamp.main")


def _filter_platform_startup_args(argv: list[str]) -> list[str]:
    """过滤平台启动器注入的参数，避免 GUI bundle 冷启动时被 argparse 误判。"""
    filtered_args: list[str] = []
    for arg in argv:
        if sys.platform == "darwin" and arg.startswith("-psn_"):
            continue
        filtered_args.append(arg)
    return filtered_args


def _install_exception_logging() -> None:
    """窗口版没有控制台时，将未捕获异常写入日志。"""

    def _log_uncaught_exception(exc_type, exc_value, exc_tb) -> None:
        message = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        _log.error("uncaught exception\n%s", message.rstrip())
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _log_uncaught_exception


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    _install_exception_logging()
    _log.info("startup argv=%s", sys.argv[1:])

    parser = argparse.ArgumentParser(description="Launch the FlyerStamp placeholder editor.")
    parser.add_argument("template", type=Path, help="Template file (.json or .yaml) to edit.")
    parser.add_argument("--background", type=Path, required=True, help="Background image of the template.")
    args = parser.parse_args(_filter_platform_startup_args(sys.argv[1:]))

    try:
        from flyerstamp.gui import launch_gui
    except Exception as exc:
        _log.error("GUI import failed: %s", exc)
        raise SystemExit(f"GUI is unavailable: {exc}") from exc

    _log.info("launching GUI template=%s", args.template)
    launch_gui(
        template_path=args.template.resolve(strict=False),
        background_path=args.background.resolve(strict=False),
    )
    _log.info("GUI returned normally")


if __name__ == "__main__":
    main()
