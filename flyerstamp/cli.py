from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import typer

from flyerstamp.assets import AssetLoader
from flyerstamp.config import font_dirs, load_config, write_default_config
from flyerstamp.decoders.image_decoder import decode_image
from flyerstamp.errors import FlyerStampError
from flyerstamp.exporter import export_composite, format_extension, normalize_output_format, save_composite
from flyerstamp.models import Template
from flyerstamp.naming import build_output_name
from flyerstamp.scene import FlyerScene, SceneRenderer
from flyerstamp.template_loader import default_template, load_template, save_template

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Flyer template compositing CLI.")
LOGGER = logging.getLogger("flyerstamp")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(1)


def _parse_pairs(values: list[str], option: str) -> dict[str, str]:
    """Parse repeated ``ID=VALUE`` options."""
    pairs: dict[str, str] = {}
    for value in values:
        key, sep, rest = str(value).partition("=")
        key = key.strip()
        if not sep or not key:
            raise _fail(f"{option} expects ID=VALUE, got {value!r}")
        pairs[key] = rest
    return pairs


def _load_template_or_exit(path: Path) -> Template:
    try:
        return load_template(path)
    except (OSError, FlyerStampError) as exc:
        raise _fail(f"Template load failed: {exc}")


@app.command()
def render(
    template_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True),
    background: Path = typer.Option(..., "--background", exists=True, dir_okay=False, help="Background image file."),
    images: list[str] = typer.Option([], "--image", help="Fill photo as ID=PATH (repeatable)."),
    texts: list[str] = typer.Option([], "--text", help="Fill text as ID=VALUE (repeatable)."),
    out: Path | None = typer.Option(None, "--out", help="Output file or directory."),
    pixel_ratio: float | None = typer.Option(None, "--pixel-ratio", min=0.1),
    output_format: str | None = typer.Option(None, "--format", help="Output format: png|jpeg"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    container_width: float | None = typer.Option(None, "--container-width", min=1, help="Display width the scale is derived from."),
    preview: bool = typer.Option(False, "--preview", help="Write the on-screen preview instead of the export."),
    timeout: float | None = typer.Option(None, "--timeout", min=0, help="Seconds to wait for image decodes."),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Composite fill photos and text into a template and write the image."""
    _setup_logging(log_level)
    cfg = load_config()

    try:
        pil_format = normalize_output_format(output_format or str(cfg.get("output_format", "png")))
    except ValueError as exc:
        raise _fail(str(exc))
    quality_val = int(quality if quality is not None else cfg.get("quality", 92))
    ratio = float(pixel_ratio if pixel_ratio is not None else cfg.get("pixel_ratio", 2))

    template = _load_template_or_exit(template_path)
    fills: dict[str, object] = {}
    for key, value in _parse_pairs(images, "--image").items():
        path = Path(value).expanduser()
        if not path.is_file():
            raise _fail(f"Fill image not found for {key}: {path}")
        fills[key] = path
    fills.update(_parse_pairs(texts, "--text"))

    t0 = time.perf_counter()
    loader = AssetLoader(max_workers=int(cfg.get("jobs") or 1))
    renderer = SceneRenderer(font_dirs(cfg))
    with loader, FlyerScene(template, background=background, fill_values=fills, loader=loader, renderer=renderer) as scene:
        scene.wait(timeout)
        size = scene.natural_size()
        if size is None:
            reason = scene.load_errors().get("background", "still loading")
            raise _fail(f"Background unavailable: {reason}")
        for key, reason in scene.load_errors().items():
            LOGGER.warning("fill skipped %s: %s", key, reason)

        try:
            scale = 1.0
            if preview or container_width:
                scale = scene.render_target(
                    str(cfg.get("preview_scale_policy")),
                    container_width or float(cfg.get("preview_container_width", size[0])),
                    float(cfg.get("preview_max_height") or 600),
                ).scale
            if preview:
                # 预览按屏幕像素输出
                ratio = 1.0
            data = export_composite(scene, scale, pixel_ratio=ratio, output_format=pil_format, quality=quality_val)
        except (FlyerStampError, ValueError) as exc:
            raise _fail(f"Render failed: {exc}")

    ext = format_extension(pil_format)
    if out is None or out.is_dir() or not out.suffix:
        out_dir = out or template_path.parent / "output"
        name = build_output_name(str(cfg.get("name_template", "{template}__{date}.{ext}")), template, ext)
        out_file = out_dir / name
    else:
        out_file = out
    save_composite(data, out_file)
    LOGGER.info("OK   %s -> %s  (%.2fs)", template_path.name, out_file.name, time.perf_counter() - t0)
    typer.echo(str(out_file))


@app.command("inspect")
def inspect_template(
    template_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True),
    background: Path | None = typer.Option(None, "--background", exists=True, dir_okay=False),
) -> None:
    """Print the normalized template (and display scales when a background is given)."""
    cfg = load_config()
    template = _load_template_or_exit(template_path)
    payload = template.to_dict()
    if background is not None:
        with FlyerScene(template, background=background) as scene:
            scene.wait()
            size = scene.natural_size()
            if size is None:
                raise _fail(f"Background unavailable: {scene.load_errors().get('background')}")
            preview = scene.render_target(
                str(cfg.get("preview_scale_policy")),
                float(cfg.get("preview_container_width", 800)),
                float(cfg.get("preview_max_height") or 600),
            )
            editor = scene.render_target(
                str(cfg.get("editor_scale_policy")),
                float(cfg.get("editor_container_width", 800)),
                float(cfg.get("preview_max_height") or 600),
            )
        payload["natural_size"] = list(size)
        payload["preview_scale"] = preview.scale
        payload["editor_scale"] = editor.scale
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("new-template")
def new_template(
    background: Path = typer.Option(..., "--background", exists=True, dir_okay=False, resolve_path=True),
    out: Path = typer.Option(..., "--out", help="Template file to write (.json or .yaml)."),
    title: str = typer.Option("Untitled", "--title"),
    template_id: str = typer.Option("template", "--id"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Create a template with one default photo and one default text placeholder."""
    if out.exists() and not force:
        raise _fail(f"Refusing to overwrite {out} (use --force)")
    try:
        size = decode_image(background).size
    except RuntimeError as exc:
        raise _fail(f"Background unavailable: {exc}")
    template = default_template(str(background), title=title, template_id=template_id, natural_size=size)
    path = save_template(template, out)
    typer.echo(f"Template written: {path}")


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


@app.command()
def gui(
    template_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True),
    background: Path = typer.Option(..., "--background", exists=True, dir_okay=False, resolve_path=True),
) -> None:
    """Open the placeholder editor window."""
    try:
        from flyerstamp.gui import launch_gui
    except Exception as exc:
        raise _fail(f"GUI is unavailable: {exc}")

    try:
        launch_gui(template_path=template_path, background_path=background)
    except Exception as exc:
        raise _fail(f"GUI failed to start: {exc}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
