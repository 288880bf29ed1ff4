"""Blocking entry points for callers that hand in a template and get images back."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from PIL import Image

from flyerstamp.assets import AssetLoader
from flyerstamp.constants import SCALE_POLICY_FIT_WIDTH_CAPPED
from flyerstamp.decoders.image_decoder import ImageSource
from flyerstamp.editor import apply_edit
from flyerstamp.errors import AssetLoadError, ExportNotReadyError
from flyerstamp.exporter import export_composite
from flyerstamp.models import RenderTarget, Template
from flyerstamp.scene import BACKGROUND_KEY, FlyerScene, SceneRenderer

LOGGER = logging.getLogger(__name__)

__all__ = ["PreviewHandle", "apply_edit", "export_composite_bytes", "render_preview"]


@dataclass(slots=True)
class PreviewHandle:
    image: Image.Image
    target: RenderTarget
    errors: dict[str, str] = field(default_factory=dict)
    pending: list[str] = field(default_factory=list)


def _open_scene(
    template: Template,
    fill_values: Mapping[str, Any] | None,
    background: ImageSource,
    loader: AssetLoader | None,
    font_dirs: tuple[str, ...],
) -> FlyerScene:
    return FlyerScene(
        template,
        background=background,
        fill_values=fill_values,
        loader=loader,
        renderer=SceneRenderer(font_dirs),
    )


def _require_background(scene: FlyerScene, timeout: float | None) -> tuple[int, int]:
    if not scene.wait_for_background(timeout):
        raise ExportNotReadyError([BACKGROUND_KEY])
    size = scene.natural_size()
    if size is None:
        reason = scene.load_errors().get(BACKGROUND_KEY, "unknown error")
        raise AssetLoadError(BACKGROUND_KEY, reason)
    return size


def render_preview(
    template: Template,
    fill_values: Mapping[str, Any] | None,
    container_width: float,
    background: ImageSource,
    *,
    policy: str = SCALE_POLICY_FIT_WIDTH_CAPPED,
    max_height: float | None = 600,
    timeout: float | None = None,
    loader: AssetLoader | None = None,
    font_dirs: tuple[str, ...] = (),
) -> PreviewHandle:
    """Render a fill-mode preview sized for ``container_width``.

    Waits for the background only; fills still decoding are left out and
    reported in ``pending``.
    """
    with _open_scene(template, fill_values, background, loader, font_dirs) as scene:
        _require_background(scene, timeout)
        target = scene.render_target(policy, container_width, max_height)
        image = scene.render(target.scale)
        return PreviewHandle(
            image=image,
            target=target,
            errors=scene.load_errors(),
            pending=scene.pending_assets(),
        )


def export_composite_bytes(
    template: Template,
    fill_values: Mapping[str, Any] | None,
    background: ImageSource,
    *,
    pixel_ratio: float = 2,
    container_width: float | None = None,
    policy: str = SCALE_POLICY_FIT_WIDTH_CAPPED,
    max_height: float | None = 600,
    output_format: str = "png",
    quality: int = 92,
    timeout: float | None = None,
    loader: AssetLoader | None = None,
    font_dirs: tuple[str, ...] = (),
) -> bytes:
    """Export the filled composite.

    Without ``container_width`` the scene is exported at natural size times
    ``pixel_ratio``. Raises ExportNotReadyError if assets are still loading
    after ``timeout`` seconds.
    """
    with _open_scene(template, fill_values, background, loader, font_dirs) as scene:
        _require_background(scene, timeout)
        scene.wait(timeout)
        scale = 1.0
        if container_width:
            scale = scene.render_target(policy, container_width, max_height).scale
        return export_composite(
            scene,
            scale,
            pixel_ratio=pixel_ratio,
            output_format=output_format,
            quality=quality,
        )
