from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Union

from flyerstamp.constants import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_SAMPLE_TEXT,
    DEFAULT_TEXT_ALIGN,
    DEFAULT_TEXT_COLOR,
    FONT_STYLE_NORMAL,
    HOLE_SHAPE_BOX,
    PLACEHOLDER_KIND_IMAGE,
    PLACEHOLDER_KIND_TEXT,
    TEXT_TRANSFORM_NONE,
)


@dataclass(slots=True)
class ImagePlaceholder:
    id: str
    x: float
    y: float
    width: float
    height: float
    label_text: str = "Your Photo"
    required: bool = True
    hole_shape: str = HOLE_SHAPE_BOX

    kind: ClassVar[str] = PLACEHOLDER_KIND_IMAGE

    @property
    def box(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def with_geometry(self, x: float, y: float, width: float, height: float) -> ImagePlaceholder:
        return replace(self, x=x, y=y, width=width, height=height)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "labelText": self.label_text,
            "required": self.required,
            "holeShape": self.hole_shape,
        }


@dataclass(slots=True)
class TextPlaceholder:
    id: str
    x: float
    y: float
    width: float
    height: float
    label_text: str = "Your Name"
    required: bool = True
    font_size: float = DEFAULT_FONT_SIZE
    color: str = DEFAULT_TEXT_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    font_style: str = FONT_STYLE_NORMAL
    text_align: str = DEFAULT_TEXT_ALIGN
    text_transform: str = TEXT_TRANSFORM_NONE
    font_weight: str = DEFAULT_FONT_WEIGHT
    sample_text: str = DEFAULT_SAMPLE_TEXT

    kind: ClassVar[str] = PLACEHOLDER_KIND_TEXT

    @property
    def box(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def with_geometry(self, x: float, y: float, width: float, height: float) -> TextPlaceholder:
        return replace(self, x=x, y=y, width=width, height=height)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "labelText": self.label_text,
            "required": self.required,
            "fontSize": self.font_size,
            "color": self.color,
            "fontFamily": self.font_family,
            "fontStyle": self.font_style,
            "textAlign": self.text_align,
            "textTransform": self.text_transform,
            "fontWeight": self.font_weight,
            "sampleText": self.sample_text,
        }


Placeholder = Union[ImagePlaceholder, TextPlaceholder]


@dataclass(slots=True)
class Template:
    """A background reference plus placeholders; list order is the z-order."""

    id: str
    title: str
    background_ref: str
    placeholders: list[Placeholder] = field(default_factory=list)

    def find(self, placeholder_id: str) -> Placeholder | None:
        for placeholder in self.placeholders:
            if placeholder.id == placeholder_id:
                return placeholder
        return None

    def index_of(self, placeholder_id: str) -> int:
        for index, placeholder in enumerate(self.placeholders):
            if placeholder.id == placeholder_id:
                return index
        return -1

    def image_placeholders(self) -> list[ImagePlaceholder]:
        return [p for p in self.placeholders if isinstance(p, ImagePlaceholder)]

    def text_placeholders(self) -> list[TextPlaceholder]:
        return [p for p in self.placeholders if isinstance(p, TextPlaceholder)]

    def copy(self) -> Template:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "template_image_url": self.background_ref,
            "template_placeholders": [p.to_dict() for p in self.placeholders],
        }


@dataclass(slots=True, frozen=True)
class RenderTarget:
    width: int
    height: int
    scale: float


@dataclass(slots=True, frozen=True)
class CropRect:
    x: float
    y: float
    width: float
    height: float

    def as_box(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(slots=True, frozen=True)
class PathDescriptor:
    """Closed clip path in shape-local display pixels.

    ``kind`` is ``"polygon"`` (``points`` set) or ``"ellipse"`` (``bbox`` set).
    """

    shape: str
    kind: str
    points: tuple[tuple[float, float], ...] = ()
    bbox: tuple[float, float, float, float] | None = None


@dataclass(slots=True, frozen=True)
class GeometryDelta:
    """A move/resize expressed in display pixels at ``scale``."""

    scale: float
    dx: float = 0.0
    dy: float = 0.0
    dwidth: float = 0.0
    dheight: float = 0.0
