from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from flyerstamp.models import Template

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def sanitize_token(value: str | None, fallback: str = "NA") -> str:
    text = (value or "").strip()
    if not text:
        text = fallback
    text = INVALID_FILENAME_CHARS.sub("_", text)
    text = re.sub(r"\s+", "_", text)
    text = text.strip(" ._")
    return text or fallback


def sanitize_filename(value: str, fallback: str = "output") -> str:
    text = INVALID_FILENAME_CHARS.sub("_", value).strip()
    text = text.strip(" .")
    return text or fallback


def build_output_name(
    name_template: str,
    template: Template,
    extension: str,
    when: datetime | None = None,
) -> str:
    ext = extension.lower().lstrip(".")
    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    values = {
        "template": sanitize_token(template.title, fallback="flyer"),
        "id": sanitize_token(template.id, fallback="template"),
        "date": stamp,
        "ext": ext,
    }
    try:
        rendered = name_template.format(**values)
    except KeyError as exc:
        missing = str(exc).strip("'")
        raise ValueError(f"name template contains unknown key: {missing}") from exc

    rendered = sanitize_filename(rendered, fallback=f"{values['id']}__dp.{ext}")
    if not Path(rendered).suffix:
        rendered = f"{rendered}.{ext}"
    return rendered
