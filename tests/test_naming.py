from datetime import datetime

import pytest

from flyerstamp.models import Template
from flyerstamp.naming import build_output_name, sanitize_token


def test_build_output_name_with_tokens() -> None:
    template = Template(id="spring-fair", title="Spring Fair: 2026", background_ref="")
    name = build_output_name(
        "{template}_{id}_{date}.{ext}",
        template,
        extension=".PNG",
        when=datetime(2026, 2, 16, 12, 30),
    )
    assert name == "Spring_Fair__2026_spring-fair_20260216_123000.png"


def test_missing_suffix_is_added() -> None:
    template = Template(id="t", title="Poster", background_ref="")
    assert build_output_name("{template}", template, "jpg") == "Poster.jpg"


def test_unknown_token_is_rejected() -> None:
    template = Template(id="t", title="Poster", background_ref="")
    with pytest.raises(ValueError):
        build_output_name("{camera}.{ext}", template, "png")


def test_sanitize_token() -> None:
    assert sanitize_token("  a/b c ") == "a_b_c"
    assert sanitize_token("") == "NA"
    assert sanitize_token("...", fallback="x") == "x"
