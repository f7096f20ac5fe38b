"""Tests for embedding the composited raster into the template."""

import base64
import re
import xml.etree.ElementTree as ET

import pytest

from app.domain.errors import InvalidInput
from app.domain.geometry import Rect
from app.domain.placement import compute_placement
from app.infrastructure.cv.image_process import composite
from app.infrastructure.svg.assembler import assemble
from tests.conftest import TEMPLATE_SVG, make_image, make_transform

SVG_NS = "{http://www.w3.org/2000/svg}"


@pytest.fixture
def plan(profile):
    return compute_placement(profile, make_transform(), Rect(300, 400, 600, 800), (600, 800))


def test_image_is_inserted_before_closing_tag(plan):
    png = composite(make_image((600, 800)), plan)
    doc = assemble(TEMPLATE_SVG, png, plan)

    head, _, tail = doc.rpartition("</svg>")
    assert tail == "\n"
    assert head.startswith(TEMPLATE_SVG[:TEMPLATE_SVG.rfind("</svg>")])

    root = ET.fromstring(doc.encode("utf-8"))
    images = root.findall(f"{SVG_NS}image")
    assert len(images) == 1
    img = images[0]
    assert (img.get("x"), img.get("y"), img.get("width"), img.get("height")) == ("300", "400", "600", "800")
    assert img.get("preserveAspectRatio") == "none"
    assert base64.b64decode(img.get("href").split(",", 1)[1]) == png


def test_existing_markers_are_untouched(plan):
    doc = assemble(TEMPLATE_SVG, composite(make_image((600, 800)), plan), plan)
    for marker in re.findall(r"<(?:rect|path)[^>]*/>", TEMPLATE_SVG):
        assert marker in doc


def test_nothing_to_place_returns_template_unchanged(profile):
    empty = compute_placement(profile, make_transform(x=-900, y=-900), Rect(300, 400, 600, 800), (600, 800))
    assert assemble(TEMPLATE_SVG, None, empty) == TEMPLATE_SVG


def test_template_without_closing_tag_is_rejected(plan):
    with pytest.raises(InvalidInput):
        assemble("<svg>", b"png", plan)
