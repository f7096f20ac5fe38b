"""Shared test fixtures."""

from __future__ import annotations

import base64
import io
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

from app.config.catalog import ProductCatalog
from app.delivery.schemas.body import PlacementTransform, ProductProfile, SafeAreaBounds
from app.domain.design_service import DesignService
from app.infrastructure.logs.design_log import DesignLog
from app.infrastructure.storage.local import LocalStorage
from app.infrastructure.templates.loader import TemplateLoader


AUTH = ("admin", "secret")

TEMPLATE_SVG = '''<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="1200" height="1600" viewBox="0 0 1200 1600">
  <path id="CUT_LINE" d="M0 0 H1200 V1600 H0 Z" fill="none" stroke="#ff0000"/>
  <rect id="SAFE_AREA" x="300" y="400" width="600" height="800" fill="none" stroke="#0000ff"/>
  <rect id="CAMERA_CUTOUT" x="40" y="40" width="300" height="300" rx="50" fill="none"/>
</svg>
'''

# Same safe area, attributes in a different order and with a unit suffix
REORDERED_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 1200 1600">
  <g id="guides"><rect height="800px" width="600" fill="none" y="400" id="SAFE_AREA" x="300"/></g>
</svg>'''

NO_SAFE_AREA_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 1200 1600">
  <rect id="CUT_LINE" x="0" y="0" width="1200" height="1600"/>
</svg>'''


def make_image(size=(600, 800), color=(255, 0, 0, 255), mode="RGBA") -> Image.Image:
    if mode == "RGB":
        color = color[:3]
    return Image.new(mode, size, color)


def to_data_url(img: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    mime = "image/jpeg" if fmt == "JPEG" else f"image/{fmt.lower()}"
    return f"data:{mime};base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def make_profile(**overrides) -> ProductProfile:
    data = dict(
        id="test-phone",
        label="Test Phone",
        svg_template_url="/templates/test-phone.svg",
        print_dpi=300,
        output_width_px=1200,
        output_height_px=1600,
        safe_area_id="SAFE_AREA",
    )
    data.update(overrides)
    return ProductProfile(**data)


def make_transform(x=300, y=400, scale=1.0, rotation=0.0, safe=(150, 200, 300, 400), canvas=(600, 800)):
    return PlacementTransform(
        x=x,
        y=y,
        scale=scale,
        rotation=rotation,
        canvas_width=canvas[0],
        canvas_height=canvas[1],
        safe_area_bounds=SafeAreaBounds(x=safe[0], y=safe[1], width=safe[2], height=safe[3]) if safe else None,
    )


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def workspace(tmp_path):
    templates = tmp_path / "public" / "templates"
    templates.mkdir(parents=True)
    (templates / "test-phone.svg").write_text(TEMPLATE_SVG, encoding="utf-8")
    (templates / "broken.svg").write_text("<svg><rect id='SAFE_AREA'", encoding="utf-8")
    return tmp_path


@pytest.fixture
def design_service(workspace, executor, profile):
    return DesignService(
        catalog=ProductCatalog([profile]),
        templates=TemplateLoader(str(workspace / "public")),
        storage=LocalStorage(str(workspace / "uploads"), "http://testserver"),
        executor=executor,
        design_log=DesignLog(str(workspace / "logs" / "designs.log")),
    )
