"""End-to-end tests for the HTTP API with local storage."""

from __future__ import annotations

import base64
import io
import json
import xml.etree.ElementTree as ET

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.infrastructure.storage.local import LocalStorage
from app.main import app
from tests.conftest import AUTH, TEMPLATE_SVG, make_image, to_data_url

API = "/api/v1"


@pytest.fixture
def client(design_service):
    with TestClient(app) as c:
        app.state.design_service = design_service
        yield c
    app.state.design_service = None


def _payload(**overrides):
    body = {
        "product_id": "test-phone",
        "template_url": "/templates/test-phone.svg",
        "artwork_data_url": to_data_url(make_image((600, 800))),
        "transform": {
            "x": 300,
            "y": 400,
            "scale": 1.0,
            "rotation": 0,
            "canvas_width": 600,
            "canvas_height": 800,
            "safe_area_bounds": {"x": 150, "y": 200, "width": 300, "height": 400},
        },
    }
    body.update(overrides)
    return body


def _uploaded(workspace, url):
    return (workspace / "uploads" / url.rsplit("/", 1)[1]).read_bytes()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_generate_design(client, workspace):
    response = client.post(f"{API}/generate-design", json=_payload(design_id="abc123"), auth=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["design_id"] == "abc123"
    assert data["placed"] is True
    assert data["file_url"] == "http://testserver/uploads/abc123-test-phone.svg"
    assert data["raster_url"] == "http://testserver/uploads/abc123-test-phone.png"

    raster = Image.open(io.BytesIO(_uploaded(workspace, data["raster_url"])))
    assert raster.size == (600, 800)

    doc = _uploaded(workspace, data["file_url"]).decode("utf-8")
    image = ET.fromstring(doc.encode("utf-8")).find("{http://www.w3.org/2000/svg}image")
    assert (image.get("x"), image.get("y"), image.get("width"), image.get("height")) == ("300", "400", "600", "800")
    assert base64.b64decode(image.get("href").split(",", 1)[1]) == _uploaded(workspace, data["raster_url"])


def test_generated_ids_are_unique(client):
    first = client.post(f"{API}/generate-design", json=_payload(), auth=AUTH).json()
    second = client.post(f"{API}/generate-design", json=_payload(), auth=AUTH).json()
    assert first["design_id"] != second["design_id"]
    assert first["file_url"] != second["file_url"]


def test_artwork_outside_safe_area(client, workspace):
    body = _payload()
    body["transform"].update({"x": -2000, "y": -2000})
    response = client.post(f"{API}/generate-design", json=body, auth=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["placed"] is False
    assert data["raster_url"] is None
    assert _uploaded(workspace, data["file_url"]).decode("utf-8") == TEMPLATE_SVG


def test_design_lookup(client):
    created = client.post(f"{API}/generate-design", json=_payload(design_id="lookup-me"), auth=AUTH).json()
    response = client.get(f"{API}/design/lookup-me", auth=AUTH)
    assert response.status_code == 200
    assert response.json()["file_url"] == created["file_url"]

    assert client.get(f"{API}/design/unknown", auth=AUTH).status_code == 404


def test_unknown_product(client):
    response = client.post(f"{API}/generate-design", json=_payload(product_id="nope"), auth=AUTH)
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_missing_template(client):
    response = client.post(f"{API}/generate-design", json=_payload(template_url="/templates/missing.svg"), auth=AUTH)
    assert response.status_code == 404


def test_unparsable_template(client):
    response = client.post(f"{API}/generate-design", json=_payload(template_url="/templates/broken.svg"), auth=AUTH)
    assert response.status_code == 400


def test_bad_image_prefix(client, workspace):
    response = client.post(f"{API}/generate-design", json=_payload(artwork_data_url="data:text/plain;base64,aGk="), auth=AUTH)
    assert response.status_code == 400
    assert not (workspace / "uploads").exists() or list((workspace / "uploads").iterdir()) == []


def test_corrupt_image_is_processing_failure(client):
    url = "data:image/png;base64," + base64.b64encode(b"not a png").decode()
    response = client.post(f"{API}/generate-design", json=_payload(artwork_data_url=url), auth=AUTH)
    assert response.status_code == 500
    assert "decode" in response.json()["error"]


def test_missing_transform_fields(client):
    body = _payload()
    del body["transform"]["scale"]
    response = client.post(f"{API}/generate-design", json=body, auth=AUTH)
    assert response.status_code == 400
    assert "transform.scale" in response.json()["error"]


def test_requires_auth(client):
    assert client.post(f"{API}/generate-design", json=_payload()).status_code == 401
    assert client.post(f"{API}/generate-design", json=_payload(), auth=("admin", "wrong")).status_code == 401


def test_validate_artwork(client):
    body = {"product_id": "test-phone", "artwork_data_url": to_data_url(make_image((300, 300)))}
    response = client.post(f"{API}/validate-artwork", json=body, auth=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["can_proceed"] is False
    assert data["warnings"][0]["type"] == "low_resolution"

    body["artwork_data_url"] = to_data_url(make_image((1200, 1600)))
    data = client.post(f"{API}/validate-artwork", json=body, auth=AUTH).json()
    assert data == {"can_proceed": True, "warnings": []}


def test_list_products(client):
    response = client.get(f"{API}/products")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["test-phone"]


def test_design_id_must_be_a_plain_name(client):
    response = client.post(f"{API}/generate-design", json=_payload(design_id="../../etc"), auth=AUTH)
    assert response.status_code == 400


@pytest.mark.parametrize("value", ["NaN", "Infinity"])
def test_non_finite_transform_is_rejected(client, value):
    raw = json.dumps(_payload()).replace('"x": 300', f'"x": {value}', 1)
    response = client.post(
        f"{API}/generate-design",
        content=raw,
        headers={"Content-Type": "application/json"},
        auth=AUTH,
    )
    assert response.status_code == 400
    assert "transform.x" in response.json()["error"]


class BrokenSvgStorage(LocalStorage):
    async def store(self, name, data):
        if name.endswith(".svg"):
            raise OSError("disk full")
        return await super().store(name, data)


def test_failed_svg_store_leaves_no_output(client, design_service, workspace):
    design_service.storage = BrokenSvgStorage(str(workspace / "uploads"), "http://testserver")
    response = client.post(f"{API}/generate-design", json=_payload(design_id="broken-store"), auth=AUTH)

    assert response.status_code == 500
    assert response.json()["error"].startswith("store failed")
    assert list((workspace / "uploads").iterdir()) == []
    assert client.get(f"{API}/design/broken-store", auth=AUTH).status_code == 404


def test_template_in_declared_latin1_encoding(client, workspace):
    svg = TEMPLATE_SVG.replace('encoding="UTF-8"', 'encoding="ISO-8859-1"').replace(
        "<path", "<title>Café ©</title>\n  <path", 1
    )
    (workspace / "public" / "templates" / "latin.svg").write_bytes(svg.encode("latin-1"))

    response = client.post(f"{API}/generate-design", json=_payload(template_url="/templates/latin.svg"), auth=AUTH)
    assert response.status_code == 200
    doc = _uploaded(workspace, response.json()["file_url"]).decode("latin-1")
    assert "<title>Café ©</title>" in doc
    assert "<image" in doc
