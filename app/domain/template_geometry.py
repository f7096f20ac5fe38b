# app/domain/template_geometry.py
"""Safe-area lookup inside an SVG product template.

The template is parsed structurally so attribute order never matters. A
template without a usable safe-area element falls back to the whole output
canvas; only a document that is not XML at all is rejected.
"""
import codecs
import logging
import re
import xml.etree.ElementTree as ET

from app.domain.errors import TemplateParseError
from app.domain.geometry import Rect

DEFAULT_SAFE_AREA_ID = "SAFE_AREA"

_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(?:px)?\s*$")
_ENCODING_RE = re.compile(r"""^\s*<\?xml[^>]*?\bencoding\s*=\s*["']([A-Za-z][\w.-]*)["']""")

logger = logging.getLogger(__name__)


def _parse_length(value):
    if value is None:
        return None
    m = _NUMBER_RE.match(value)
    if not m:
        return None
    return float(m.group(1))


def declared_encoding(template_content: str) -> str:
    """Encoding named in the XML declaration, utf-8 when there is none."""
    m = _ENCODING_RE.match(template_content)
    return m.group(1) if m else "utf-8"


def decode_template(raw: bytes) -> str:
    """Decode template bytes the way the document itself declares."""
    if raw.startswith(codecs.BOM_UTF8):
        raw, encoding = raw[len(codecs.BOM_UTF8):], "utf-8"
    else:
        # The declaration is plain ASCII in every encoding it can name here
        encoding = declared_encoding(raw[:256].decode("latin-1"))
    try:
        return raw.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        raise TemplateParseError(f"Template is not valid {encoding}: {e}") from e


def parse_template(template_content: str) -> ET.Element:
    try:
        # Already decoded text; the declared encoding no longer applies
        parser = ET.XMLParser(encoding="utf-8")
        return ET.fromstring(template_content.encode("utf-8"), parser=parser)
    except ET.ParseError as e:
        raise TemplateParseError(f"Template could not be parsed: {e}") from e


def find_element_by_id(root: ET.Element, element_id: str):
    for el in root.iter():
        if el.get("id") == element_id:
            return el
    return None


def resolve_safe_area(
    template_content: str,
    fallback_width: float,
    fallback_height: float,
    element_id: str = DEFAULT_SAFE_AREA_ID,
) -> Rect:
    fallback = Rect(0, 0, float(fallback_width), float(fallback_height))
    root = parse_template(template_content)

    el = find_element_by_id(root, element_id)
    if el is None:
        logger.info(f"Template has no '{element_id}' element, using full canvas {fallback_width}x{fallback_height}.")
        return fallback

    values = [_parse_length(el.get(name)) for name in ("x", "y", "width", "height")]
    if any(v is None for v in values):
        logger.warning(f"'{element_id}' is missing positional attributes {el.attrib}, using full canvas.")
        return fallback

    x, y, w, h = values
    return Rect(x, y, w, h)
