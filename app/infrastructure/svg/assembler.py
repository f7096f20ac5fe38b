# app/infrastructure/svg/assembler.py
import base64
from typing import Optional

from app.domain.errors import InvalidInput
from app.domain.placement import CompositingPlan

CLOSING_TAG = "</svg>"

IMAGE_ELEMENT = """
  <image
    href="{href}"
    x="{x}"
    y="{y}"
    width="{width}"
    height="{height}"
    preserveAspectRatio="none"
  />
"""

def png_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

def assemble(template_content: str, png_bytes: Optional[bytes], plan: CompositingPlan) -> str:
    """Embed the composited raster just before the template's closing root tag.

    Everything else in the template is left untouched. With nothing to place
    the template comes back as-is.
    """
    idx = template_content.rfind(CLOSING_TAG)
    if idx < 0:
        raise InvalidInput("Template has no closing </svg> tag")
    if png_bytes is None or plan.is_empty:
        return template_content

    element = IMAGE_ELEMENT.format(
        href=png_data_url(png_bytes),
        x=plan.position_x,
        y=plan.position_y,
        width=plan.final_width,
        height=plan.final_height,
    )
    return template_content[:idx] + element + template_content[idx:]
