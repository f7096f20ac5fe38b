# app/infrastructure/cv/image_process.py
import base64
import binascii
import io
import re
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from app.domain.errors import InvalidInput, ProcessingFailure
from app.domain.geometry import PixelRect, round_half_up
from app.domain.placement import CompositingPlan

SUPPORTED_ARTWORK_TYPES = ("image/png", "image/jpeg", "image/webp")
TRANSPARENT = (0, 0, 0, 0)
PNG_COMPRESS_LEVEL = 9

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)

def parse_data_url(data_url: str) -> Tuple[str, bytes]:
    m = _DATA_URL_RE.match(data_url or "")
    if not m:
        raise InvalidInput("Invalid image data URL")
    mime = m.group(1).lower()
    if mime == "image/jpg":
        mime = "image/jpeg"
    try:
        payload = base64.b64decode("".join(m.group(2).split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"Artwork payload is not valid base64: {e}") from e
    if not payload:
        raise InvalidInput("Artwork payload is empty")
    return mime, payload

def decode_artwork_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a data URL into (mime, bytes), accepting only raster types the compositor can place."""
    mime, payload = parse_data_url(data_url)
    if mime not in SUPPORTED_ARTWORK_TYPES:
        raise InvalidInput(f"Unsupported artwork type '{mime}', expected one of {', '.join(SUPPORTED_ARTWORK_TYPES)}")
    return mime, payload

def open_source_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        # Browsers render with EXIF orientation applied, so the editor saw the transposed size
        return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ProcessingFailure("decode", f"artwork could not be decoded ({type(e).__name__}: {e})", e) from e

def crop_source(image_pil: Image.Image, crop: Optional[PixelRect]) -> Image.Image:
    if crop is None or crop.width <= 0 or crop.height <= 0:
        return image_pil
    img_w, img_h = image_pil.size
    left = min(max(0, crop.left), img_w)
    top = min(max(0, crop.top), img_h)
    right = min(left + crop.width, img_w)
    bottom = min(top + crop.height, img_h)
    if right <= left or bottom <= top:
        return image_pil
    return image_pil.crop((left, top, right, bottom))

def rescale_crop(crop: Optional[PixelRect], expected: Tuple[int, int], actual: Tuple[int, int]) -> Optional[PixelRect]:
    """Move a crop planned against `expected` pixels onto a raster that came out `actual` sized."""
    if crop is None or expected == actual or 0 in expected:
        return crop
    sx = actual[0] / expected[0]
    sy = actual[1] / expected[1]
    return PixelRect(
        round_half_up(crop.left * sx),
        round_half_up(crop.top * sy),
        round_half_up(crop.width * sx),
        round_half_up(crop.height * sy),
    )

def rotate_transparent(image_pil: Image.Image, degrees: float) -> Image.Image:
    if not degrees or degrees % 360 == 0:
        return image_pil
    # Pillow rotates counter-clockwise; the editor's angle is clockwise on a y-down canvas
    return image_pil.rotate(
        -degrees,
        resample=Image.Resampling.BICUBIC,
        expand=True,
        fillcolor=TRANSPARENT,
    )

def resize_to_fill(image_pil: Image.Image, target_w: int, target_h: int) -> Image.Image:
    """Stretch to exactly target_w x target_h; aspect ratio is not preserved."""
    if image_pil.size == (target_w, target_h):
        return image_pil
    return image_pil.resize((target_w, target_h), Image.Resampling.LANCZOS)

def encode_png(image_pil: Image.Image) -> bytes:
    buf = io.BytesIO()
    image_pil.save(buf, format="PNG", optimize=True, compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()

def _stage(name: str, fn, *args):
    try:
        return fn(*args)
    except ProcessingFailure:
        raise
    except (OSError, ValueError, MemoryError) as e:
        raise ProcessingFailure(name, f"{type(e).__name__}: {e}", e) from e

def composite(source_image: Image.Image, plan: CompositingPlan) -> Optional[bytes]:
    """Run a compositing plan against the source artwork.

    Returns PNG bytes of exactly plan.final_width x plan.final_height with a
    transparent background, or None when the plan has nothing to place.
    """
    if plan.is_empty:
        return None

    img = _stage("decode", source_image.convert, "RGBA")
    if plan.rotate_before_crop:
        img = _stage("rotate", rotate_transparent, img, plan.rotation)
        # Pillow sizes the expanded canvas from floored/ceiled corners, which can be 1px off the plan
        crop = rescale_crop(plan.crop, plan.crop_space, img.size)
        img = _stage("crop", crop_source, img, crop)
    else:
        img = _stage("crop", crop_source, img, plan.crop)
        img = _stage("rotate", rotate_transparent, img, plan.rotation)
    img = _stage("resize", resize_to_fill, img, plan.final_width, plan.final_height)
    return _stage("encode", encode_png, img)
