# app/domain/placement.py
"""Canvas-to-production coordinate mapping.

Three spaces are involved: source image pixels, the editing canvas the user
dragged the image around on, and production pixels of the printable output.
`compute_placement` turns one placement snapshot into a `CompositingPlan`
that the raster compositor and document assembler can execute without
knowing anything about the editing session. Pure, no I/O.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from app.delivery.schemas.body import PlacementTransform, ProductProfile
from app.domain.geometry import PixelRect, Rect, round_half_up, rotated_extent

AXIS_ALIGNED = "axis_aligned"
ROTATED_BOUNDS = "rotated_bounds"
ROTATION_MODES = (AXIS_ALIGNED, ROTATED_BOUNDS)


@dataclass(frozen=True)
class CompositingPlan:
    scale_x: float
    scale_y: float
    safe_area_canvas: Rect
    safe_area_production: Rect
    image_bounds: Rect
    intersection: Rect
    crop: Optional[PixelRect]
    # Size of the raster the crop indexes: the source, or its rotated extent
    crop_space: Tuple[int, int]
    rotation: float
    rotate_before_crop: bool
    final_width: int
    final_height: int
    position_x: int
    position_y: int

    @property
    def is_empty(self) -> bool:
        return self.final_width <= 0 or self.final_height <= 0

    def summary(self) -> dict:
        return {
            "scale": (self.scale_x, self.scale_y),
            "safe_area_production": self.safe_area_production.as_dict(),
            "image_bounds": self.image_bounds.as_dict(),
            "intersection": self.intersection.as_dict(),
            "crop": self.crop.box if self.crop else None,
            "rotation": self.rotation,
            "final": (self.final_width, self.final_height),
            "position": (self.position_x, self.position_y),
        }


def production_scale(profile: ProductProfile, placement: PlacementTransform) -> Tuple[float, float]:
    return (
        profile.output_width_px / placement.canvas_width,
        profile.output_height_px / placement.canvas_height,
    )


def image_bounds_on_canvas(placement: PlacementTransform, width: float, height: float) -> Rect:
    w = width * placement.scale
    h = height * placement.scale
    return Rect(placement.x - w / 2, placement.y - h / 2, w, h)


def crop_in_source(intersection: Rect, image_bounds: Rect, source_w: int, source_h: int) -> Optional[PixelRect]:
    """Map the visible part of the image bounding box back to source pixels, clamped to the image."""
    if intersection.is_empty or image_bounds.is_empty:
        return None

    left = round_half_up((intersection.x - image_bounds.x) / image_bounds.width * source_w)
    top = round_half_up((intersection.y - image_bounds.y) / image_bounds.height * source_h)
    width = round_half_up(intersection.width / image_bounds.width * source_w)
    height = round_half_up(intersection.height / image_bounds.height * source_h)

    left = min(max(0, left), source_w)
    top = min(max(0, top), source_h)
    width = min(width, source_w - left)
    height = min(height, source_h - top)
    if width <= 0 or height <= 0:
        return None
    return PixelRect(left, top, width, height)


def compute_placement(
    profile: ProductProfile,
    placement: PlacementTransform,
    safe_area_template: Rect,
    source_size: Tuple[int, int],
    rotation_mode: str = AXIS_ALIGNED,
) -> CompositingPlan:
    if rotation_mode not in ROTATION_MODES:
        raise ValueError(f"Unknown rotation mode '{rotation_mode}', expected one of {ROTATION_MODES}")

    scale_x, scale_y = production_scale(profile, placement)

    if placement.safe_area_bounds is not None:
        b = placement.safe_area_bounds
        safe_canvas = Rect(b.x, b.y, b.width, b.height)
        safe_production = safe_canvas.scaled(scale_x, scale_y).rounded()
    else:
        # Template rectangle is already in output units
        safe_canvas = Rect(0, 0, placement.canvas_width, placement.canvas_height)
        safe_production = safe_area_template

    source_w, source_h = source_size
    rotation = placement.rotation or 0.0
    rotate_before_crop = rotation_mode == ROTATED_BOUNDS and rotation % 360 != 0
    if rotate_before_crop:
        # Crop happens in the expanded, already-rotated raster
        ext_w, ext_h = rotated_extent(source_w, source_h, rotation)
        source_w, source_h = round_half_up(ext_w), round_half_up(ext_h)

    bounds = image_bounds_on_canvas(placement, source_w, source_h)
    intersection = bounds.intersect(safe_canvas)
    crop = crop_in_source(intersection, bounds, source_w, source_h)

    if intersection.is_empty:
        final_w = final_h = 0
    else:
        final_w = max(0, round_half_up(intersection.width * scale_x))
        final_h = max(0, round_half_up(intersection.height * scale_y))

    pos_x = round_half_up(safe_production.x) + round_half_up((intersection.x - safe_canvas.x) * scale_x)
    pos_y = round_half_up(safe_production.y) + round_half_up((intersection.y - safe_canvas.y) * scale_y)

    return CompositingPlan(
        scale_x=scale_x,
        scale_y=scale_y,
        safe_area_canvas=safe_canvas,
        safe_area_production=safe_production,
        image_bounds=bounds,
        intersection=intersection,
        crop=crop,
        crop_space=(source_w, source_h),
        rotation=rotation,
        rotate_before_crop=rotate_before_crop,
        final_width=final_w,
        final_height=final_h,
        position_x=pos_x,
        position_y=pos_y,
    )
