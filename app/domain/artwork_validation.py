# app/domain/artwork_validation.py
"""Pre-submission artwork checks.

Mirrors what the editor runs before a design is saved: size ceiling, format
allow-list and print resolution against the product's DPI. Below the absolute
pixel floor or the minimum DPI blocks submission; a shortfall against the
recommended DPI is informational only.
"""
from typing import List

from app.delivery.schemas.body import ProductProfile, ValidationWarning

MAX_FILE_SIZE = 10 * 1024 * 1024
ABSOLUTE_MIN_DIMENSION = 500
MIN_DPI = 150
RECOMMENDED_DPI = 300
VALID_TYPES = ("image/jpeg", "image/png", "image/webp", "image/svg+xml")


def validate_artwork_file(size_bytes: int, mime_type: str) -> List[ValidationWarning]:
    warnings = []
    if size_bytes > MAX_FILE_SIZE:
        warnings.append(ValidationWarning(
            type="file_too_large",
            message=f"File size ({size_bytes / 1024 / 1024:.2f}MB) exceeds 10MB limit. Please compress or resize your image.",
            severity="error",
        ))
    if mime_type not in VALID_TYPES:
        warnings.append(ValidationWarning(
            type="unsupported_format",
            message="Unsupported file format. Please use JPG, PNG, WebP, or SVG.",
            severity="error",
        ))
    return warnings


def required_pixels(profile: ProductProfile, dpi: int):
    return (
        profile.output_width_px * dpi / profile.print_dpi,
        profile.output_height_px * dpi / profile.print_dpi,
    )


def validate_artwork_resolution(width: int, height: int, profile: ProductProfile) -> List[ValidationWarning]:
    if width < ABSOLUTE_MIN_DIMENSION or height < ABSOLUTE_MIN_DIMENSION:
        return [ValidationWarning(
            type="low_resolution",
            message=(
                f"Image is too small. Your image is {width}x{height}px but must be at least "
                f"{ABSOLUTE_MIN_DIMENSION}x{ABSOLUTE_MIN_DIMENSION}px."
            ),
            severity="error",
        )]

    min_w, min_h = required_pixels(profile, MIN_DPI)
    rec_w, rec_h = required_pixels(profile, RECOMMENDED_DPI)

    if width < min_w or height < min_h:
        return [ValidationWarning(
            type="low_resolution",
            message=(
                f"Image resolution is below minimum for good print quality. Your image is {width}x{height}px. "
                f"It must be at least {round(min_w)}x{round(min_h)}px for this product."
            ),
            severity="error",
        )]
    if width < rec_w or height < rec_h:
        return [ValidationWarning(
            type="low_resolution",
            message=(
                f"Image resolution is acceptable but below recommended. Your image is {width}x{height}px. "
                f"For best quality, use at least {round(rec_w)}x{round(rec_h)}px."
            ),
            severity="info",
        )]
    return []


def can_proceed(warnings: List[ValidationWarning]) -> bool:
    return not any(w.severity == "error" for w in warnings)
