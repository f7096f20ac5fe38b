from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

class SafeAreaBounds(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    width: float
    height: float

class PlacementTransform(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    # Image centre on the editing canvas (y-down, origin top-left)
    x: float
    y: float
    scale: float = Field(gt=0)
    rotation: float = 0.0                  # degrees, clockwise
    canvas_width: float = Field(default=600, gt=0)
    canvas_height: float = Field(default=800, gt=0)
    # Safe area as rendered on the canvas; None means "use the template rectangle"
    safe_area_bounds: Optional[SafeAreaBounds] = None

class ProductProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    svg_template_url: str
    print_dpi: int = Field(gt=0)
    output_width_px: int = Field(gt=0)
    output_height_px: int = Field(gt=0)
    safe_area_id: Optional[str] = None
    preview_mask_path_id: Optional[str] = None
    cut_path_id: Optional[str] = None
    camera_hole_ids: List[str] = Field(default_factory=list)

class GenerateDesignRequest(BaseModel):
    product_id: str = Field(min_length=1)
    template_url: str = Field(min_length=1)      # URL or path under TEMPLATES_DIR
    artwork_data_url: str = Field(min_length=1)  # data:image/<type>;base64,...
    transform: PlacementTransform
    design_id: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9_-]{1,64}$")  # generated when omitted

class GenerateDesignResponse(BaseModel):
    success: bool = True
    design_id: str
    file_url: str
    raster_url: Optional[str] = None
    placed: bool = True

class ValidationWarning(BaseModel):
    type: Literal["low_resolution", "outside_safe_area", "file_too_large", "unsupported_format"]
    message: str
    severity: Literal["error", "warning", "info"]

class ValidateArtworkRequest(BaseModel):
    product_id: str
    artwork_data_url: str

class ValidateArtworkResponse(BaseModel):
    can_proceed: bool
    warnings: List[ValidationWarning] = Field(default_factory=list)
