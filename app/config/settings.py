# config/settings.py
from pydantic_settings import BaseSettings
from typing import List, Literal, Optional

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Print Design Service"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Auth
    BASIC_AUTH_USERNAME: str = "admin"
    BASIC_AUTH_PASSWORD: str = "secret"

    # Templates & catalog
    TEMPLATES_DIR: str = "public"
    PRODUCT_CATALOG_PATH: str = "data/products.json"
    DEFAULT_SAFE_AREA_ID: str = "SAFE_AREA"

    # Compositing
    # "axis_aligned" keeps the pre-rotation bounding box, "rotated_bounds" intersects the rotated box
    ROTATION_MODE: Literal["axis_aligned", "rotated_bounds"] = "axis_aligned"
    REQUEST_TIMEOUT: int = 30
    ENDPOINT_TIMEOUT_SECONDS: int = 55

    # Env
    ENVIRONMENT: str = "development"

    # Storage: "local" or "cloudinary"
    STORAGE_TYPE: str = "local"
    LOCAL_STORAGE_PATH: str = "uploads"
    CDN_BASE_URL: str = "http://localhost:8000"

    # Cloudinary (either use CLOUDINARY_URL or the 3 fields below)
    CLOUDINARY_URL: Optional[str] = None
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "custom-designs"

    # Audit
    DESIGN_LOG_PATH: str = "logs/designs.log"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
