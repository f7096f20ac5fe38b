# app/infrastructure/storage/sink.py
import mimetypes
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional, Protocol

CONTENT_TYPES = {
    ".png": "image/png",
    ".svg": "image/svg+xml",
}

def content_type_for(name: str) -> str:
    for ext, ctype in CONTENT_TYPES.items():
        if name.lower().endswith(ext):
            return ctype
    return mimetypes.guess_type(name)[0] or "application/octet-stream"


class StorageSink(Protocol):
    async def store(self, name: str, data: bytes) -> str: ...

    async def delete(self, name: str) -> None: ...


@dataclass(frozen=True)
class StorageConfig:
    """Resolved once at start-up and handed to the sink; nothing reads settings afterwards."""

    storage_type: str = "local"
    local_path: str = "uploads"
    base_url: str = "http://localhost:8000"
    cloudinary_url: Optional[str] = None
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "custom-designs"

    @classmethod
    def from_settings(cls, settings) -> "StorageConfig":
        return cls(
            storage_type=settings.STORAGE_TYPE.lower(),
            local_path=settings.LOCAL_STORAGE_PATH,
            base_url=settings.CDN_BASE_URL,
            cloudinary_url=settings.CLOUDINARY_URL,
            cloudinary_cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            cloudinary_api_key=settings.CLOUDINARY_API_KEY,
            cloudinary_api_secret=settings.CLOUDINARY_API_SECRET,
            cloudinary_folder=settings.CLOUDINARY_FOLDER,
        )


def build_storage(config: StorageConfig, executor: Optional[Executor] = None) -> StorageSink:
    if config.storage_type == "local":
        from app.infrastructure.storage.local import LocalStorage
        return LocalStorage(config.local_path, config.base_url)
    if config.storage_type == "cloudinary":
        from app.infrastructure.cloudinary.upload_file import CloudinaryStorage
        return CloudinaryStorage(config, executor=executor)
    raise ValueError(f"Unknown STORAGE_TYPE '{config.storage_type}', expected 'local' or 'cloudinary'")
