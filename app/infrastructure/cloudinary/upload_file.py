# app/infrastructure/cloudinary/upload_file.py
import asyncio
import os
from concurrent.futures import Executor
from io import BytesIO
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import cloudinary, cloudinary.uploader

from app.infrastructure.storage.sink import StorageConfig, content_type_for


def parse_cloudinary_url(url: str) -> Tuple[str, str, str]:
    """cloudinary://<api_key>:<api_secret>@<cloud_name> -> (cloud_name, api_key, api_secret)"""
    parsed = urlparse(url)
    cloud_name = parsed.netloc.rsplit("@", 1)[-1]
    if parsed.scheme != "cloudinary" or not (parsed.username and parsed.password and cloud_name):
        raise ValueError("CLOUDINARY_URL must look like cloudinary://<api_key>:<api_secret>@<cloud_name>")
    return cloud_name, unquote(parsed.username), unquote(parsed.password)

def configure_cloudinary(config: StorageConfig) -> None:
    # Supports CLOUDINARY_URL or split vars
    if config.cloudinary_url:
        cloud_name, api_key, api_secret = parse_cloudinary_url(config.cloudinary_url)
    else:
        cloud_name = config.cloudinary_cloud_name
        api_key = config.cloudinary_api_key
        api_secret = config.cloudinary_api_secret
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        secure=True,
    )

def upload_bytes(
    data: bytes,
    name: str,
    folder: str = "custom-designs",
    overwrite: bool = True,
    tags: Optional[list[str]] = None,
) -> str:
    base, ext = os.path.splitext(name)
    fmt = ext.lstrip(".").lower()
    content_type = content_type_for(name)

    if content_type == "image/svg+xml":
        # Raw keeps the document byte-exact; image uploads may get rasterised
        resource_type = "raw"
        public_id = name
        extra = {}
    else:
        resource_type = "image"
        public_id = base
        extra = {"format": fmt}

    buf = BytesIO(data)
    res = cloudinary.uploader.upload(
        buf,
        resource_type=resource_type,
        folder=folder,
        public_id=public_id,
        overwrite=overwrite,
        tags=tags or [],
        **extra,
    )
    return res["secure_url"]


class CloudinaryStorage:
    def __init__(self, config: StorageConfig, executor: Optional[Executor] = None):
        configure_cloudinary(config)
        self.folder = config.cloudinary_folder
        self.executor = executor

    async def store(self, name: str, data: bytes) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, upload_bytes, data, name, self.folder)

    async def delete(self, name: str) -> None:
        base, _ = os.path.splitext(name)
        is_raw = content_type_for(name) == "image/svg+xml"
        public_id = f"{self.folder}/{name if is_raw else base}"
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            self.executor,
            lambda: cloudinary.uploader.destroy(public_id, resource_type="raw" if is_raw else "image"),
        )
