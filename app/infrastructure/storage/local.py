# app/infrastructure/storage/local.py
import logging
import os
import uuid

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

class LocalStorage:
    def __init__(self, root: str, base_url: str):
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def _path(self, name: str) -> str:
        if os.path.basename(name) != name or name in ("", ".", ".."):
            raise ValueError(f"Invalid storage name '{name}'")
        return os.path.join(self.root, name)

    def url_for(self, name: str) -> str:
        return f"{self.base_url}/uploads/{name}"

    async def store(self, name: str, data: bytes) -> str:
        path = self._path(name)
        tmp_path = f"{path}.{uuid.uuid4().hex}.part"
        # Write aside then rename, readers never see a half-written file
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        url = self.url_for(name)
        logger.info(f"File saved locally: {url}")
        return url

    async def delete(self, name: str) -> None:
        await aiofiles.os.remove(self._path(name))
        logger.info(f"File deleted locally: {name}")
