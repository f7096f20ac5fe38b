# app/infrastructure/templates/loader.py
import asyncio
import logging
import os

import aiofiles
import aiohttp

from app.domain.errors import InvalidInput, NotFound
from app.domain.template_geometry import decode_template

logger = logging.getLogger(__name__)

class TemplateLoader:
    """Fetches SVG templates fresh for every request, from a URL or from TEMPLATES_DIR."""

    def __init__(self, templates_dir: str, timeout: int = 30):
        self.templates_dir = os.path.abspath(templates_dir)
        self.timeout = timeout

    def _local_path(self, ref: str) -> str:
        # "/templates/x.svg" is served relative to the templates root, never the filesystem root
        path = os.path.abspath(os.path.join(self.templates_dir, ref.lstrip("/\\")))
        if os.path.commonpath([path, self.templates_dir]) != self.templates_dir:
            raise InvalidInput(f"Template path '{ref}' escapes the templates directory")
        return path

    async def _fetch_remote(self, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status == 404:
                        raise NotFound(f"Template not found at {url}")
                    response.raise_for_status()
                    return decode_template(await response.read())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to fetch template '{url[:70]}': {type(e).__name__}: {e}")
            raise NotFound(f"Template could not be fetched from {url}: {type(e).__name__}") from e

    async def load(self, ref: str) -> str:
        if not ref:
            raise InvalidInput("Template reference is empty")
        if ref.startswith(("http://", "https://")):
            return await self._fetch_remote(ref)

        path = self._local_path(ref)
        if not os.path.isfile(path):
            raise NotFound(f"Template '{ref}' does not exist")
        async with aiofiles.open(path, "rb") as f:
            return decode_template(await f.read())
