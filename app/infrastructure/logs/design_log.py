# app/infrastructure/logs/design_log.py
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

import aiofiles

logger = logging.getLogger(__name__)

class DesignLog:
    """Append-only JSON-lines record of generated designs."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        self._lock = asyncio.Lock()

    async def append(self, entry: Dict) -> None:
        record = dict(entry)
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        line = json.dumps(record) + "\n"
        try:
            async with self._lock:
                async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                    await f.write(line)
            logger.info(f"Design log saved: {record.get('design_id')}")
        except OSError as e:
            # Audit trail only, the design itself is already stored
            logger.error(f"Error saving design log for {record.get('design_id')}: {e}")

    async def recent(self, limit: int = 100) -> List[Dict]:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return []
        lines = [ln for ln in content.splitlines() if ln.strip()]
        return [json.loads(ln) for ln in reversed(lines[-limit:])]

    async def find(self, design_id: str, limit: int = 1000) -> Optional[Dict]:
        for entry in await self.recent(limit):
            if entry.get("design_id") == design_id:
                return entry
        return None
