# app/config/catalog.py
import json
import logging
from typing import Dict, List

from pydantic import TypeAdapter

from app.delivery.schemas.body import ProductProfile
from app.domain.errors import NotFound

logger = logging.getLogger(__name__)

_PROFILES = TypeAdapter(List[ProductProfile])

class ProductCatalog:
    """Static product id -> ProductProfile mapping, loaded once at start-up."""

    def __init__(self, profiles: List[ProductProfile]):
        self._by_id: Dict[str, ProductProfile] = {p.id: p for p in profiles}

    @classmethod
    def from_file(cls, path: str) -> "ProductCatalog":
        with open(path, "r", encoding="utf-8") as f:
            profiles = _PROFILES.validate_python(json.load(f))
        logger.info(f"Loaded {len(profiles)} product profiles from {path}.")
        return cls(profiles)

    def get(self, product_id: str) -> ProductProfile:
        try:
            return self._by_id[product_id]
        except KeyError:
            raise NotFound(f"Product {product_id} not found") from None

    def all(self) -> List[ProductProfile]:
        return list(self._by_id.values())
