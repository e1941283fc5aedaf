"""
Vehicle catalog lookups against the public FIPE price table API.

Brands, then models of a brand, then model-years of a brand+model. Each
lookup is cached per key combination; a lookup whose prerequisite key has
not been chosen yet is disabled and returns an empty list.
"""

import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

import httpx

from .errors import CatalogError

logger = logging.getLogger(__name__)

FIPE_API_URL = "https://parallelum.com.br/fipe/api/v1/carros/marcas"
CACHE_TTL_SECONDS = 60 * 60 * 24


class CatalogItem(NamedTuple):
    code: str
    name: str


def _items(payload: List[Dict[str, Any]]) -> List[CatalogItem]:
    return [CatalogItem(str(p["codigo"]), p["nome"]) for p in payload]


class VehicleCatalog:
    """Cascading brand/model/year reference data."""

    def __init__(
        self,
        base_url: str = FIPE_API_URL,
        ttl: float = CACHE_TTL_SECONDS,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.client = client or httpx.Client(timeout=10.0)
        self.clock = clock
        self._cache: Dict[Tuple[str, ...], Tuple[float, Any]] = {}

    def _get(self, key: Tuple[str, ...], url: str, error_message: str) -> Any:
        cached = self._cache.get(key)
        if cached is not None and cached[0] > self.clock():
            logger.debug(f"Catalog cache hit for {key}")
            return cached[1]

        logger.info(f"Fetching catalog {url}")
        try:
            response = self.client.get(url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"{error_message}: {e}")
            raise CatalogError(error_message)

        self._cache[key] = (self.clock() + self.ttl, payload)
        return payload

    def brands(self) -> List[CatalogItem]:
        payload = self._get(("brands",), self.base_url, "Erro ao buscar marcas FIPE")
        return _items(payload)

    def models(self, brand_code: Optional[str]) -> List[CatalogItem]:
        if not brand_code:
            return []
        payload = self._get(
            ("models", brand_code),
            f"{self.base_url}/{brand_code}/modelos",
            "Erro ao buscar modelos FIPE",
        )
        return _items(payload.get("modelos", []))

    def years(
        self, brand_code: Optional[str], model_code: Optional[str]
    ) -> List[CatalogItem]:
        if not brand_code or not model_code:
            return []
        payload = self._get(
            ("years", brand_code, model_code),
            f"{self.base_url}/{brand_code}/modelos/{model_code}/anos",
            "Erro ao buscar anos FIPE",
        )
        return _items(payload)

    def clear(self) -> None:
        self._cache.clear()
