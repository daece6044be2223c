"""Shared plumbing for the REST importers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from loopwell.core.errors import ImportSourceError
from loopwell.core.logging_config import get_logger

from .types import MigrationItem

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class ContentImporter(ABC):
    """Reads documents from a third-party platform.

    Args:
        api_key: Platform API key, used for this import only
        base_url: API root; overridable for tests
        client: Optional preconfigured ``httpx.AsyncClient``. A client passed
            in is not closed by the importer.
        timeout: Request timeout in seconds for the internal client
    """

    platform: str = ""
    platform_label: str = ""
    default_base_url: str = ""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> "ContentImporter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Request headers including the platform's Authorization scheme."""

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.get(f"{self.base_url}{path}", headers=self._headers(), params=params)

    async def _get_required(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a resource the import cannot do without.

        Raises:
            ImportSourceError: transport failure or non-2xx response.
        """
        try:
            response = await self._request(path, params)
        except httpx.HTTPError as e:
            raise ImportSourceError(self.platform_label, f"request to {path} failed: {e}") from e
        if not response.is_success:
            raise ImportSourceError(
                self.platform_label, f"API error: {response.status_code} {response.reason_phrase} - {response.text}"
            )
        return response.json()

    async def _get_optional(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a resource whose absence only skips part of the import."""
        try:
            response = await self._request(path, params)
        except httpx.HTTPError as e:
            logger.warning(f"{self.platform_label} request to {path} failed: {e}")
            return None
        if not response.is_success:
            logger.warning(f"{self.platform_label} request to {path} returned {response.status_code}, skipping")
            return None
        return response.json()

    @abstractmethod
    async def fetch_items(self) -> List[MigrationItem]:
        """Read every document and convert it to migration items."""
