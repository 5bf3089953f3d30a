"""Remote catalog source contract and its HTTP client."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Protocol
from urllib.parse import quote

import aiohttp

from catalog_cache.core.errors import RemoteFault
from catalog_cache.domain.catalog import CatalogKind, EssentialKind, Record


class CatalogSource(Protocol):
    """Supplies essential lists, full lists and single-item detail records.

    Any failure (including timeouts) must surface as ``RemoteFault``.
    """

    async def fetch_essential(self, kind: EssentialKind) -> List[Record]:
        """Ordered, bounded list of lightweight summary records."""

    async def fetch_full(self, kind: CatalogKind) -> List[Record]:
        """Complete list of detailed records."""

    async def fetch_detail(self, kind: CatalogKind, item_id: str) -> Record:
        """Single detailed record."""


class HttpCatalogSource:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        essential_limit: int = 10,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/")
        self._timeout = timeout
        self._essential_limit = essential_limit
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _get_json(self, operation: str, path: str, params: Optional[dict] = None) -> Any:
        if not self._base_url:
            raise RemoteFault(operation, "CATALOG_API_BASE is not configured")

        url = f"{self._base_url}{path}"
        session = self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise RemoteFault(operation, f"HTTP {resp.status}: {text[:200]}")
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RemoteFault(operation, str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise RemoteFault(operation, f"invalid JSON: {exc}") from exc

    @staticmethod
    def _as_list(operation: str, payload: Any) -> List[Record]:
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise RemoteFault(operation, "expected a list of records")
        return payload

    async def fetch_essential(self, kind: EssentialKind) -> List[Record]:
        operation = f"fetch_essential({kind.value})"
        payload = await self._get_json(
            operation,
            f"/essential/{kind.value}",
            params={"limit": self._essential_limit},
        )
        return self._as_list(operation, payload)[: self._essential_limit]

    async def fetch_full(self, kind: CatalogKind) -> List[Record]:
        operation = f"fetch_full({kind.value})"
        payload = await self._get_json(operation, f"/full/{kind.value}")
        return self._as_list(operation, payload)

    async def fetch_detail(self, kind: CatalogKind, item_id: str) -> Record:
        operation = f"fetch_detail({kind.value}, {item_id})"
        payload = await self._get_json(operation, f"/{kind.value}/{quote(str(item_id), safe='')}")
        if not isinstance(payload, dict):
            raise RemoteFault(operation, "expected a record")
        return payload

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


__all__ = ["CatalogSource", "HttpCatalogSource"]
