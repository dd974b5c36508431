import asyncio
import os
from time import monotonic
from typing import Any

import httpx

from expense_dashboard.core import settings
from expense_dashboard.errors import DashboardApiNotConfigured
from expense_dashboard.logger import get_logger
from expense_dashboard.models import TransactionKind

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

_COLLECTIONS = {
    TransactionKind.EXPENSE: "expenses",
    TransactionKind.INCOME: "incomes",
}
RECURRING_EXPENSES_COLLECTION = "recurring-expenses"


def _unwrap_list(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
    return []


class DashboardApiClient:
    """Async client for the dashboard backend that owns the transactions."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        bank_connections_ttl: float | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or os.getenv("DASHBOARD_API_URL") or "").rstrip("/") or None
        self.token = token or os.getenv("DASHBOARD_API_TOKEN")
        self.headers = self._build_headers()
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()
        self._cache_lock = asyncio.Lock()
        self._banks_cache: list[dict[str, Any]] | None = None
        self._banks_cache_expires_at = 0.0
        cache_ttl = bank_connections_ttl
        if cache_ttl is None:
            cache_ttl = settings.bank_connections_ttl_seconds()
        self._banks_cache_ttl = max(0.0, cache_ttl)

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            # Another task may have created it while we waited
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient(timeout=self.timeout)
                self._client = client
            return client

    def _url(self, *parts: object) -> str:
        if not self.base_url:
            raise DashboardApiNotConfigured()
        path = "/".join(str(part) for part in parts)
        return f"{self.base_url}/api/{path}"

    async def list_transactions(
        self,
        kind: TransactionKind,
        month: int,
        year: int,
    ) -> list[dict[str, Any]]:
        """Fetch the rows of one month. ``month`` is 0-based, as selected in the UI."""
        url = self._url(_COLLECTIONS[kind])
        client = await self._get_client()
        response = await client.get(
            url,
            headers=self.headers,
            params={"month": month, "year": year},
        )
        response.raise_for_status()
        rows = _unwrap_list(response.json())
        logger.debug(
            "[API] Fetched %d %s rows for %02d/%s.",
            len(rows),
            kind.value,
            month + 1,
            year,
        )
        return rows

    async def delete_transaction(self, kind: TransactionKind, item_id: int) -> None:
        url = self._url(_COLLECTIONS[kind], item_id)
        client = await self._get_client()
        response = await client.delete(url, headers=self.headers)
        response.raise_for_status()
        logger.info("[API] Deleted %s %s.", kind.value, item_id)

    async def create_transaction(
        self,
        kind: TransactionKind,
        payload: dict[str, Any],
        *,
        recurring: bool = False,
    ) -> dict[str, Any]:
        collection = RECURRING_EXPENSES_COLLECTION if recurring else _COLLECTIONS[kind]
        url = self._url(collection)
        client = await self._get_client()
        response = await client.post(url, headers=self.headers, json=payload)
        response.raise_for_status()
        created = response.json() if response.content else {}
        if not isinstance(created, dict):
            created = {}
        elif isinstance(created.get("data"), dict):
            created = created["data"]
        logger.info("[API] Created %s in %s (id=%s).", kind.value, collection, created.get("id"))
        return created

    def _get_cached_banks(self, *, allow_stale: bool = False) -> list[dict[str, Any]] | None:
        if self._banks_cache is None or self._banks_cache_ttl <= 0:
            return None
        if allow_stale:
            return self._banks_cache
        if monotonic() >= self._banks_cache_expires_at:
            return None
        return self._banks_cache

    def _cache_banks(self, banks: list[dict[str, Any]]) -> None:
        """Must be called while holding _cache_lock."""
        if self._banks_cache_ttl <= 0:
            return
        self._banks_cache = banks
        self._banks_cache_expires_at = monotonic() + self._banks_cache_ttl

    async def _fetch_bank_connections(self) -> list[dict[str, Any]]:
        url = self._url("bank-connections")
        client = await self._get_client()
        response = await client.get(url, headers=self.headers)
        response.raise_for_status()
        return _unwrap_list(response.json())

    async def get_bank_connections(self, *, use_cache: bool = True) -> list[dict[str, Any]]:
        if not self.base_url:
            return []

        if not use_cache:
            return await self._fetch_bank_connections()

        async with self._cache_lock:
            cached = self._get_cached_banks()
            if cached is not None:
                return cached
            try:
                banks = await self._fetch_bank_connections()
            except (httpx.HTTPError, ValueError) as exc:
                stale = self._get_cached_banks(allow_stale=True)
                if stale is None:
                    raise
                logger.warning("[API] Bank connections refresh failed (%s); using stale cache.", exc)
                return stale
            self._cache_banks(banks)
            return banks
