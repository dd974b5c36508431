from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger
from expense_dashboard.models import BankConnection

logger = get_logger(__name__)


class BankDirectory:
    """Connected banks by item id. Only used for row icons."""

    def __init__(self, connections: Iterable[BankConnection] = ()) -> None:
        self._by_id = {connection.id: connection for connection in connections}

    def __len__(self) -> int:
        return len(self._by_id)

    def lookup(self, item_id: str) -> BankConnection | None:
        return self._by_id.get(str(item_id))

    @classmethod
    def from_payload(cls, raw_connections: Iterable[dict[str, Any]]) -> "BankDirectory":
        connections: list[BankConnection] = []
        for raw in raw_connections:
            try:
                connections.append(BankConnection.model_validate(raw))
            except ValidationError:
                logger.warning("[BANKS] Skipping malformed bank connection: %s", raw)
        return cls(connections)

    @classmethod
    async def load(cls, client: DashboardApiClient) -> "BankDirectory":
        try:
            raw_connections = await client.get_bank_connections()
        except (httpx.HTTPError, ValueError) as exc:
            # Undecodable body; json.JSONDecodeError is a ValueError
            logger.error("[BANKS] Error fetching bank connections: %s", exc)
            return cls()
        return cls.from_payload(raw_connections)
