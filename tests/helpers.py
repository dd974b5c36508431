from typing import Any
from unittest.mock import AsyncMock


def raw_row(
    item_id: int,
    amount: str | float,
    source: str = "MANUAL",
    **extra: Any,
) -> dict[str, Any]:
    row: dict[str, Any] = {"id": item_id, "valor": amount, "source": source}
    row.update(extra)
    return row


def make_client(
    rows: list[dict[str, Any]] | None = None,
    banks: list[dict[str, Any]] | None = None,
) -> AsyncMock:
    client = AsyncMock()
    client.configured = True
    client.list_transactions = AsyncMock(return_value=list(rows or []))
    client.get_bank_connections = AsyncMock(return_value=list(banks or []))
    client.delete_transaction = AsyncMock(return_value=None)
    client.create_transaction = AsyncMock(return_value={"id": 99})
    client.aclose = AsyncMock()
    return client
