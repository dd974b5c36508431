from typing import Any

import pytest

from helpers import raw_row


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def scenario_rows() -> list[dict[str, Any]]:
    return [
        raw_row(1, 50, "MANUAL", description="Mercado", category="Alimentação"),
        raw_row(2, 30, "IMPORTED", description="Uber", itemId="bank-1"),
    ]
