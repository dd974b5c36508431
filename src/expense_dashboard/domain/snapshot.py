from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from expense_dashboard.logger import get_logger
from expense_dashboard.models import MonthScope, Transaction, TransactionKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionSnapshot:
    """Read-only, ordered rows of one month as served by the backend."""

    scope: MonthScope
    kind: TransactionKind
    transactions: tuple[Transaction, ...] = ()
    _index: dict[int, Transaction] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {tx.id: tx for tx in self.transactions})

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def ids(self) -> frozenset[int]:
        return frozenset(self._index)

    def get(self, item_id: int) -> Transaction | None:
        return self._index.get(item_id)


def parse_transaction(raw: dict[str, Any], kind: TransactionKind) -> Transaction | None:
    try:
        return Transaction.model_validate({"kind": kind, **raw})
    except ValidationError as exc:
        logger.warning(
            "[SNAPSHOT] Skipping malformed %s row id=%s: %s",
            kind.value,
            raw.get("id", "unknown"),
            exc.errors()[0].get("msg") if exc.errors() else exc,
        )
        return None


def build_snapshot(
    raw_rows: Iterable[dict[str, Any]],
    scope: MonthScope,
    kind: TransactionKind = TransactionKind.EXPENSE,
) -> TransactionSnapshot:
    transactions: list[Transaction] = []
    seen: set[int] = set()
    for raw in raw_rows:
        if not isinstance(raw, dict):
            logger.warning("[SNAPSHOT] Unexpected row type: %s.", type(raw).__name__)
            continue
        tx = parse_transaction(raw, kind)
        if tx is None:
            continue
        if tx.id in seen:
            logger.warning("[SNAPSHOT] Duplicate transaction id %s; keeping the first row.", tx.id)
            continue
        seen.add(tx.id)
        transactions.append(tx)

    logger.debug(
        "[SNAPSHOT] Built %s snapshot for %02d/%s with %d rows.",
        kind.value,
        scope.month + 1,
        scope.year,
        len(transactions),
    )
    return TransactionSnapshot(scope=scope, kind=kind, transactions=tuple(transactions))
