from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from expense_dashboard.domain.catalog import (
    BankLookup,
    RowIcon,
    format_currency,
    format_date,
    month_name,
    resolve_row_icon,
)
from expense_dashboard.domain.snapshot import TransactionSnapshot
from expense_dashboard.domain.visibility import VisibilityState
from expense_dashboard.models import Transaction, TransactionKind

DELETE_HINT = "Excluir lançamento"
IMPORTED_HINT = "Lançamento importado do Open Finance"

_KIND_NOUNS = {
    TransactionKind.EXPENSE: ("Gastos", "gasto", "encontrado"),
    TransactionKind.INCOME: ("Receitas", "receita", "encontrada"),
}


@dataclass(frozen=True)
class RowView:
    transaction: Transaction
    is_animating: bool
    is_pending: bool
    deletable: bool
    delete_hint: str
    icon: RowIcon

    def to_dict(self) -> dict[str, Any]:
        tx = self.transaction
        return {
            "id": tx.id,
            "description": tx.description or ("Despesa" if tx.kind is TransactionKind.EXPENSE else "Receita"),
            "amount": str(tx.amount),
            "amount_formatted": format_currency(tx.amount),
            "date": tx.date.isoformat() if tx.date else None,
            "date_formatted": format_date(tx.date),
            "category": tx.category,
            "recurrence": tx.recurrence,
            "origin": tx.origin.value,
            "is_animating": self.is_animating,
            "is_pending": self.is_pending,
            "deletable": self.deletable,
            "delete_hint": self.delete_hint,
            "icon": {"kind": self.icon.kind, "value": self.icon.value, "alt": self.icon.alt},
        }


@dataclass(frozen=True)
class ListProjection:
    rows: tuple[RowView, ...]
    total: Decimal
    month: int
    year: int
    kind: TransactionKind

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def heading(self) -> str:
        title, _, _ = _KIND_NOUNS[self.kind]
        return f"{title} de {month_name(self.month)} {self.year}"

    @property
    def count_label(self) -> str:
        _, noun, found = _KIND_NOUNS[self.kind]
        if self.count == 1:
            return f"1 {noun} {found}"
        return f"{self.count} {noun}s {found}s"

    @property
    def formatted_total(self) -> str:
        return format_currency(self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "heading": self.heading,
            "count": self.count,
            "count_label": self.count_label,
            "month": self.month,
            "year": self.year,
            "kind": self.kind.value,
            "rows": [row.to_dict() for row in self.rows],
            "total": str(self.total),
            "total_formatted": self.formatted_total,
        }


def project(
    snapshot: TransactionSnapshot,
    visibility: VisibilityState,
    *,
    directory: BankLookup | None = None,
) -> ListProjection:
    """Render the snapshot minus hidden rows.

    The total covers exactly the returned rows, animating ones included.
    """
    rows: list[RowView] = []
    total = Decimal("0")
    for tx in snapshot:
        if visibility.is_hidden(tx.id):
            continue
        animating = visibility.is_animating(tx.id)
        rows.append(RowView(
            transaction=tx,
            is_animating=animating,
            is_pending=visibility.pending_id == tx.id,
            deletable=tx.is_mutable and not animating,
            delete_hint=DELETE_HINT if tx.is_mutable else IMPORTED_HINT,
            icon=resolve_row_icon(tx, directory),
        ))
        total += tx.amount

    return ListProjection(
        rows=tuple(rows),
        total=total,
        month=snapshot.scope.month,
        year=snapshot.scope.year,
        kind=snapshot.kind,
    )
