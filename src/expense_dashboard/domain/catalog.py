from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Literal, Protocol

from expense_dashboard.models import BankConnection, Transaction

DEFAULT_CATEGORY_ICON = "💸"
BANK_FALLBACK_ICON = "🏦"

CATEGORY_ICONS = MappingProxyType({
    "Alimentação": "🍽️",
    "Transporte": "🚗",
    "Aluguel": "🏠",
    "Saúde": "⚕️",
    "Educação": "📚",
    "Lazer": "🎮",
    "Outros": DEFAULT_CATEGORY_ICON,
})

MONTH_NAMES = (
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)

CURRENCY_SYMBOL = "R$"
_CENTS = Decimal("0.01")


class BankLookup(Protocol):
    def lookup(self, item_id: str) -> BankConnection | None: ...


@dataclass(frozen=True)
class RowIcon:
    kind: Literal["glyph", "image"]
    value: str
    alt: str | None = None


def category_icon(category: str | None) -> str:
    if not category:
        return DEFAULT_CATEGORY_ICON
    return CATEGORY_ICONS.get(category, DEFAULT_CATEGORY_ICON)


def resolve_row_icon(transaction: Transaction, directory: BankLookup | None = None) -> RowIcon:
    """Pick the icon for a row: category glyph for manual rows, bank logo for imports."""
    if not transaction.item_id:
        return RowIcon(kind="glyph", value=category_icon(transaction.category))
    bank = directory.lookup(transaction.item_id) if directory else None
    if bank and bank.image_url:
        return RowIcon(kind="image", value=bank.image_url, alt=bank.name)
    return RowIcon(kind="glyph", value=BANK_FALLBACK_ICON)


def month_name(month: int) -> str:
    return MONTH_NAMES[month]


def format_currency(amount: Decimal) -> str:
    """Format as Brazilian real, e.g. ``R$ 1.234,56``."""
    quantized = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    grouped = f"{abs(quantized):,.2f}"
    # 1,234.56 -> 1.234,56
    localized = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{CURRENCY_SYMBOL} {localized}"


def format_date(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%d/%m/%Y")
