from decimal import Decimal

import pytest

from expense_dashboard.domain.catalog import (
    BANK_FALLBACK_ICON,
    DEFAULT_CATEGORY_ICON,
    category_icon,
    format_currency,
    month_name,
    resolve_row_icon,
)
from expense_dashboard.models import Transaction
from expense_dashboard.services.banks import BankDirectory


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("0"), "R$ 0,00"),
        (Decimal("50"), "R$ 50,00"),
        (Decimal("1234.5"), "R$ 1.234,50"),
        (Decimal("1234567.891"), "R$ 1.234.567,89"),
        (Decimal("-12.345"), "-R$ 12,35"),
    ],
)
def test_format_currency(amount: Decimal, expected: str) -> None:
    assert format_currency(amount) == expected


def test_category_icon_is_total() -> None:
    assert category_icon("Transporte") == "🚗"
    assert category_icon("Viagem") == DEFAULT_CATEGORY_ICON
    assert category_icon(None) == DEFAULT_CATEGORY_ICON


def test_month_name() -> None:
    assert month_name(0) == "Janeiro"
    assert month_name(11) == "Dezembro"


def test_row_icon_for_manual_row_uses_category() -> None:
    tx = Transaction(id=1, amount=Decimal("5"), category="Lazer")
    icon = resolve_row_icon(tx, BankDirectory())
    assert icon.kind == "glyph"
    assert icon.value == "🎮"


def test_row_icon_for_imported_row_uses_bank_logo() -> None:
    directory = BankDirectory.from_payload([
        {"id": "bank-1", "name": "Nubank", "imageUrl": "https://img/nubank.png"},
        {"id": "bank-2", "name": "Sem logo"},
    ])
    with_logo = Transaction(id=1, amount=Decimal("5"), item_id="bank-1")
    without_logo = Transaction(id=2, amount=Decimal("5"), item_id="bank-2")
    unknown = Transaction(id=3, amount=Decimal("5"), item_id="bank-3")

    icon = resolve_row_icon(with_logo, directory)
    assert (icon.kind, icon.value, icon.alt) == ("image", "https://img/nubank.png", "Nubank")
    assert resolve_row_icon(without_logo, directory).value == BANK_FALLBACK_ICON
    assert resolve_row_icon(unknown, directory).value == BANK_FALLBACK_ICON
    assert resolve_row_icon(unknown, None).value == BANK_FALLBACK_ICON
