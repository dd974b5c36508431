from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Origin(str, Enum):
    MANUAL = "MANUAL"
    IMPORTED = "IMPORTED"


class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class Transaction(BaseModel):
    """A row of the month-scoped list, as served by the backend.

    Wire names come from the backend payload (``valor``, ``data``, ``tipo``,
    ``source``, ``itemId``); Python names are accepted too.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    amount: Decimal = Field(alias="valor")
    kind: TransactionKind = TransactionKind.EXPENSE
    category: str | None = None
    description: str | None = None
    date: datetime | None = Field(default=None, alias="data")
    recurrence: str | None = Field(default=None, alias="tipo")
    origin: Origin = Field(default=Origin.IMPORTED, alias="source")
    item_id: str | None = Field(default=None, alias="itemId")

    @field_validator("origin", mode="before")
    @classmethod
    def _coerce_origin(cls, value: object) -> object:
        # Anything the backend does not label MANUAL is read-only here
        if isinstance(value, Origin):
            return value
        if isinstance(value, str) and value.upper() == Origin.MANUAL.value:
            return Origin.MANUAL
        return Origin.IMPORTED

    @field_validator("item_id", mode="before")
    @classmethod
    def _stringify_item_id(cls, value: object) -> object:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def is_mutable(self) -> bool:
        return self.origin is Origin.MANUAL


class MonthScope(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=0, le=11)
    year: int = Field(ge=1900, le=9999)


class BankConnection(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        return str(value) if value is not None else value


class InvalidationEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: int | None
    month: int
    year: int
    action: Literal["deleted", "created"] = "deleted"
    kind: TransactionKind = TransactionKind.EXPENSE

    @property
    def scope(self) -> MonthScope:
        return MonthScope(month=self.month, year=self.year)


class TransactionDraft(BaseModel):
    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1)
    category: str | None = None
    date: datetime | None = None
    recurrence: str | None = None

    def to_payload(self, kind: TransactionKind) -> dict[str, object]:
        payload: dict[str, object] = {
            "valor": str(self.amount),
            "description": self.description,
            "source": Origin.MANUAL.value,
            "kind": kind.value,
        }
        if self.category:
            payload["category"] = self.category
        if self.date:
            payload["data"] = self.date.isoformat()
        if self.recurrence:
            payload["tipo"] = self.recurrence
        return payload
