from pydantic import BaseModel, Field

from expense_dashboard.models import MonthScope, TransactionDraft


class OpenViewRequest(BaseModel):
    month: int = Field(ge=0, le=11)
    year: int = Field(ge=1900, le=9999)

    def to_scope(self) -> MonthScope:
        return MonthScope(month=self.month, year=self.year)


class QuickActionRequest(BaseModel):
    draft: TransactionDraft
    month: int = Field(ge=0, le=11)
    year: int = Field(ge=1900, le=9999)

    def to_scope(self) -> MonthScope:
        return MonthScope(month=self.month, year=self.year)
