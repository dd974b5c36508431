from typing import Any

from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger
from expense_dashboard.models import InvalidationEvent, MonthScope, TransactionDraft, TransactionKind
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from expense_dashboard.services.mutations import MutationExecutor

logger = get_logger(__name__)


def _created_id(created: dict[str, Any]) -> int | None:
    raw_id = created.get("id")
    try:
        return int(raw_id) if raw_id is not None else None
    except (TypeError, ValueError):
        return None


class QuickActions:
    """Add expense, income and recurring expense from the dashboard card."""

    def __init__(
        self,
        client: DashboardApiClient,
        broadcaster: InvalidationBroadcaster,
        *,
        expenses: MutationExecutor | None = None,
        incomes: MutationExecutor | None = None,
    ) -> None:
        self.broadcaster = broadcaster
        self.expenses = expenses or MutationExecutor(client, TransactionKind.EXPENSE)
        self.incomes = incomes or MutationExecutor(client, TransactionKind.INCOME)

    async def add_expense(self, draft: TransactionDraft, scope: MonthScope) -> dict[str, Any]:
        return await self._create(self.expenses, draft, scope)

    async def add_income(self, draft: TransactionDraft, scope: MonthScope) -> dict[str, Any]:
        return await self._create(self.incomes, draft, scope)

    async def add_recurring_expense(self, draft: TransactionDraft, scope: MonthScope) -> dict[str, Any]:
        if not draft.recurrence:
            draft = draft.model_copy(update={"recurrence": "recorrente"})
        return await self._create(self.expenses, draft, scope, recurring=True)

    async def _create(
        self,
        executor: MutationExecutor,
        draft: TransactionDraft,
        scope: MonthScope,
        *,
        recurring: bool = False,
    ) -> dict[str, Any]:
        created = await executor.create(draft, scope, recurring=recurring)
        self.broadcaster.publish(InvalidationEvent(
            item_id=_created_id(created),
            month=scope.month,
            year=scope.year,
            action="created",
            kind=executor.kind,
        ))
        return created
