from typing import Any

from expense_dashboard.errors import AlreadyPending, MutationError
from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger
from expense_dashboard.models import MonthScope, TransactionDraft, TransactionKind

logger = get_logger(__name__)


class MutationExecutor:
    """Runs remote mutations for one kind of transaction.

    Removals are serialized per id: a second ``remove`` for an id that is
    still in flight raises ``AlreadyPending`` instead of being queued. The
    executor never rolls anything back; callers own recovery.
    """

    def __init__(self, client: DashboardApiClient, kind: TransactionKind = TransactionKind.EXPENSE) -> None:
        self.client = client
        self.kind = kind
        self._in_flight: set[int] = set()

    @property
    def in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    def is_pending(self, item_id: int) -> bool:
        return item_id in self._in_flight

    async def remove(self, item_id: int) -> None:
        if item_id in self._in_flight:
            raise AlreadyPending(item_id)
        self._in_flight.add(item_id)
        try:
            await self.client.delete_transaction(self.kind, item_id)
        except Exception as exc:
            logger.warning("[MUTATION] Remove of %s %s failed: %s", self.kind.value, item_id, exc)
            raise MutationError(item_id, exc) from exc
        finally:
            self._in_flight.discard(item_id)

    async def create(
        self,
        draft: TransactionDraft,
        scope: MonthScope,
        *,
        recurring: bool = False,
    ) -> dict[str, Any]:
        payload = draft.to_payload(self.kind)
        payload["month"] = scope.month
        payload["year"] = scope.year
        try:
            return await self.client.create_transaction(self.kind, payload, recurring=recurring)
        except Exception as exc:
            logger.warning("[MUTATION] Create of %s failed: %s", self.kind.value, exc)
            raise MutationError(None, exc) from exc
