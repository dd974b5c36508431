from decimal import Decimal

from expense_dashboard.domain.snapshot import build_snapshot
from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger
from expense_dashboard.models import InvalidationEvent, MonthScope, TransactionKind
from expense_dashboard.services.broadcaster import InvalidationBroadcaster, Subscription

logger = get_logger(__name__)

CacheKey = tuple[TransactionKind, int, int]


class MonthlyTotals:
    """Monthly totals widget backed by the remote list.

    Totals are cached per kind and month and dropped when an invalidation
    event for that month arrives. Values always come from the backend,
    never from a locally maintained running sum.
    """

    def __init__(self, client: DashboardApiClient, broadcaster: InvalidationBroadcaster) -> None:
        self.client = client
        self.broadcaster = broadcaster
        self.invalidations = 0
        self._cache: dict[CacheKey, Decimal] = {}
        self._generations: dict[CacheKey, int] = {}
        self._subscription: Subscription | None = None

    def attach(self) -> "MonthlyTotals":
        if self._subscription is None or not self._subscription.active:
            self._subscription = self.broadcaster.subscribe(self.handle_event)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._cache.clear()

    def handle_event(self, event: InvalidationEvent) -> None:
        self.invalidations += 1
        key = (event.kind, event.month, event.year)
        self._generations[key] = self._generations.get(key, 0) + 1
        if self._cache.pop(key, None) is not None:
            logger.debug(
                "[TOTALS] Dropped cached %s total for %02d/%s.",
                event.kind.value,
                event.month + 1,
                event.year,
            )

    def cached(self, scope: MonthScope, kind: TransactionKind = TransactionKind.EXPENSE) -> Decimal | None:
        return self._cache.get((kind, scope.month, scope.year))

    async def total(self, scope: MonthScope, kind: TransactionKind = TransactionKind.EXPENSE) -> Decimal:
        key = (kind, scope.month, scope.year)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        generation = self._generations.get(key, 0)
        rows = await self.client.list_transactions(kind, scope.month, scope.year)
        value = sum((tx.amount for tx in build_snapshot(rows, scope, kind)), Decimal("0"))
        # An invalidation during the fetch means these rows may predate it
        if self._generations.get(key, 0) == generation:
            self._cache[key] = value
        else:
            logger.debug(
                "[TOTALS] Not caching %s total for %02d/%s; invalidated during fetch.",
                kind.value,
                scope.month + 1,
                scope.year,
            )
        return value
