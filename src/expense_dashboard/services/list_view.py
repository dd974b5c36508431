import asyncio

from expense_dashboard.domain.presenter import ListProjection, project
from expense_dashboard.domain.snapshot import TransactionSnapshot, build_snapshot
from expense_dashboard.domain.visibility import VisibilityState
from expense_dashboard.errors import UnknownTransaction, ViewClosed
from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger
from expense_dashboard.models import MonthScope, TransactionKind
from expense_dashboard.services.banks import BankDirectory
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from expense_dashboard.services.mutations import MutationExecutor
from expense_dashboard.services.notifications import NotificationCenter
from expense_dashboard.services.removal import AnimatedRemovalCoordinator, RemovalOutcome

logger = get_logger(__name__)


class TransactionListView:
    """Month-scoped list with optimistic deletes.

    Each ``open`` starts a fresh session with its own visibility overlay and
    removal coordinator; ``close`` discards them synchronously.
    """

    def __init__(
        self,
        client: DashboardApiClient,
        broadcaster: InvalidationBroadcaster,
        *,
        kind: TransactionKind = TransactionKind.EXPENSE,
        notifier: NotificationCenter | None = None,
        executor: MutationExecutor | None = None,
        removal_delay: float | None = None,
        strict_transitions: bool | None = None,
    ) -> None:
        self.client = client
        self.broadcaster = broadcaster
        self.kind = kind
        self.notifier = notifier
        self.executor = executor or MutationExecutor(client, kind)
        self.removal_delay = removal_delay
        self.strict_transitions = strict_transitions
        self.visibility = VisibilityState()
        self.snapshot: TransactionSnapshot | None = None
        self.directory = BankDirectory()
        self._coordinator: AnimatedRemovalCoordinator | None = None
        self._detached: list[AnimatedRemovalCoordinator] = []

    @property
    def is_open(self) -> bool:
        return self._coordinator is not None

    @property
    def scope(self) -> MonthScope | None:
        return self.snapshot.scope if self.snapshot else None

    async def open(self, scope: MonthScope) -> ListProjection:
        if self.is_open:
            self.close()

        rows, directory = await asyncio.gather(
            self.client.list_transactions(self.kind, scope.month, scope.year),
            BankDirectory.load(self.client),
        )
        self.snapshot = build_snapshot(rows, scope, self.kind)
        self.directory = directory
        self.visibility = VisibilityState()
        self._coordinator = AnimatedRemovalCoordinator(
            self.visibility,
            self.executor,
            self.broadcaster,
            scope,
            notifier=self.notifier,
            removal_delay=self.removal_delay,
            strict_transitions=self.strict_transitions,
        )
        logger.info(
            "[VIEW] Opened %s list for %02d/%s (%d rows).",
            self.kind.value,
            scope.month + 1,
            scope.year,
            len(self.snapshot),
        )
        return self.render()

    def close(self) -> None:
        coordinator = self._coordinator
        if coordinator is None:
            return
        coordinator.close()
        if coordinator.in_flight:
            self._detached.append(coordinator)
        self._detached = [c for c in self._detached if c.in_flight]
        self._coordinator = None
        logger.info("[VIEW] Closed %s list.", self.kind.value)

    async def refresh(self) -> ListProjection:
        snapshot = self._require_snapshot()
        rows = await self.client.list_transactions(self.kind, snapshot.scope.month, snapshot.scope.year)
        if not self.is_open or self.snapshot is not snapshot:
            # Closed or reopened while we were fetching
            raise ViewClosed()
        self.snapshot = build_snapshot(rows, snapshot.scope, self.kind)
        return self.render()

    def delete(self, item_id: int) -> "asyncio.Task[RemovalOutcome]":
        snapshot = self._require_snapshot()
        transaction = snapshot.get(item_id)
        if transaction is None or self.visibility.is_hidden(item_id):
            raise UnknownTransaction(item_id)
        assert self._coordinator is not None
        return self._coordinator.start(transaction)

    def render(self) -> ListProjection:
        snapshot = self._require_snapshot()
        return project(snapshot, self.visibility, directory=self.directory)

    async def drain(self) -> list[RemovalOutcome]:
        """Wait for every removal this view started, open or detached."""
        coordinators = list(self._detached)
        if self._coordinator is not None:
            coordinators.append(self._coordinator)
        outcomes: list[RemovalOutcome] = []
        for coordinator in coordinators:
            outcomes.extend(await coordinator.drain())
        self._detached = [c for c in self._detached if c.in_flight]
        return outcomes

    def _require_snapshot(self) -> TransactionSnapshot:
        if not self.is_open or self.snapshot is None:
            raise ViewClosed()
        return self.snapshot
