import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from expense_dashboard.core import settings
from expense_dashboard.domain.visibility import VisibilityState
from expense_dashboard.errors import (
    AlreadyPending,
    ImportedItemImmutable,
    InvalidTransition,
    MutationError,
    ViewClosed,
)
from expense_dashboard.logger import get_logger
from expense_dashboard.models import InvalidationEvent, MonthScope, Transaction
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from expense_dashboard.services.mutations import MutationExecutor
from expense_dashboard.services.notifications import NotificationCenter

logger = get_logger(__name__)

RemovalStatus = Literal["removed", "rolled_back", "rejected"]


@dataclass(frozen=True)
class RemovalOutcome:
    item_id: int
    status: RemovalStatus
    error: Exception | None = None


@dataclass
class _RemovalCycle:
    item_id: int
    timer_fired: bool = False
    confirmed: bool = False
    committed: bool = False

    @property
    def ready_to_commit(self) -> bool:
        return self.timer_fired and self.confirmed and not self.committed


class AnimatedRemovalCoordinator:
    """Optimistic delete for one open list view.

    A delete marks the row as animating right away, then races two tasks: the
    visual removal timer and the remote ``remove``. The row becomes hidden
    only once both have completed successfully. A failed remove reverts the
    row immediately, whether or not the timer already fired, and is reported
    through the notification center.

    ``close()`` detaches the coordinator from its view: in-flight removes keep
    running against the backend, but their results no longer touch the view.
    """

    def __init__(
        self,
        visibility: VisibilityState,
        executor: MutationExecutor,
        broadcaster: InvalidationBroadcaster,
        scope: MonthScope,
        *,
        notifier: NotificationCenter | None = None,
        removal_delay: float | None = None,
        strict_transitions: bool | None = None,
    ) -> None:
        self.visibility = visibility
        self.executor = executor
        self.broadcaster = broadcaster
        self.scope = scope
        self.notifier = notifier
        self.removal_delay = settings.removal_delay_seconds() if removal_delay is None else removal_delay
        self.strict_transitions = (
            settings.strict_transitions() if strict_transitions is None else strict_transitions
        )
        self._tasks: set[asyncio.Task[RemovalOutcome]] = set()
        self.alive = True

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def start(self, transaction: Transaction) -> "asyncio.Task[RemovalOutcome]":
        """Enter the animating state and schedule the removal. Must run inside the event loop."""
        if not self.alive:
            raise ViewClosed()

        item_id = transaction.id
        if not transaction.is_mutable:
            logger.info("[REMOVE] Rejected delete of imported transaction %s.", item_id)
            raise ImportedItemImmutable(item_id)
        if self.visibility.is_animating(item_id) or self.executor.is_pending(item_id):
            logger.info("[REMOVE] Delete of %s already in progress.", item_id)
            raise AlreadyPending(item_id)

        self.visibility.begin_animating(item_id)
        logger.debug("[REMOVE] %s animating (delay %.3fs).", item_id, self.removal_delay)

        task = asyncio.create_task(
            self._run(item_id),
            name=f"remove-{self.executor.kind.value}-{item_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def remove(self, transaction: Transaction) -> RemovalOutcome:
        return await self.start(transaction)

    async def drain(self) -> list[RemovalOutcome]:
        if not self._tasks:
            return []
        results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return [result for result in results if isinstance(result, RemovalOutcome)]

    def close(self) -> None:
        if self.alive and self._tasks:
            logger.info("[REMOVE] View closed with %d removal(s) still in flight.", len(self._tasks))
        self.alive = False
        self.visibility.reset()

    async def _run(self, item_id: int) -> RemovalOutcome:
        cycle = _RemovalCycle(item_id)
        timer = asyncio.ensure_future(asyncio.sleep(self.removal_delay))
        mutation = asyncio.ensure_future(self.executor.remove(item_id))
        pending: set[asyncio.Future] = {timer, mutation}
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                if timer in done:
                    cycle.timer_fired = True
                if mutation in done:
                    error = mutation.exception()
                    if error is not None:
                        # Failure wins over the timer, fired or not
                        return self._roll_back(item_id, error)
                    cycle.confirmed = True
                if cycle.ready_to_commit:
                    self._commit(cycle)
        finally:
            if not timer.done():
                timer.cancel()

        self._publish_removed(item_id)
        return RemovalOutcome(item_id=item_id, status="removed")

    def _commit(self, cycle: _RemovalCycle) -> None:
        cycle.committed = True
        if not self.alive:
            logger.debug("[REMOVE] %s confirmed after view close; skipping hide.", cycle.item_id)
            return
        self._apply(self.visibility.commit_hidden, cycle.item_id)

    def _roll_back(self, item_id: int, error: BaseException) -> RemovalOutcome:
        if isinstance(error, AlreadyPending):
            # Another view holds the remove for this id
            if self.alive:
                self._apply(self.visibility.revert, item_id)
            return RemovalOutcome(item_id=item_id, status="rejected", error=error)

        if not isinstance(error, MutationError):
            error = MutationError(item_id, error)
        logger.warning("[REMOVE] Rolling back %s: %s", item_id, error.cause)
        if self.alive:
            self._apply(self.visibility.revert, item_id)
            if self.notifier is not None:
                self.notifier.push(
                    f"Erro ao excluir lançamento #{item_id}. O item foi restaurado.",
                    item_id=item_id,
                )
        return RemovalOutcome(item_id=item_id, status="rolled_back", error=error)

    def _apply(self, transition: Callable[[int], None], item_id: int) -> None:
        try:
            transition(item_id)
        except InvalidTransition as exc:
            if self.strict_transitions:
                raise
            logger.warning("[REMOVE] Ignoring invalid transition: %s", exc)

    def _publish_removed(self, item_id: int) -> None:
        self.broadcaster.publish(InvalidationEvent(
            item_id=item_id,
            month=self.scope.month,
            year=self.scope.year,
            action="deleted",
            kind=self.executor.kind,
        ))
