from collections.abc import Callable
from types import TracebackType

from expense_dashboard.logger import get_logger
from expense_dashboard.models import InvalidationEvent, MonthScope

logger = get_logger(__name__)

Listener = Callable[[InvalidationEvent], None]


class Subscription:
    """Handle for one registered listener. Close it when its owner goes away."""

    def __init__(
        self,
        broadcaster: "InvalidationBroadcaster",
        listener: Listener,
        scope: MonthScope | None,
    ) -> None:
        self._broadcaster = broadcaster
        self.listener = listener
        self.scope = scope
        self.active = True

    def matches(self, event: InvalidationEvent) -> bool:
        if self.scope is None:
            return True
        return self.scope.month == event.month and self.scope.year == event.year

    def close(self) -> None:
        if self.active:
            self._broadcaster.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class InvalidationBroadcaster:
    """Publishes invalidation events to listeners registered by other surfaces.

    Dispatch is synchronous and best-effort: a failing listener is logged and
    skipped. Nothing is stored, so late subscribers never see past events.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Listener, *, scope: MonthScope | None = None) -> Subscription:
        subscription = Subscription(self, listener, scope)
        self._subscriptions.append(subscription)
        logger.debug("[EVENTS] Listener registered (%d active).", len(self._subscriptions))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return
        logger.debug("[EVENTS] Listener removed (%d active).", len(self._subscriptions))

    def publish(self, event: InvalidationEvent) -> int:
        delivered = 0
        # Listeners may unsubscribe while we dispatch
        for subscription in list(self._subscriptions):
            if not subscription.active or not subscription.matches(event):
                continue
            try:
                subscription.listener(event)
            except Exception:
                logger.exception(
                    "[EVENTS] Listener failed for %s event on item %s.",
                    event.action,
                    event.item_id,
                )
                continue
            delivered += 1
        logger.info(
            "[EVENTS] %s %s %s for %02d/%s delivered to %d listener(s).",
            event.kind.value.capitalize(),
            event.item_id,
            event.action,
            event.month + 1,
            event.year,
            delivered,
        )
        return delivered
