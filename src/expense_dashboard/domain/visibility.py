from dataclasses import dataclass, field

from expense_dashboard.errors import InvalidTransition


@dataclass
class VisibilityState:
    """Per-view overlay of rows being removed on top of the snapshot.

    Lives exactly as long as one open list view. Only the removal coordinator
    mutates it; every transition fails fast on an inconsistent state.
    """

    hidden_ids: set[int] = field(default_factory=set)
    animating_ids: set[int] = field(default_factory=set)
    pending_id: int | None = None
    _started: list[int] = field(default_factory=list, repr=False, compare=False)

    def begin_animating(self, item_id: int) -> None:
        if item_id in self.animating_ids:
            raise InvalidTransition(item_id, "begin_animating", "already animating")
        if item_id in self.hidden_ids:
            raise InvalidTransition(item_id, "begin_animating", "already hidden")
        self.animating_ids.add(item_id)
        self._started.append(item_id)
        self.pending_id = item_id

    def commit_hidden(self, item_id: int) -> None:
        if item_id not in self.animating_ids:
            raise InvalidTransition(item_id, "commit_hidden", "not animating")
        self.hidden_ids.add(item_id)
        self._settle(item_id)

    def revert(self, item_id: int) -> None:
        if item_id not in self.animating_ids:
            raise InvalidTransition(item_id, "revert", "not animating")
        self._settle(item_id)

    def reset(self) -> None:
        self.hidden_ids.clear()
        self.animating_ids.clear()
        self._started.clear()
        self.pending_id = None

    def _settle(self, item_id: int) -> None:
        self.animating_ids.discard(item_id)
        self._started = [started for started in self._started if started in self.animating_ids]
        if self.pending_id == item_id:
            # The spinner moves to the latest delete still in flight
            self.pending_id = self._started[-1] if self._started else None

    def is_hidden(self, item_id: int) -> bool:
        return item_id in self.hidden_ids

    def is_animating(self, item_id: int) -> bool:
        return item_id in self.animating_ids

    @property
    def is_empty(self) -> bool:
        return not self.hidden_ids and not self.animating_ids and self.pending_id is None

    def as_dict(self) -> dict[str, object]:
        return {
            "hidden_ids": sorted(self.hidden_ids),
            "animating_ids": sorted(self.animating_ids),
            "pending_id": self.pending_id,
        }
