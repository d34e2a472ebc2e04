from typing import Optional, Sequence


class EliminationSequencer:
    """Reveals losers one per tick, in the order the selector produced."""

    def __init__(self, loss_order: Sequence[int]):
        self._order = tuple(loss_order)
        self._cursor = 0

    @property
    def remaining(self) -> int:
        return len(self._order) - self._cursor

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._order)

    def reveal_next(self) -> Optional[int]:
        if self.exhausted:
            return None
        touch_id = self._order[self._cursor]
        self._cursor += 1
        return touch_id
