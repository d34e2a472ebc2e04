from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class Phase(str, Enum):
    SETUP = 'setup'
    COLLECTING = 'collecting'
    SPINNING = 'spinning'
    ELIMINATING = 'eliminating'
    RESULT = 'result'


class FreezePolicy(str, Enum):
    STABLE_DELAY = 'stable_delay'  # freeze held fingers once the set stops changing
    ON_RELEASE = 'on_release'      # freeze every finger seen once all are lifted


class TouchPoint:
    __slots__ = ('id', 'x', 'y')

    def __init__(self, id: int, x: float, y: float):
        self.id = id
        self.x = x
        self.y = y

    def __eq__(self, other):
        if not isinstance(other, TouchPoint):
            return NotImplemented
        return (self.id, self.x, self.y) == (other.id, other.x, other.y)

    def __hash__(self):
        return hash((self.id, self.x, self.y))

    def __repr__(self):
        return f"TouchPoint(id={self.id}, x={self.x}, y={self.y})"

    def to_dict(self):
        return {
            'id': self.id,
            'x': self.x,
            'y': self.y,
        }


class ParticipantSet:
    """Touch points frozen when a round leaves the collecting phase.

    Ids are distinct and keep the order they were frozen in. The set is
    immutable for the rest of the round.
    """

    __slots__ = ('_touches',)

    def __init__(self, touches: Iterable[TouchPoint]):
        seen = set()
        frozen = []
        for touch in touches:
            if touch.id in seen:
                continue
            seen.add(touch.id)
            frozen.append(touch)
        self._touches: Tuple[TouchPoint, ...] = tuple(frozen)

    @property
    def ids(self) -> List[int]:
        return [t.id for t in self._touches]

    @property
    def touches(self) -> Tuple[TouchPoint, ...]:
        return self._touches

    def __len__(self):
        return len(self._touches)


class RoundState:
    def __init__(self, participants: Optional[ParticipantSet] = None, winner_count: int = 1):
        self.participants = participants
        # Winner count captured at freeze time; later config changes wait for the next round
        self.winner_count = winner_count
        self.winner_ids: List[int] = []
        self.eliminated_ids: List[int] = []

    def record_eliminated(self, touch_id: int) -> None:
        if touch_id in self.winner_ids or touch_id in self.eliminated_ids:
            raise ValueError(f"touch {touch_id} cannot be eliminated twice or after winning")
        self.eliminated_ids.append(touch_id)

    def to_dict(self) -> Dict:
        return {
            'participant_ids': self.participants.ids if self.participants else [],
            'winner_ids': list(self.winner_ids),
            'eliminated_ids': list(self.eliminated_ids),
        }
