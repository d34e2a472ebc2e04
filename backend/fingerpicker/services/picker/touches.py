import math
from typing import Any, Dict, List, Optional

from fingerpicker.exceptions import InvalidTouchPayload
from fingerpicker.models import TouchPoint


def _field(raw: Dict[str, Any], *names: str):
    for name in names:
        if name in raw:
            return raw[name]
    raise InvalidTouchPayload(f"touch is missing '{names[0]}'")


def _number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTouchPayload(f"touch field '{name}' must be a number, got {value!r}")
    try:
        value = float(value)
    except OverflowError:
        value = math.inf
    if not math.isfinite(value):
        raise InvalidTouchPayload(f"touch field '{name}' must be finite, got {value!r}")
    return value


def parse_touches(payload: Optional[List[Dict[str, Any]]]) -> List[TouchPoint]:
    """Turn a list of DOM-style touches into TouchPoints.

    Accepts ``identifier``/``clientX``/``clientY`` or ``id``/``x``/``y``.
    A repeated identifier keeps its first slot and its last coordinates.
    """
    if payload is None:
        return []
    if not isinstance(payload, (list, tuple)):
        raise InvalidTouchPayload("touches must be a list")

    by_id: Dict[int, TouchPoint] = {}
    for raw in payload:
        if not isinstance(raw, dict):
            raise InvalidTouchPayload(f"touch must be an object, got {raw!r}")
        touch_id = _field(raw, 'identifier', 'id')
        if isinstance(touch_id, bool) or not isinstance(touch_id, int):
            raise InvalidTouchPayload(f"touch identifier must be an integer, got {touch_id!r}")
        x = _number(_field(raw, 'clientX', 'x'), 'clientX')
        y = _number(_field(raw, 'clientY', 'y'), 'clientY')
        by_id[touch_id] = TouchPoint(touch_id, x, y)
    return list(by_id.values())


class TouchTracker:
    """Keeps the touches currently on the surface.

    Every update replaces the live list with the touches present at that
    instant. With ``accumulate`` set, every touch seen since the last
    ``clear()`` is also remembered (latest position wins) for the
    freeze-on-release policy.
    """

    def __init__(self, accumulate: bool = False):
        self.accumulate = accumulate
        self._live: List[TouchPoint] = []
        self._known: Dict[int, TouchPoint] = {}

    @property
    def live(self) -> List[TouchPoint]:
        return list(self._live)

    @property
    def live_ids(self) -> List[int]:
        return [t.id for t in self._live]

    @property
    def known(self) -> List[TouchPoint]:
        return list(self._known.values())

    def update(self, touches: List[TouchPoint]) -> bool:
        """Replace the live touches; return True when the set of ids changed."""
        previous = {t.id for t in self._live}
        self._live = list(touches)
        if self.accumulate:
            for touch in self._live:
                self._known[touch.id] = touch
        return previous != {t.id for t in self._live}

    def clear(self) -> None:
        self._live = []
        self._known = {}
