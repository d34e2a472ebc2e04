from typing import List, Optional

from fingerpicker.models import ParticipantSet, TouchPoint


class CountdownDebouncer:
    """Decides when the touches on the surface have settled.

    The countdown restarts from every change to the live set, so a round can
    only freeze a configuration that stayed untouched for ``delay`` seconds.
    The timer itself belongs to the engine; this object only tracks the
    deadline and makes the decisions.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self.deadline: Optional[float] = None
        self.waiting_for_participants = False

    @property
    def running(self) -> bool:
        return self.deadline is not None

    def touch_set_changed(self, live_count: int, now: float) -> bool:
        """Return True when the countdown must be (re)armed, False to cancel it."""
        if live_count == 0:
            self.deadline = None
            self.waiting_for_participants = True
            return False
        self.deadline = now + self.delay
        self.waiting_for_participants = False
        return True

    def settle(self, live: List[TouchPoint]) -> Optional[ParticipantSet]:
        """Freeze the live touches, or None when nobody is left on the surface."""
        self.deadline = None
        if not live:
            self.waiting_for_participants = True
            return None
        self.waiting_for_participants = False
        return ParticipantSet(live)

    def reset(self, waiting: bool = False) -> None:
        self.deadline = None
        self.waiting_for_participants = waiting
