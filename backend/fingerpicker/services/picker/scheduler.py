import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """A pending callback. Cancelling it guarantees the callback never runs."""

    def __init__(self, callback: Callable[[], None], delay: float):
        self.callback = callback
        self.delay = delay
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.callback()


class BackgroundScheduler:
    """Runs timers as Flask-SocketIO background tasks.

    Each timer sleeps with ``socketio.sleep`` so it cooperates with
    whichever async mode the server runs under, then fires unless it was
    cancelled in the meantime.
    """

    def __init__(self, socketio):
        self.socketio = socketio

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, delay)
        self.socketio.start_background_task(self._worker, handle)
        return handle

    def _worker(self, handle: TimerHandle) -> None:
        self.socketio.sleep(handle.delay)
        if handle.cancelled:
            return
        try:
            handle.fire()
        except Exception:
            logger.exception("[timer-error] callback failed after %.3fs", handle.delay)
