"""Finger picker round services: touches, countdown, selection, reveal, timers.

Nothing in here knows about HTTP or Socket.IO. The round engine composes the
pieces and reports every state change through a listener, which the table
registry wires to Socket.IO broadcasts.
"""

from .engine import RoundEngine
from .scheduler import BackgroundScheduler, TimerHandle

__all__ = ['RoundEngine', 'BackgroundScheduler', 'TimerHandle']
