import logging
import re
import threading
from typing import Dict, Optional

from fingerpicker.exceptions import TableNotFound
from fingerpicker.services.picker import RoundEngine

logger = logging.getLogger(__name__)

_TABLE_CODE = re.compile(r'^[A-Z0-9_-]{1,32}$')


def normalize_code(code) -> Optional[str]:
    """Upper-case a table code; None when it is not a usable code."""
    if not isinstance(code, str):
        return None
    code = code.strip().upper()
    return code if _TABLE_CODE.match(code) else None


def room_for(code: str) -> str:
    return f"table:{code}"


class TableRegistry:
    """One round engine per table code, kept in memory for the app's lifetime."""

    def __init__(self):
        self.config = {}
        self.scheduler = None
        self.socketio = None
        self._engines: Dict[str, RoundEngine] = {}
        self._lock = threading.Lock()

    def init_app(self, app, socketio, scheduler) -> None:
        self.config = app.config
        self.socketio = socketio
        self.scheduler = scheduler
        app.extensions['fingerpicker.tables'] = self

    def get(self, code: str) -> RoundEngine:
        with self._lock:
            engine = self._engines.get(code)
        if engine is None:
            raise TableNotFound(code)
        return engine

    def get_or_create(self, code: str) -> RoundEngine:
        with self._lock:
            engine = self._engines.get(code)
            if engine is None:
                engine = RoundEngine.from_config(
                    self.config,
                    self.scheduler,
                    name=code,
                    on_change=lambda state, c=code: self.broadcast(c, state),
                )
                self._engines[code] = engine
                logger.info(f"[table-open] table={code} policy={engine.freeze_policy.value}")
            return engine

    def close(self, code: str) -> bool:
        with self._lock:
            engine = self._engines.pop(code, None)
        if engine is None:
            return False
        engine.close()
        logger.info(f"[table-close] table={code}")
        if self.socketio is not None:
            self.socketio.emit('table_closed', {'table': code}, to=room_for(code), namespace='/ws')
        return True

    def close_all(self) -> None:
        for code in list(self._engines):
            self.close(code)

    def broadcast(self, code: str, state) -> None:
        if self.socketio is None:
            return
        self.socketio.emit('state_update', {'table': code, 'state': state}, to=room_for(code), namespace='/ws')

    def __contains__(self, code):
        return code in self._engines

    def __len__(self):
        return len(self._engines)
