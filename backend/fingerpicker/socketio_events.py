from flask_socketio import join_room, leave_room, emit
from fingerpicker import socketio
from flask import current_app, request
from fingerpicker.exceptions import FingerPickerException
from fingerpicker.services.picker.touches import parse_touches
from fingerpicker.tables import normalize_code, room_for
from typing import Dict, Any


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[str, int] = {}


def _registry():
    return current_app.extensions['fingerpicker.tables']

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _table_code(data):
    if not isinstance(data, dict):
        emit('error', {'message': 'payload must be an object'})
        return None
    code = normalize_code(data.get('table'))
    if code is None:
        emit('error', {'message': 'table is required'})
    return code


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # A table closes when its last owning surface goes away
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    if ctx.get('is_table_owner'):
        _release_owner(ctx['table'])


def handle_join_table(data):
    code = _table_code(data)
    if code is None:
        return
    is_table_owner = bool(data.get('is_table_owner'))
    join_room(room_for(code))
    previous = _sid_to_ctx.get(_get_sid())
    already_owner = bool(previous and previous.get('is_table_owner') and previous.get('table') == code)
    _sid_to_ctx[_get_sid()] = {'table': code, 'is_table_owner': is_table_owner or already_owner}
    # A socket owns at most one table, and counts once towards it
    if previous and previous.get('is_table_owner') and previous.get('table') != code:
        _release_owner(previous['table'])
    if is_table_owner and not already_owner:
        _owner_count[code] = _owner_count.get(code, 0) + 1
    engine = _registry().get_or_create(code)
    emit('joined', {'room': room_for(code), 'state': engine.snapshot()})


def handle_leave_table(data):
    code = _table_code(data)
    if code is None:
        return
    leave_room(room_for(code))
    emit('left', {'room': room_for(code)})
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if ctx and ctx.get('is_table_owner') and ctx.get('table') == code:
        _release_owner(code)


def _touch_handler(event_name):
    def handler(data):
        code = _table_code(data)
        if code is None:
            return
        try:
            touches = parse_touches(data.get('touches'))
            _registry().get(code).handle_touches(touches)
        except FingerPickerException as exc:
            emit('error', {'message': str(exc), 'event': event_name})
    handler.__name__ = f"handle_{event_name}"
    return handler


def handle_start_round(data):
    code = _table_code(data)
    if code is None:
        return
    try:
        _registry().get_or_create(code).start()
    except FingerPickerException as exc:
        emit('error', {'message': str(exc)})
        return
    current_app.logger.info(f"[start] table={code} sid={_get_sid()}")


def handle_set_winner_count(data):
    code = _table_code(data)
    if code is None:
        return
    if 'winner_count' not in data:
        emit('error', {'message': 'winner_count is required'})
        return
    try:
        _registry().get_or_create(code).set_winner_count(data['winner_count'])
    except FingerPickerException as exc:
        emit('error', {'message': str(exc)})


def handle_reset_round(data):
    code = _table_code(data)
    if code is None:
        return
    _registry().get_or_create(code).reset()


def handle_ping(data=None):
    emit('pong', data or {})


def _release_owner(code: str) -> None:
    _owner_count[code] = max(0, _owner_count.get(code, 0) - 1)
    if _owner_count[code] == 0:
        _owner_count.pop(code, None)
        _registry().close(code)


TOUCH_EVENTS = ('touch_start', 'touch_move', 'touch_end', 'touch_cancel')

def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_table': handle_join_table,
        'leave_table': handle_leave_table,
        'start_round': handle_start_round,
        'set_winner_count': handle_set_winner_count,
        'reset_round': handle_reset_round,
        'ping': handle_ping,
    }
    for event_name in TOUCH_EVENTS:
        handlers[event_name] = _touch_handler(event_name)

    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event_name, handler in handlers.items():
            socketio.on_event(event_name, handler, namespace=namespace)
