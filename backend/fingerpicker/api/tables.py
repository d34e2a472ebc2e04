from flask import Blueprint, jsonify, request, current_app

from fingerpicker.exceptions import (
    InvalidStateTransition,
    InvalidTouchPayload,
    InvalidWinnerCount,
    TableNotFound,
)
from fingerpicker.services.picker.touches import parse_touches
from fingerpicker.tables import normalize_code

tables_api = Blueprint('tables_api', __name__)

TOUCH_EVENTS = {'touchstart', 'touchmove', 'touchend', 'touchcancel'}


def _registry():
    return current_app.extensions['fingerpicker.tables']


def _code_or_400(table_code):
    code = normalize_code(table_code)
    if code is None:
        return None, (jsonify({'error': f'Invalid table code {table_code!r}'}), 400)
    return code, None


def _json_object():
    """The request body as a dict; None when it is valid JSON of another shape."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _state_response(code, state, status=200):
    return jsonify({'table': code, 'state': state}), status


@tables_api.errorhandler(TableNotFound)
def _table_not_found(exc):
    return jsonify({'error': str(exc)}), 404


@tables_api.errorhandler(InvalidStateTransition)
def _invalid_transition(exc):
    return jsonify({'error': str(exc), 'phase': exc.phase.value}), 409


@tables_api.errorhandler(InvalidTouchPayload)
@tables_api.errorhandler(InvalidWinnerCount)
def _invalid_payload(exc):
    return jsonify({'error': str(exc)}), 400


@tables_api.route('/<string:table_code>/state', methods=['GET'])
def get_state(table_code):
    code, error = _code_or_400(table_code)
    if error:
        return error
    engine = _registry().get(code)
    return _state_response(code, engine.snapshot())


@tables_api.route('/<string:table_code>/start', methods=['POST'])
def start_round(table_code):
    """Open a table if needed and begin collecting fingers."""
    code, error = _code_or_400(table_code)
    if error:
        return error
    engine = _registry().get_or_create(code)
    state = engine.start()
    current_app.logger.info(f"[start] table={code} via http")
    return _state_response(code, state)


@tables_api.route('/<string:table_code>/winner-count', methods=['POST'])
def set_winner_count(table_code):
    code, error = _code_or_400(table_code)
    if error:
        return error
    data = _json_object()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    if 'winner_count' not in data:
        return jsonify({'error': 'winner_count is required'}), 400
    engine = _registry().get_or_create(code)
    engine.set_winner_count(data['winner_count'])
    return _state_response(code, engine.snapshot())


@tables_api.route('/<string:table_code>/reset', methods=['POST'])
def reset_round(table_code):
    code, error = _code_or_400(table_code)
    if error:
        return error
    engine = _registry().get_or_create(code)
    return _state_response(code, engine.reset())


@tables_api.route('/<string:table_code>/touches', methods=['POST'])
def post_touches(table_code):
    """Feed one touch event carrying every touch currently on the surface."""
    code, error = _code_or_400(table_code)
    if error:
        return error
    data = _json_object()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    event = str(data.get('event', 'touchmove')).lower().replace('_', '')
    if event not in TOUCH_EVENTS:
        return jsonify({'error': f"Unknown touch event {data.get('event')!r}"}), 400
    touches = parse_touches(data.get('touches'))
    engine = _registry().get(code)
    engine.handle_touches(touches)
    return _state_response(code, engine.snapshot())


@tables_api.route('/<string:table_code>', methods=['DELETE'])
def close_table(table_code):
    code, error = _code_or_400(table_code)
    if error:
        return error
    if not _registry().close(code):
        raise TableNotFound(code)
    return jsonify({'message': f'Table {code} closed.', 'table': code}), 200
