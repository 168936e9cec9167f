from flask import Blueprint, jsonify, request, current_app
from memory_game import socketio
from memory_game.api.proofs import attest_and_record, attestation_error_response
from memory_game.services.attestation import MODE_PROVE, AttestationError
from memory_game.services.attestation.host import MODES
from memory_game.services.games.scheduler import ensure_session_pump, stop_session_pump_if_idle
from memory_game.services.games.scoring import PAIR_COUNT, TIME_LIMIT_SEC
from memory_game.services.games.session import SessionNotEnded


games = Blueprint('games', __name__)


def _registry():
    return current_app.extensions['game_sessions']


def _emit_state(machine) -> None:
    socketio.emit('state_update', {'game_code': machine.game_code}, to=f"game:{machine.game_code}", namespace='/ws')


def _get_machine_or_404(game_code):
    machine = _registry().get(game_code)
    if machine is None:
        return None, (jsonify({'error': 'Game not found'}), 404)
    return machine, None


def _state_payload(machine, **extra):
    cfg = current_app.config
    payload = machine.to_dict()
    payload['durations'] = {
        'resolve_delay_ms': int(cfg.get('RESOLVE_DELAY_MS', 1000)),
        'clock_interval_ms': int(cfg.get('CLOCK_INTERVAL_MS', 1000)),
        'time_limit_sec': TIME_LIMIT_SEC,
        'pair_count': PAIR_COUNT,
    }
    payload.update(extra)
    return payload


@games.route('/create', methods=['POST'])
def create_game():
    cfg = current_app.config
    machine = _registry().create(
        resolve_delay_ms=int(cfg.get('RESOLVE_DELAY_MS', 1000)),
        clock_interval_ms=int(cfg.get('CLOCK_INTERVAL_MS', 1000)),
        heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
        logger=current_app.logger,
    )
    machine.subscribe(_emit_state)
    current_app.logger.info(f"[create] session={machine.game_code}")
    return jsonify({
        'message': 'New game created!',
        'game_code': machine.game_code
    }), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    machine, error = _get_machine_or_404(game_code)
    if error:
        return error
    return jsonify(_state_payload(machine))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    machine, error = _get_machine_or_404(game_code)
    if error:
        return error
    # Idempotent start: a running game is left untouched
    accepted = machine.start()
    ensure_session_pump(current_app._get_current_object(), _registry())
    return jsonify(_state_payload(machine, accepted=accepted))


@games.route('/<string:game_code>/flip', methods=['POST'])
def flip_card(game_code):
    machine, error = _get_machine_or_404(game_code)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    if 'index' not in data:
        return jsonify({'error': 'Card index is required'}), 400
    accepted = machine.flip(data.get('index'))
    return jsonify(_state_payload(machine, accepted=accepted))


@games.route('/<string:game_code>/reset', methods=['POST'])
def reset_game(game_code):
    machine, error = _get_machine_or_404(game_code)
    if error:
        return error
    machine.reset()
    return jsonify(_state_payload(machine, accepted=True))


@games.route('/<string:game_code>/attest', methods=['POST'])
def attest_game(game_code):
    machine, error = _get_machine_or_404(game_code)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    mode = data.get('mode') or MODE_PROVE
    if mode not in MODES:
        return jsonify({'success': False, 'error': f'Unknown mode {mode!r}'}), 400
    try:
        snapshot = machine.attestation_input()
    except SessionNotEnded as exc:
        return jsonify({'success': False, 'error': str(exc)}), 400
    try:
        receipt, record = attest_and_record(snapshot, mode, game_code=machine.game_code)
    except AttestationError as exc:
        return attestation_error_response(exc)
    payload = receipt.to_dict()
    payload.pop('artifactPath', None)
    payload['success'] = True
    payload['display_score'] = machine.session.display_score
    if record is not None:
        payload['record_id'] = record.id
    return jsonify(payload)


@games.route('/<string:game_code>', methods=['DELETE'])
def discard_game(game_code):
    registry = _registry()
    machine = registry.discard(game_code)
    if machine is None:
        return jsonify({'error': 'Game not found'}), 404
    stop_session_pump_if_idle(registry)
    socketio.emit('session_ended', {'game_code': machine.game_code}, to=f"game:{machine.game_code}", namespace='/ws')
    return jsonify({'message': 'Session discarded', 'game_code': machine.game_code})
