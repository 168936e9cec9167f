import threading
import time
from typing import Dict, Optional, Tuple

from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from memory_game import socketio
from memory_game.services.games.scheduler import stop_session_pump_if_idle


def _room(game_code: str) -> str:
    return f"game:{game_code}"


class OwnerPresence:
    """Which sockets own which live session.

    A session whose last owner socket goes away is discarded, after a grace
    period so a page reload can reclaim it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_sid: Dict[str, Tuple[str, bool]] = {}
        self._owners: Dict[str, int] = {}
        self._deadlines: Dict[str, float] = {}

    def join(self, sid: str, game_code: str, is_owner: bool) -> None:
        with self._lock:
            previous = self._by_sid.get(sid)
            if previous == (game_code, True):
                # Repeated owner join from the same socket counts once
                return
            if previous and previous[1]:
                old_code = previous[0]
                self._owners[old_code] = max(0, self._owners.get(old_code, 0) - 1)
            self._by_sid[sid] = (game_code, is_owner)
            if is_owner:
                self._owners[game_code] = self._owners.get(game_code, 0) + 1
                self._deadlines.pop(game_code, None)

    def lookup(self, sid: str) -> Optional[Tuple[str, bool]]:
        with self._lock:
            return self._by_sid.get(sid)

    def drop(self, sid: str) -> Optional[str]:
        """Forget a socket; return its game code if it was the last owner there."""
        with self._lock:
            game_code, is_owner = self._by_sid.pop(sid, (None, False))
            if not (game_code and is_owner):
                return None
            remaining = max(0, self._owners.get(game_code, 0) - 1)
            self._owners[game_code] = remaining
            return game_code if remaining == 0 else None

    def mark_deadline(self, game_code: str, delay_sec: float) -> float:
        deadline = time.time() + delay_sec
        with self._lock:
            self._deadlines[game_code] = deadline
        return deadline

    def still_orphaned(self, game_code: str, deadline: float) -> bool:
        with self._lock:
            return self._owners.get(game_code, 0) == 0 and self._deadlines.get(game_code) == deadline

    def forget(self, game_code: str) -> None:
        with self._lock:
            self._owners.pop(game_code, None)
            self._deadlines.pop(game_code, None)


presence = OwnerPresence()


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    game_code = presence.drop(request.sid)
    if not game_code:
        return
    app = current_app._get_current_object()
    # Tests end at once; a real client gets a grace period to reconnect
    if app.config.get('TESTING'):
        _end_session(app, game_code)
        return
    _end_after_grace(app, game_code, float(app.config.get('OWNER_GRACE_SEC', 2.0)))


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    join_room(_room(code))
    presence.join(request.sid, code, bool((data or {}).get('is_session_owner')))
    emit('joined', {'room': _room(code)})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    leave_room(_room(code))
    emit('left', {'room': _room(code)})
    # An owner quitting ends the session immediately
    if presence.lookup(request.sid) == (code, True):
        presence.drop(request.sid)
        _end_session(current_app._get_current_object(), code)


def handle_ping(data):
    emit('pong', data or {})


def _end_session(app, game_code: str) -> None:
    """Notify the room and discard the live session with its timers."""
    # socketio.emit, since this may run from a background task
    socketio.emit('session_ended', {'game_code': game_code}, to=_room(game_code), namespace='/ws')
    registry = app.extensions['game_sessions']
    try:
        if registry.discard(game_code) is not None:
            app.logger.info(f"[session-ended] session={game_code} owner left")
        stop_session_pump_if_idle(registry)
    finally:
        presence.forget(game_code)


def _end_after_grace(app, game_code: str, delay_sec: float) -> None:
    deadline = presence.mark_deadline(game_code, delay_sec)

    def _runner():
        socketio.sleep(max(0.0, deadline - time.time()))
        if presence.still_orphaned(game_code, deadline):
            _end_session(app, game_code)

    socketio.start_background_task(_runner)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_game': handle_join_game,
        'leave_game': handle_leave_game,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
