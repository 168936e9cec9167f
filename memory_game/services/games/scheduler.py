from memory_game import socketio
from .registry import SessionRegistry


def ensure_session_pump(app, registry: SessionRegistry) -> None:
    """Start the background task that drives every live session's timers.

    - No-ops in TESTING mode (tests advance session time explicitly)
    - Ensures a single pump per registry
    - Each pass catches every session up with wall time; callbacks still run
      one at a time under the session's own lock
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    if registry.pump_token is not None:
        return
    token = object()
    registry.pump_token = token

    interval = max(1, int(app.config.get('SESSION_PUMP_INTERVAL_MS', 100))) / 1000.0
    ttl = float(app.config.get('ENDED_SESSION_TTL_SEC', 600))
    app.logger.info(f"[pump-start] interval={interval}s")

    def _worker():
        # A restarted pump gets a new token, so an old worker exits on its next pass
        while registry.pump_token is token:
            socketio.sleep(interval)
            for machine in registry.machines():
                try:
                    machine.pump()
                except Exception:
                    app.logger.exception(f"[pump-error] session={machine.game_code}")
            if ttl > 0:
                evict_ended_sessions(app, registry, ttl)
        app.logger.info("[pump-stop]")

    socketio.start_background_task(_worker)


def stop_session_pump_if_idle(registry: SessionRegistry) -> bool:
    """Let the pump wind down once the last live session is gone."""
    if len(registry) or registry.pump_token is None:
        return False
    registry.pump_token = None
    return True


def evict_ended_sessions(app, registry: SessionRegistry, ttl_sec: float, now=None) -> int:
    """Drop sessions that ended more than ``ttl_sec`` ago and tell their rooms."""
    evicted = registry.evict_ended(ttl_sec, now=now)
    for machine in evicted:
        socketio.emit('session_ended', {'game_code': machine.game_code},
                      to=f"game:{machine.game_code}", namespace='/ws')
        app.logger.info(f"[session-evicted] session={machine.game_code} ended over {ttl_sec:g}s ago")
    if evicted:
        stop_session_pump_if_idle(registry)
    return len(evicted)
