import random
import string
import threading
import time
from typing import Dict, List, Optional

from .session import TurnStateMachine


def generate_game_code(existing, length=4):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in existing:
            return code


class SessionRegistry:
    """Live sessions of one app, keyed by game code. Never persisted."""

    def __init__(self):
        self._sessions: Dict[str, TurnStateMachine] = {}
        self._lock = threading.Lock()
        self.pump_token = None

    def create(self, **machine_kwargs) -> TurnStateMachine:
        with self._lock:
            code = generate_game_code(self._sessions)
            machine = TurnStateMachine(game_code=code, **machine_kwargs)
            self._sessions[code] = machine
            return machine

    def get(self, game_code: str) -> Optional[TurnStateMachine]:
        with self._lock:
            return self._sessions.get((game_code or '').upper())

    def discard(self, game_code: str) -> Optional[TurnStateMachine]:
        with self._lock:
            machine = self._sessions.pop((game_code or '').upper(), None)
        if machine is not None:
            machine.dispose()
        return machine

    def machines(self) -> List[TurnStateMachine]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self):
        return len(self._sessions)

    def evict_ended(self, ttl_sec: float, now: Optional[float] = None) -> List[TurnStateMachine]:
        """Discard sessions that have sat in the ended phase longer than ``ttl_sec``."""
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                code for code, machine in self._sessions.items()
                if machine.ended_at is not None and now - machine.ended_at >= ttl_sec
            ]
            evicted = [self._sessions.pop(code) for code in expired]
        for machine in evicted:
            machine.dispose()
        return evicted
