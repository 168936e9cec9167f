import enum
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from memory_game.services.attestation.engine import AttestationInput
from .clock import SessionClock
from .deck import generate_deck
from .scoring import PAIR_COUNT, TIME_LIMIT_SEC, compute_final_score, remaining_time
from .timers import PRIORITY_RESOLVE, TimerHandle, TimerQueue


class Phase(str, enum.Enum):
    NOT_STARTED = 'not_started'
    ACTIVE = 'active'
    RESOLVING = 'resolving'
    ENDED = 'ended'


class SessionNotEnded(Exception):
    """Raised when counters are requested from a session that is still live."""


@dataclass
class GameSession:
    deck: List[int]
    revealed: List[int] = field(default_factory=list)
    matched_values: Set[int] = field(default_factory=set)
    move_count: int = 0
    elapsed_seconds: int = 0
    phase: Phase = Phase.NOT_STARTED
    winner: Optional[bool] = None
    display_score: int = 0
    generation: int = 0

    @property
    def matched_pairs(self) -> int:
        return len(self.matched_values)


Listener = Callable[['TurnStateMachine'], None]


class TurnStateMachine:
    """Owns one game session and every transition applied to it.

    Invalid operations (a flip out of turn, during resolution or on a spent
    card, a start while a game is running) are ignored and return False.
    All public methods hold the machine lock for their whole body, so a flip,
    a resolution and a tick never interleave.

    When a pending resolution and a clock tick fall due at the same instant,
    the resolution is processed first (see ``timers.PRIORITY_RESOLVE``).
    """

    def __init__(
        self,
        game_code: str = '',
        rng: Optional[random.Random] = None,
        resolve_delay_ms: int = 1000,
        clock_interval_ms: int = 1000,
        heartbeat_sec: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        self.game_code = game_code
        self.resolve_delay_ms = resolve_delay_ms
        self.heartbeat_sec = heartbeat_sec
        self.logger = logger or logging.getLogger('memory_game')
        self.timers = TimerQueue()
        self.clock = SessionClock(self.timers, self.tick, interval_ms=clock_interval_ms)
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._pending_resolve: Optional[TimerHandle] = None
        self._epoch = time.monotonic()
        self.ended_at: Optional[float] = None
        self.session = GameSession(deck=generate_deck(PAIR_COUNT, self._rng))

    # ---- Subscriptions ----

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ---- Transitions ----

    @property
    def phase(self) -> Phase:
        return self.session.phase

    def start(self) -> bool:
        with self._lock:
            if self.session.phase in (Phase.ACTIVE, Phase.RESOLVING):
                self.logger.debug(f"[start-ignored] session={self.game_code} phase={self.session.phase.value}")
                return False
            self._cancel_timers()
            # Wall time spent before the start must not be replayed as ticks
            self._epoch = time.monotonic() - self.timers.now_ms / 1000.0
            self.ended_at = None
            generation = self.session.generation + 1
            self.session = GameSession(
                deck=generate_deck(PAIR_COUNT, self._rng),
                phase=Phase.ACTIVE,
                generation=generation,
            )
            self.clock.start()
            self.logger.info(f"[start] session={self.game_code} generation={generation} time_limit={TIME_LIMIT_SEC}s")
            self._notify()
            return True

    def reset(self) -> None:
        with self._lock:
            self._cancel_timers()
            self.ended_at = None
            generation = self.session.generation + 1
            self.session = GameSession(deck=generate_deck(PAIR_COUNT, self._rng), generation=generation)
            self.logger.info(f"[reset] session={self.game_code} generation={generation}")
            self._notify()

    def flip(self, index: int) -> bool:
        with self._lock:
            s = self.session
            if s.phase != Phase.ACTIVE:
                self.logger.debug(f"[flip-ignored] session={self.game_code} index={index} phase={s.phase.value}")
                return False
            if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(s.deck):
                self.logger.debug(f"[flip-ignored] session={self.game_code} index={index!r} out of range")
                return False
            if index in s.revealed or s.deck[index] in s.matched_values:
                self.logger.debug(f"[flip-ignored] session={self.game_code} index={index} already face up")
                return False

            s.revealed.append(index)
            self.logger.info(f"[flip] session={self.game_code} index={index} revealed={s.revealed}")
            if len(s.revealed) == 2:
                s.move_count += 1
                s.phase = Phase.RESOLVING
                generation = s.generation
                self._pending_resolve = self.timers.call_later(
                    self.resolve_delay_ms,
                    lambda: self._resolve_due(generation),
                    priority=PRIORITY_RESOLVE,
                )
                self.logger.info(
                    f"[timer-set] session={self.game_code} resolve in {self.resolve_delay_ms}ms moves={s.move_count}"
                )
            self._notify()
            return True

    def resolve(self) -> bool:
        with self._lock:
            s = self.session
            if s.phase != Phase.RESOLVING or len(s.revealed) != 2:
                return False
            if self._pending_resolve is not None:
                self._pending_resolve.cancel()
                self._pending_resolve = None
            first, second = (s.deck[i] for i in s.revealed)
            s.revealed.clear()
            if first == second:
                s.matched_values.add(first)
                self.logger.info(f"[match] session={self.game_code} value={first} pairs={s.matched_pairs}")
                if s.matched_pairs == PAIR_COUNT:
                    self.end(True)
                    return True
            else:
                self.logger.info(f"[no-match] session={self.game_code} values=({first}, {second})")
            s.phase = Phase.ACTIVE
            self._notify()
            return True

    def tick(self) -> bool:
        with self._lock:
            s = self.session
            if s.phase not in (Phase.ACTIVE, Phase.RESOLVING):
                return False
            s.elapsed_seconds += 1
            if self.heartbeat_sec and s.elapsed_seconds % self.heartbeat_sec == 0:
                self.logger.info(
                    f"[timer-heartbeat] session={self.game_code} elapsed={s.elapsed_seconds}s "
                    f"remaining={remaining_time(s.elapsed_seconds)}s"
                )
            if s.elapsed_seconds >= TIME_LIMIT_SEC:
                self.logger.info(f"[timeout] session={self.game_code} elapsed={s.elapsed_seconds}s")
                s.revealed.clear()
                self.end(False)
                return True
            self._notify()
            return True

    def end(self, winner: bool) -> bool:
        with self._lock:
            s = self.session
            if s.phase not in (Phase.ACTIVE, Phase.RESOLVING):
                self.logger.debug(f"[end-ignored] session={self.game_code} phase={s.phase.value}")
                return False
            self._cancel_timers()
            s.phase = Phase.ENDED
            self.ended_at = time.monotonic()
            s.winner = bool(winner)
            s.display_score = compute_final_score(s.elapsed_seconds, s.move_count, s.winner)
            self.logger.info(
                f"[end] session={self.game_code} winner={s.winner} moves={s.move_count} "
                f"time={s.elapsed_seconds}s score={s.display_score}"
            )
            self._notify()
            return True

    def dispose(self) -> None:
        """Cancel outstanding timers and drop listeners before discarding."""
        with self._lock:
            self._cancel_timers()
            self._listeners.clear()

    def _resolve_due(self, generation: int) -> None:
        if generation != self.session.generation:
            self.logger.info(
                f"[resolve-stale] session={self.game_code} expected_generation={generation} "
                f"actual_generation={self.session.generation}"
            )
            return
        self.resolve()

    def _cancel_timers(self) -> None:
        self.clock.stop()
        if self._pending_resolve is not None:
            self._pending_resolve.cancel()
            self._pending_resolve = None

    # ---- Time ----

    def advance(self, delta_ms: int) -> int:
        """Move the session's clock forward and run whatever falls due."""
        with self._lock:
            return self.timers.advance(delta_ms)

    def pump(self, now_ms: Optional[int] = None) -> int:
        """Catch the session's timers up with wall time since the last start."""
        if now_ms is None:
            now_ms = int((time.monotonic() - self._epoch) * 1000)
        with self._lock:
            return self.timers.advance_to(now_ms)

    # ---- Views ----

    def attestation_input(self) -> AttestationInput:
        """Copy the three raw counters out of the finished session."""
        with self._lock:
            s = self.session
            if s.phase != Phase.ENDED:
                raise SessionNotEnded(f'session {self.game_code} is {s.phase.value}, not ended')
            return AttestationInput(
                moves=s.move_count,
                elapsed_seconds=s.elapsed_seconds,
                matched_pairs=s.matched_pairs,
            )

    def to_dict(self):
        with self._lock:
            s = self.session
            cards = []
            for index, value in enumerate(s.deck):
                if value in s.matched_values:
                    cards.append({'index': index, 'state': 'matched', 'value': value})
                elif index in s.revealed:
                    cards.append({'index': index, 'state': 'revealed', 'value': value})
                else:
                    cards.append({'index': index, 'state': 'hidden', 'value': None})
            return {
                'game_code': self.game_code,
                'phase': s.phase.value,
                'generation': s.generation,
                'cards': cards,
                'revealed': list(s.revealed),
                'matched_values': sorted(s.matched_values),
                'matched_pairs': s.matched_pairs,
                'moves': s.move_count,
                'elapsed_seconds': s.elapsed_seconds,
                'remaining_seconds': remaining_time(s.elapsed_seconds),
                'time_limit': TIME_LIMIT_SEC,
                'winner': s.winner,
                'score': s.display_score,
            }
