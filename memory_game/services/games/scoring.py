"""Score formula shared by the live session and the attester.

Both callers must import from here; the constants are deliberately not
configuration so the two evaluations cannot drift apart.
"""

TIME_LIMIT_SEC = 120
PAIR_COUNT = 8


def remaining_time(elapsed_seconds: int) -> int:
    return max(0, TIME_LIMIT_SEC - elapsed_seconds)


def compute_final_score(elapsed_seconds: int, moves: int, winner: bool) -> int:
    """Return the final score: remaining time minus moves for a win, else 0.

    Never negative. A loss always scores 0 regardless of the counters.
    """
    raw = remaining_time(elapsed_seconds) - moves if winner else 0
    return max(0, raw)
