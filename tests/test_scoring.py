import pytest

from memory_game.services.games.scoring import TIME_LIMIT_SEC, compute_final_score, remaining_time


@pytest.mark.parametrize('elapsed,moves,expected', [
    (30, 15, 75),
    (10, 50, 60),
    (125, 5, 0),
    (0, 0, 120),
    (120, 0, 0),
    (100, 30, 0),
])
def test_winning_scores(elapsed, moves, expected):
    assert compute_final_score(elapsed, moves, True) == expected


def test_loss_always_scores_zero():
    assert compute_final_score(5, 1, False) == 0
    assert compute_final_score(0, 0, False) == 0


def test_score_is_never_negative():
    for elapsed in range(0, 200, 7):
        for moves in range(0, 300, 11):
            for winner in (True, False):
                assert compute_final_score(elapsed, moves, winner) >= 0


def test_remaining_time_is_capped():
    assert remaining_time(0) == TIME_LIMIT_SEC
    assert remaining_time(90) == 30
    assert remaining_time(500) == 0
