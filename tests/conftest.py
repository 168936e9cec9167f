import os
import random
import sys
import pytest

# Ensure the project root (containing `config` and the `memory_game` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from memory_game import create_app, db, socketio
from memory_game.services.games.session import TurnStateMachine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RESOLVE_DELAY_MS = 1000
    CLOCK_INTERVAL_MS = 1000
    PROOF_SIGNING_KEY = 'test-signing-key'
    PROVER_BACKEND = 'hmac'
    PROVER_TIMEOUT_SEC = 30


@pytest.fixture()
def flask_app(tmp_path):
    application = create_app(TestConfig)
    application.config['PROOF_DIR'] = str(tmp_path / 'proofs')
    with application.app_context():
        # Ensure models are imported so tables are created
        import memory_game.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def machine():
    return TurnStateMachine(game_code='TEST', rng=random.Random(1234))


def pair_positions(deck):
    """Map each card value to the two indices holding it."""
    positions = {}
    for index, value in enumerate(deck):
        positions.setdefault(value, []).append(index)
    return positions


def mismatched_pair(deck):
    first = 0
    second = next(i for i in range(1, len(deck)) if deck[i] != deck[first])
    return first, second
