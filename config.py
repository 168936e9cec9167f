import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///memory_game.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Turn resolution delay and clock period (milliseconds)
    RESOLVE_DELAY_MS = int(os.environ.get('RESOLVE_DELAY_MS', '1000'))
    CLOCK_INTERVAL_MS = int(os.environ.get('CLOCK_INTERVAL_MS', '1000'))
    # How often the background pump advances live sessions (milliseconds)
    SESSION_PUMP_INTERVAL_MS = int(os.environ.get('SESSION_PUMP_INTERVAL_MS', '100'))
    # Grace period before a session with no connected owner is discarded (seconds)
    OWNER_GRACE_SEC = float(os.environ.get('OWNER_GRACE_SEC', '2'))
    # Ended sessions are dropped from memory after this long (seconds). 0 keeps them.
    ENDED_SESSION_TTL_SEC = float(os.environ.get('ENDED_SESSION_TTL_SEC', '600'))
    # Proving
    PROOF_DIR = os.environ.get('PROOF_DIR') or os.path.join(os.getcwd(), 'proofs')
    PROOF_SIGNING_KEY = os.environ.get('PROOF_SIGNING_KEY') or SECRET_KEY
    PROVER_BACKEND = os.environ.get('PROVER_BACKEND', 'hmac')  # hmac | command
    PROVER_COMMAND = os.environ.get(
        'PROVER_COMMAND',
        'cargo run --bin memory_prove --release -- {moves} {time} {matched_pairs}',
    )
    PROVER_WORKDIR = os.environ.get('PROVER_WORKDIR') or None
    PROVER_ARTIFACT_PATH = os.environ.get('PROVER_ARTIFACT_PATH', 'memory_game_proof.bin')
    PROVER_TIMEOUT_SEC = int(os.environ.get('PROVER_TIMEOUT_SEC', '900'))
    # Optional: heartbeat interval for clock tick logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
