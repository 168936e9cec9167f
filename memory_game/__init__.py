from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Live game sessions are in-memory only, one registry per app
    from memory_game.services.games.registry import SessionRegistry
    flask_app.extensions['game_sessions'] = SessionRegistry()

    # Import and register blueprints here
    from memory_game.main import main
    flask_app.register_blueprint(main)

    from memory_game.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from memory_game.api.proofs import proofs
    flask_app.register_blueprint(proofs, url_prefix='/api')

    # Register Socket.IO event handlers
    from memory_game.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the attestation tables."""
        import memory_game.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            click.echo('Database has been reset!')

    @click.command('attest')
    @click.option('--input', 'input_path', type=click.Path(exists=True, dir_okay=False),
                  help='JSON file with moves, time and matchedPairs.')
    @click.option('--moves', type=int, help='Move count (ignored with --input).')
    @click.option('--time', 'elapsed', type=int, help='Elapsed seconds (ignored with --input).')
    @click.option('--matched-pairs', type=int, help='Matched pair count (ignored with --input).')
    @click.option('--execute', 'mode', flag_value='execute', default='execute', help='Execute only, no proof.')
    @click.option('--prove', 'mode', flag_value='prove', help='Generate and verify a proof.')
    @click.option('--output', 'output_path', type=click.Path(dir_okay=False),
                  help='Write the receipt as JSON to this file.')
    def attest_command(input_path, moves, elapsed, matched_pairs, mode, output_path):
        """Recompute and commit a game score from its raw counters."""
        from memory_game.services.attestation import (
            AttestationError, AttestationInput, get_prover, run_attestation,
        )

        try:
            if input_path:
                with open(input_path, 'r', encoding='utf-8') as fh:
                    try:
                        payload = json.load(fh)
                    except ValueError as exc:
                        raise click.ClickException(f'Failed to parse JSON input: {exc}')
                data = AttestationInput.from_json(payload)
            else:
                if None in (moves, elapsed, matched_pairs):
                    raise click.UsageError('Provide --input or all of --moves, --time and --matched-pairs.')
                data = AttestationInput(moves=moves, elapsed_seconds=elapsed, matched_pairs=matched_pairs)

            prover = get_prover(flask_app.config, logger=flask_app.logger) if mode == 'prove' else None
            receipt = run_attestation(data, mode, prover=prover, logger=flask_app.logger)
        except AttestationError as exc:
            raise click.ClickException(str(exc))

        out = receipt.output
        click.echo('Execution successful' if mode == 'execute' else 'Proof verified successfully')
        click.echo(f'- Moves: {out.moves}')
        click.echo(f'- Time: {out.elapsed_seconds}')
        click.echo(f'- Matched Pairs: {out.matched_pairs}')
        click.echo(f'- Score (Remaining Time - Moves): {out.final_score}')
        click.echo(f'- Game Complete: {str(out.is_complete).lower()}')
        click.echo(f'FINAL_SCORE={out.final_score}')
        if receipt.proof_hash:
            click.echo(f'Proof saved to: {receipt.artifact_path}')
            click.echo(f'PROOF_HASH={receipt.proof_hash}')
        if output_path:
            with open(output_path, 'w', encoding='utf-8') as fh:
                json.dump(receipt.to_dict(), fh, indent=2)

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(attest_command)

    return flask_app
