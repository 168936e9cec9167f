from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

from memory_game import db
from memory_game.models import Attestation
from memory_game.services.attestation import (
    MODE_PROVE,
    AttestationError,
    AttestationInput,
    InvalidAttestationInput,
    ProofVerificationFailed,
    ProverMisconfigured,
    get_prover,
    run_attestation,
)
from memory_game.services.attestation.prover import ProofArtifact, artifact_digest
from memory_game.services.games.scoring import remaining_time


proofs = Blueprint('proofs', __name__)


def attestation_error_response(exc: AttestationError):
    """Map an attestation failure to a JSON error. Never reported as success."""
    if isinstance(exc, InvalidAttestationInput):
        status = 400
    elif isinstance(exc, ProverMisconfigured):
        status = 500
    else:
        status = 502
    current_app.logger.warning(f"[attest-failed] {type(exc).__name__}: {exc}")
    return jsonify({'success': False, 'error': str(exc), 'error_type': type(exc).__name__}), status


def attest_and_record(data: AttestationInput, mode: str, game_code=None):
    """Run the host driver; persist the receipt when a proof was produced."""
    prover = get_prover(current_app.config, logger=current_app.logger) if mode == MODE_PROVE else None
    receipt = run_attestation(data, mode, prover=prover, logger=current_app.logger)
    if receipt.proof_hash is None:
        return receipt, None

    record = Attestation.query.filter_by(proof_hash=receipt.proof_hash).first()
    if record:
        return receipt, record
    record = Attestation.from_receipt(receipt, game_code=game_code)
    db.session.add(record)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return receipt, record


@proofs.route('/generate-proof', methods=['POST'])
def generate_proof():
    """UI bridge: prove a score from the client's raw counters.

    The client's own ``score`` is never used, only compared for logging.
    """
    payload = request.get_json(silent=True)
    current_app.logger.info(f"[generate-proof] received={payload}")
    try:
        data = AttestationInput.from_json(payload)
        receipt, _ = attest_and_record(data, MODE_PROVE)
    except AttestationError as exc:
        return attestation_error_response(exc)

    out = receipt.output
    claimed = payload.get('score')
    if claimed is not None and claimed != out.final_score:
        current_app.logger.warning(
            f"[generate-proof] client score {claimed!r} differs from attested score {out.final_score}"
        )

    return jsonify({
        'success': True,
        'proofHash': receipt.proof_hash,
        'calculatedScore': out.final_score,
        'isComplete': out.is_complete,
        'gameData': data.to_dict(),
        'remainingTime': remaining_time(out.elapsed_seconds),
        'publicValues': receipt.public_values.hex(),
        'proofDetails': {
            'backend': receipt.backend,
            'verificationMethod': f'{receipt.backend} prover, verified before reporting',
            'scoreFormula': 'Remaining Time - Moves',
            'createdAt': datetime.now(timezone.utc).isoformat(),
        },
    })


@proofs.route('/proofs/<string:proof_hash>', methods=['GET'])
def get_proof(proof_hash):
    record = Attestation.query.filter_by(proof_hash=proof_hash).first_or_404()
    return jsonify(record.to_dict())


@proofs.route('/proofs/<string:proof_hash>/verify', methods=['POST'])
def verify_proof(proof_hash):
    record = Attestation.query.filter_by(proof_hash=proof_hash).first_or_404()
    try:
        prover = get_prover(current_app.config, name=record.backend, logger=current_app.logger)
        prover.verify(ProofArtifact(path=record.artifact_path, output=record.to_output()))
        if artifact_digest(record.artifact_path) != record.proof_hash:
            raise ProofVerificationFailed('artifact on disk does not match the recorded proof hash')
    except AttestationError as exc:
        return attestation_error_response(exc)
    return jsonify({'success': True, 'verified': True, 'proofHash': record.proof_hash})
