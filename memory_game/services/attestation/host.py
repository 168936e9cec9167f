import logging
from dataclasses import dataclass
from typing import Optional

from .engine import AttestationInput, AttestationOutput, attest, encode_public_values
from .prover import artifact_digest

MODE_EXECUTE = 'execute'
MODE_PROVE = 'prove'
MODES = (MODE_EXECUTE, MODE_PROVE)


@dataclass(frozen=True)
class AttestationReceipt:
    mode: str
    output: AttestationOutput
    public_values: bytes
    backend: Optional[str] = None
    proof_hash: Optional[str] = None
    artifact_path: Optional[str] = None
    verified: bool = False

    def to_dict(self):
        return {
            'mode': self.mode,
            'backend': self.backend,
            'output': self.output.to_dict(),
            'publicValues': self.public_values.hex(),
            'proofHash': self.proof_hash,
            'artifactPath': self.artifact_path,
            'verified': self.verified,
        }


def run_attestation(data: AttestationInput, mode: str, prover=None, logger: Optional[logging.Logger] = None) -> AttestationReceipt:
    """Run the attestation engine in ``execute`` or ``prove`` mode.

    ``prove`` only returns once the prover's artifact has been verified;
    any failure propagates as an ``AttestationError``.
    """
    logger = logger or logging.getLogger('memory_game')
    if mode not in MODES:
        raise ValueError(f'unknown attestation mode {mode!r}')

    if mode == MODE_EXECUTE:
        output = attest(data)
        logger.info(
            f"[attest] mode=execute moves={output.moves} time={output.elapsed_seconds} "
            f"pairs={output.matched_pairs} score={output.final_score} complete={output.is_complete}"
        )
        return AttestationReceipt(mode=mode, output=output, public_values=encode_public_values(output))

    if prover is None:
        raise ValueError('prove mode requires a prover backend')
    artifact = prover.prove(data)
    output = prover.verify(artifact)
    proof_hash = artifact_digest(artifact.path)
    logger.info(
        f"[attest] mode=prove backend={prover.name} proof={proof_hash} "
        f"score={output.final_score} complete={output.is_complete}"
    )
    return AttestationReceipt(
        mode=mode,
        output=output,
        public_values=encode_public_values(output),
        backend=prover.name,
        proof_hash=proof_hash,
        artifact_path=artifact.path,
        verified=True,
    )
